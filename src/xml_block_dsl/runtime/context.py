"""Per-build state shared by the executor, the interpreter and the builder."""

from typing import TYPE_CHECKING, Any, Optional

from xml_block_dsl.shared import (
    BuildMetrics,
    DiagnosticLog,
    XmlBlockConfig,
)

from .scope import Scope

if TYPE_CHECKING:
    from xml_block_dsl.compiler import BlockCompiler

    from .commands import CommandTable
    from .executor import BlockExecutor


class BuildContext:
    """Everything one document build needs besides the namespace registry.

    The registry is deliberately not stored here: it is passed explicitly
    through every build call. ``builder`` is whatever object builds elements
    from argument lists; the document assembler installs it.
    """

    def __init__(
        self,
        config: XmlBlockConfig,
        commands: "CommandTable",
        compiler: "BlockCompiler",
        root_scope: Optional[Scope] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.config = config
        self.commands = commands
        self.compiler = compiler
        self.root_scope = root_scope or Scope()
        self.correlation_id = correlation_id
        self.diagnostics = DiagnosticLog(correlation_id)
        self.metrics = BuildMetrics()
        self.executor: Optional["BlockExecutor"] = None
        self.builder: Any = None
        self.depth = 0
