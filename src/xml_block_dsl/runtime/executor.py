"""Block executor: run a content block and collect what it yields."""

import time
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from xml_block_dsl.compiler import CompiledBlock
from xml_block_dsl.shared import ScriptRuntimeError, get_logger
from xml_block_dsl.tree import NamespaceRegistry

from .blocks import BlockScope, ScriptBlock
from .interpreter import Interpreter, emit
from .scope import Scope

if TYPE_CHECKING:
    from .context import BuildContext


class BlockExecutor:
    """Executes content blocks for one document build.

    Three kinds of content block are accepted:

    * ``ScriptBlock``: compiled against the registry as it is *now*, then
      interpreted in a child of the scope it was written in
    * ``CompiledBlock``: a template compiled ahead of time, interpreted in a
      child of the build's root scope
    * any other callable: called with a ``BlockScope``; its return value (a
      single value, a list or a generator) is what it yields
    """

    def __init__(self, context: "BuildContext") -> None:
        self.context = context
        self.logger = get_logger(__name__, context.correlation_id, "block_executor")

    @staticmethod
    def is_content_block(value: Any) -> bool:
        if isinstance(value, (ScriptBlock, CompiledBlock)):
            return True
        return callable(value) and not isinstance(value, type)

    def execute(
        self,
        block: Any,
        registry: NamespaceRegistry,
        variables: Optional[Dict[str, Any]] = None,
        scope: Optional[Scope] = None,
    ) -> List[Any]:
        """Execute ``block`` and return the values it yielded, in order.

        Args:
            block: Content block to run
            registry: Namespace bindings in force where the block appears
            variables: Extra variables bound for this run only
            scope: Scope to run in when the block does not carry its own

        Raises:
            CompilationError: block source could not be compiled
            ScriptRuntimeError: a statement failed, or ``block`` is not a
                content block
        """
        output: List[Any] = []
        for values in self.iter_execute(block, registry, variables, scope):
            output.extend(values)
        return output

    def iter_execute(
        self,
        block: Any,
        registry: NamespaceRegistry,
        variables: Optional[Dict[str, Any]] = None,
        scope: Optional[Scope] = None,
    ) -> Iterator[List[Any]]:
        """Execute ``block`` lazily, yielding the values of one statement at a time.

        Script blocks and templates yield once per statement; a Python
        callable yields everything it returned at once. A script block is
        compiled on the first ``next()``.
        """
        if not self.is_content_block(block):
            raise ScriptRuntimeError(
                f"Not a content block: {type(block).__name__}",
                {"type": type(block).__name__},
            )
        return self._iter_execute(block, registry, variables, scope or self.context.root_scope)

    def _iter_execute(
        self,
        block: Any,
        registry: NamespaceRegistry,
        variables: Optional[Dict[str, Any]],
        outer: Scope,
    ) -> Iterator[List[Any]]:
        start_time = time.time()
        value_count = 0

        if isinstance(block, (ScriptBlock, CompiledBlock)):
            if isinstance(block, ScriptBlock):
                compiled = self._compile(block, registry)
                run_scope = (block.scope or outer).child(variables)
            else:
                compiled = block
                run_scope = outer.child(variables)
            interpreter = Interpreter(self.context, registry, run_scope)
            for values in interpreter.iter_statements(compiled):
                value_count += len(values)
                yield values
        else:
            output: List[Any] = []
            emit(block(BlockScope(self.context, outer.child(variables), registry)), output)
            value_count = len(output)
            yield output

        self.context.metrics.blocks_executed += 1
        self.logger.debug(
            "Block executed",
            extra={
                "block_type": type(block).__name__,
                "value_count": value_count,
                "execution_time_ms": (time.time() - start_time) * 1000,
            },
        )

    def _compile(self, block: ScriptBlock, registry: NamespaceRegistry) -> CompiledBlock:
        compiler = self.context.compiler
        metrics = self.context.metrics
        hits_before = compiler.cache_hits

        compiled = compiler.compile(block.source, registry, self.context.diagnostics)

        if compiler.cache_hits > hits_before:
            metrics.cache_hits += 1
        else:
            metrics.cache_misses += 1
            metrics.blocks_compiled += 1
        metrics.duds_rewritten += len(compiled.duds)
        return compiled
