"""Execution of content blocks.

Key Components:
    ScriptBlock: Deferred ``{ ... }`` block with its defining scope
    BlockScope: View of the build handed to Python content blocks
    Scope: Case-insensitive variable scopes
    CommandTable: Callable names, built-in commands and the resolver capability
    Interpreter: Statement evaluation for compiled blocks
    BlockExecutor: Runs any kind of content block and collects its output
    BuildContext: Per-build state shared by executor and builder
"""

from .blocks import BlockScope, ScriptBlock
from .commands import (
    ELEMENT_COMMAND,
    CommandEntry,
    CommandInvocation,
    CommandTable,
    bind_parameters,
)
from .context import BuildContext
from .executor import BlockExecutor
from .interpreter import Interpreter, emit
from .scope import Scope

__all__ = [
    "BlockExecutor",
    "BlockScope",
    "BuildContext",
    "CommandEntry",
    "CommandInvocation",
    "CommandTable",
    "ELEMENT_COMMAND",
    "Interpreter",
    "Scope",
    "ScriptBlock",
    "bind_parameters",
    "emit",
]
