"""Exception hierarchy for xml block compilation and building."""

from typing import Any, Dict, Optional


class XmlBlockError(Exception):
    """Base exception for all errors raised by this package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details = details or {}


class HostCapabilityUnavailableError(XmlBlockError):
    """A required host capability (tokenizer or resolver) was not supplied."""

    def __init__(self, capability: str) -> None:
        super().__init__(
            f"Host capability unavailable: {capability}",
            {"capability": capability},
        )
        self.capability = capability


class CompilationError(XmlBlockError):
    """A content block could not be compiled."""


class ScriptSyntaxError(CompilationError):
    """Block source text is not valid in the embedded language."""

    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(
            f"{message} (line {line}, column {column})",
            {"line": line, "column": column},
        )
        self.line = line
        self.column = column


class ScriptRuntimeError(XmlBlockError):
    """A statement failed while a block was executing."""


class CommandNotFoundError(ScriptRuntimeError):
    """A statement invoked a command the command table does not know."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}", {"command": name})
        self.name = name


class UndefinedVariableError(ScriptRuntimeError):
    """A variable was referenced that no enclosing scope defines."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Undefined variable: ${name}", {"variable": name})
        self.name = name


class BuildError(XmlBlockError):
    """Element construction failed."""


class NamespaceCollisionError(BuildError):
    """A namespace prefix was rebound to a different URI within one build."""

    def __init__(self, prefix: str, existing_uri: str, new_uri: str) -> None:
        super().__init__(
            f"Namespace prefix '{prefix}' is already bound to '{existing_uri}', "
            f"cannot rebind to '{new_uri}'",
            {"prefix": prefix, "existing_uri": existing_uri, "new_uri": new_uri},
        )
        self.prefix = prefix
        self.existing_uri = existing_uri
        self.new_uri = new_uri


class MalformedArgumentError(BuildError):
    """An element argument has a shape the builder cannot interpret."""


class DuplicateAttributeError(BuildError):
    """An element received the same attribute name twice."""

    def __init__(self, tag: str, name: str) -> None:
        super().__init__(
            f"Duplicate attribute '{name}' on element '{tag}'",
            {"tag": tag, "attribute": name},
        )
        self.attribute = name


class BuildDepthError(BuildError):
    """Element nesting exceeded the configured maximum depth."""
