"""Content block values.

A ``ScriptBlock`` is the value of a ``{ ... }`` group: source text that has
not been compiled yet, together with the scope it was written in. Compiling
is deferred until the element builder reaches the block, so the block sees
the namespace bindings declared by its enclosing elements.

Python callables are content blocks too; they receive a ``BlockScope``.
"""

from typing import TYPE_CHECKING, Any, Optional

from xml_block_dsl.tree import Element, NamespaceRegistry, QualifiedName, Text

from .scope import Scope

if TYPE_CHECKING:
    from .context import BuildContext


class ScriptBlock:
    """Deferred block source with its defining scope."""

    def __init__(self, source: str, scope: Optional[Scope] = None, line: int = 1) -> None:
        self.source = source
        self.scope = scope
        self.line = line

    def with_scope(self, scope: Scope) -> "ScriptBlock":
        return ScriptBlock(self.source, scope, self.line)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptBlock):
            return NotImplemented
        return self.source == other.source

    def __hash__(self) -> int:
        return hash(self.source)

    def __str__(self) -> str:
        return self.source

    def __repr__(self) -> str:
        preview = self.source.strip().replace("\n", " ")
        if len(preview) > 40:
            preview = preview[:37] + "..."
        return f"ScriptBlock({preview!r}, line={self.line})"


class BlockScope:
    """What a Python content block sees while it runs.

    Examples:
        >>> def channel(block):
        ...     yield block.element("title", block.text(block.get("site_name")))
        >>> new_document("rss", [channel], parameters={"site_name": "x"})
    """

    def __init__(
        self,
        context: "BuildContext",
        variables: Scope,
        registry: NamespaceRegistry,
    ) -> None:
        self.context = context
        self.variables = variables
        self.registry = registry

    def get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.variables.set(name, value)

    def qname(self, text: str) -> QualifiedName:
        """Resolve ``prefix:local`` or ``local`` against the current bindings."""
        if text.startswith("{"):
            return QualifiedName.parse(text)
        return self.registry.resolve(text)[0]

    def text(self, value: Any) -> Text:
        return Text("" if value is None else str(value))

    def element(self, tag: Any, *args: Any) -> Element:
        """Build a child element from builder arguments.

        Arguments follow the same rules as in block source; pass ``Text`` or
        ``Element`` values (see ``text``) for direct content.
        """
        if not isinstance(tag, QualifiedName):
            tag = self.qname(str(tag))
        return self.context.builder.build(tag, list(args), self.registry)
