"""Scoped prefix to namespace URI table used while building one document."""

from typing import Dict, Iterator, List, Optional, Tuple

from xml_block_dsl.shared.errors import NamespaceCollisionError

from .nodes import XML_NAMESPACE, QualifiedName

DEFAULT_PREFIX = ""


class NamespaceRegistry:
    """Prefix to URI mapping for one document build.

    The empty prefix denotes the default namespace. Bindings are never
    replaced: re-adding a prefix with the same URI is a no-op and re-adding it
    with a different URI raises ``NamespaceCollisionError`` while leaving the
    first binding in place. Whether that error aborts the build is decided by
    the caller.
    """

    def __init__(self, bindings: Optional[Dict[str, str]] = None) -> None:
        self._bindings: Dict[str, str] = {}
        for prefix, uri in (bindings or {}).items():
            self.add(prefix, uri)

    def get(self, prefix: str, default: Optional[str] = None) -> Optional[str]:
        """URI bound to ``prefix``, or ``default``."""
        return self._bindings.get(prefix, default)

    def add(self, prefix: str, uri: str) -> bool:
        """Bind ``prefix`` to ``uri``.

        Returns:
            True if a new binding was created, False if it already existed

        Raises:
            NamespaceCollisionError: prefix is bound to a different URI
        """
        uri = str(uri)
        if not uri:
            raise ValueError("Namespace URI cannot be empty")
        existing = self._bindings.get(prefix)
        if existing is None:
            self._bindings[prefix] = uri
            return True
        if existing == uri:
            return False
        raise NamespaceCollisionError(prefix, existing, uri)

    def resolve(self, text: str) -> Tuple[QualifiedName, bool]:
        """Resolve ``prefix:local`` or ``local`` to a qualified element name.

        Unprefixed names take the default namespace, if one is bound. An
        unbound prefix is tolerated: the name keeps its literal text and no
        namespace.

        Returns:
            The qualified name and whether every prefix could be resolved
        """
        if ":" in text:
            prefix, local_name = text.split(":", 1)
            uri = XML_NAMESPACE if prefix == "xml" else self.get(prefix)
            if uri is None or not local_name:
                return QualifiedName(text), False
            return QualifiedName(local_name, uri), True
        return QualifiedName(text, self.get(DEFAULT_PREFIX)), True

    def resolve_attribute(self, text: str) -> Tuple[QualifiedName, bool]:
        """Resolve an attribute name; the default namespace never applies."""
        if ":" in text:
            return self.resolve(text)
        return QualifiedName(text), True

    def prefixes(self) -> List[str]:
        """Bound prefixes in the order they were added."""
        return list(self._bindings)

    def as_dict(self) -> Dict[str, str]:
        """Snapshot of the bindings."""
        return dict(self._bindings)

    def copy(self) -> "NamespaceRegistry":
        """Independent registry with the same bindings."""
        return NamespaceRegistry(self._bindings)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __repr__(self) -> str:
        return f"NamespaceRegistry({self._bindings!r})"
