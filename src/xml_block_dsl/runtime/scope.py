"""Variable scopes for executing content blocks.

Names are case-insensitive. A block runs in a child of the scope it was
written in, so it sees its caller's variables but its own bindings (such as
``$_`` inside ``ForEach-Item``) do not leak out.
"""

from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

_CONSTANTS = {"true": True, "false": False, "null": None}


class Scope:
    """A chain of variable tables."""

    def __init__(
        self,
        variables: Optional[Mapping[str, Any]] = None,
        parent: Optional["Scope"] = None,
    ) -> None:
        self.parent = parent
        self._variables: Dict[str, Any] = {}
        for name, value in (variables or {}).items():
            self.set(name, value)

    def lookup(self, name: str) -> Tuple[bool, Any]:
        """Find a variable.

        Returns:
            Whether the name is defined and its value
        """
        key = name.lower()
        if key in _CONSTANTS:
            return True, _CONSTANTS[key]
        scope: Optional[Scope] = self
        while scope is not None:
            if key in scope._variables:
                return True, scope._variables[key]
            scope = scope.parent
        return False, None

    def get(self, name: str, default: Any = None) -> Any:
        found, value = self.lookup(name)
        return value if found else default

    def set(self, name: str, value: Any) -> None:
        if not name:
            raise ValueError("Variable name cannot be empty")
        self._variables[name.lower()] = value

    def child(self, variables: Optional[Mapping[str, Any]] = None) -> "Scope":
        return Scope(variables, parent=self)

    def as_dict(self) -> Dict[str, Any]:
        """All visible variables, inner bindings shadowing outer ones."""
        chain = []
        scope: Optional[Scope] = self
        while scope is not None:
            chain.append(scope._variables)
            scope = scope.parent
        visible: Dict[str, Any] = {}
        for variables in reversed(chain):
            visible.update(variables)
        return visible

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name)[0]

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_dict())
