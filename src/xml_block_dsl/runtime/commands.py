"""Command table and built-in commands.

The command table answers the one question the token classifier needs
answered: can this bare word be called? Anything it cannot resolve is an
element reference. Built-in commands are hyphenated (or short aliases), so
they never clash with ordinary element tags.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

from xml_block_dsl.shared import (
    CommandNotFoundError,
    ScriptRuntimeError,
    get_logger,
)
from xml_block_dsl.tree import Namespace, NamespaceRegistry, QualifiedName

from .scope import Scope

if TYPE_CHECKING:
    from .context import BuildContext

CommandFunction = Callable[..., Any]

ELEMENT_COMMAND = "New-XElement"


@dataclass
class CommandInvocation:
    """Everything a command registered with ``pass_invocation`` receives."""

    name: str
    args: List[Any]
    context: "BuildContext"
    scope: Scope
    registry: NamespaceRegistry

    def run_block(self, block: Any, variables: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Execute a content block in this invocation's scope."""
        return self.context.executor.execute(
            block, self.registry, variables=variables, scope=self.scope
        )


@dataclass
class CommandEntry:
    """A registered command."""

    name: str
    func: CommandFunction
    aliases: Tuple[str, ...] = ()
    pass_invocation: bool = False
    description: str = field(default="", compare=False)


def bind_parameters(
    args: Sequence[Any],
    switches: Iterable[str] = (),
    options: Iterable[str] = (),
) -> Tuple[Dict[str, Any], List[Any]]:
    """Split command arguments into named parameters and positional values.

    ``-Name`` arguments listed in ``switches`` become True; those listed in
    ``options`` take the following argument as their value. Matching is
    case-insensitive. Everything else stays positional.

    Returns:
        Named parameters (lower-cased names) and positional arguments
    """
    switch_names = {name.lower() for name in switches}
    option_names = {name.lower() for name in options}
    named: Dict[str, Any] = {}
    positional: List[Any] = []

    index = 0
    while index < len(args):
        arg = args[index]
        name = arg[1:].rstrip(":").lower() if isinstance(arg, str) and arg.startswith("-") else None
        if name in switch_names:
            named[name] = True
        elif name in option_names:
            if index + 1 >= len(args):
                raise ScriptRuntimeError(f"Parameter {arg} requires a value")
            named[name] = args[index + 1]
            index += 1
        else:
            positional.append(arg)
        index += 1
    return named, positional


def _iterate(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


# Built-in commands

def _new_xelement(invocation: CommandInvocation) -> Any:
    if not invocation.args:
        raise ScriptRuntimeError(f"{invocation.name} requires an element name")
    tag, arguments = invocation.args[0], invocation.args[1:]
    if tag is None:
        raise ScriptRuntimeError(f"{invocation.name} requires an element name")
    if not isinstance(tag, QualifiedName):
        tag = str(tag)

    # comma lists are spread into the argument queue
    flattened: List[Any] = []
    for argument in arguments:
        if isinstance(argument, list):
            flattened.extend(argument)
        else:
            flattened.append(argument)
    return invocation.context.builder.build(tag, flattened, invocation.registry)


def _new_xnamespace(invocation: CommandInvocation) -> Namespace:
    if len(invocation.args) != 1 or invocation.args[0] is None:
        raise ScriptRuntimeError(f"{invocation.name} requires exactly one namespace URI")
    return Namespace(str(invocation.args[0]))


def _foreach_item(invocation: CommandInvocation) -> List[Any]:
    if len(invocation.args) != 2:
        raise ScriptRuntimeError(f"{invocation.name} expects an item list and a block")
    items, block = invocation.args
    if not invocation.context.executor.is_content_block(block):
        raise ScriptRuntimeError(f"{invocation.name} expects a block as its last argument")

    output: List[Any] = []
    for item in _iterate(items):
        output.extend(invocation.run_block(block, {"_": item}))
    return output


def _write_output(*values: Any) -> List[Any]:
    return list(values)


def _get_date(*args: Any) -> str:
    named, positional = bind_parameters(args, switches=("UtcNow",), options=("Format",))
    if positional:
        raise ScriptRuntimeError(f"Get-Date: unexpected arguments {positional!r}")
    now = datetime.now(timezone.utc) if named.get("utcnow") else datetime.now()
    if "format" in named:
        return now.strftime(str(named["format"]))
    return now.isoformat()


def _join_text(*args: Any) -> str:
    named, positional = bind_parameters(args, options=("Separator",))
    separator = str(named.get("separator", ""))
    values: List[Any] = []
    for value in positional:
        values.extend(_iterate(value))
    return separator.join(str(value) for value in values if value is not None)


_BUILTINS = (
    CommandEntry(ELEMENT_COMMAND, _new_xelement, ("xe",), True,
                 "Build an element from a name and builder arguments"),
    CommandEntry("New-XNamespace", _new_xnamespace, ("ns",), True,
                 "Make a namespace value from a URI"),
    CommandEntry("ForEach-Item", _foreach_item, (), True,
                 "Run a block once per item with $_ bound"),
    CommandEntry("Write-Output", _write_output, (), False,
                 "Emit the arguments"),
    CommandEntry("Get-Date", _get_date, (), False,
                 "Current date and time as text"),
    CommandEntry("Join-Text", _join_text, (), False,
                 "Join values into one string"),
)


class CommandTable:
    """Names callable from block source.

    ``can_resolve`` is the callable-resolution capability injected into the
    token classifier; it must answer for aliases as well as command names.
    """

    def __init__(
        self,
        case_insensitive: bool = True,
        register_builtins: bool = True,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize command table.

        Args:
            case_insensitive: Resolve names regardless of letter case
            register_builtins: Install the built-in commands
            correlation_id: Optional correlation ID for request tracking
        """
        self.case_insensitive = case_insensitive
        self.logger = get_logger(__name__, correlation_id, "command_table")
        self._commands: Dict[str, CommandEntry] = {}
        self._lock = threading.RLock()
        self.version = 0

        if register_builtins:
            for entry in _BUILTINS:
                self._install(entry)

    def _key(self, name: str) -> str:
        return name.lower() if self.case_insensitive else name

    def _install(self, entry: CommandEntry) -> None:
        with self._lock:
            for name in (entry.name,) + entry.aliases:
                self._commands[self._key(name)] = entry
            self.version += 1

    def register(
        self,
        name: str,
        func: CommandFunction,
        aliases: Iterable[str] = (),
        pass_invocation: bool = False,
        description: str = "",
    ) -> None:
        """Register a command (replacing any command of the same name).

        Args:
            name: Command name as written in block source
            func: Called with the evaluated arguments, or with a single
                ``CommandInvocation`` when ``pass_invocation`` is True
            aliases: Additional names for the same command
            pass_invocation: Pass a ``CommandInvocation`` instead of arguments
            description: Short help text
        """
        if not name or any(ch.isspace() for ch in name):
            raise ValueError("Command name must be a non-empty word")
        if not callable(func):
            raise TypeError("Command function must be callable")
        self._install(CommandEntry(name, func, tuple(aliases), pass_invocation, description))
        self.logger.debug(
            "Command registered",
            extra={"command": name, "aliases": list(aliases)},
        )

    def unregister(self, name: str) -> None:
        """Remove a command together with all of its names."""
        with self._lock:
            entry = self._commands.get(self._key(name))
            if entry is None:
                raise CommandNotFoundError(name)
            for key in [key for key, value in self._commands.items() if value is entry]:
                del self._commands[key]
            self.version += 1

    def can_resolve(self, name: str) -> bool:
        return self._key(name) in self._commands

    def lookup(self, name: str) -> CommandEntry:
        entry = self._commands.get(self._key(name))
        if entry is None:
            raise CommandNotFoundError(name)
        return entry

    def names(self) -> List[str]:
        """Primary names of all registered commands."""
        seen: List[str] = []
        for entry in self._commands.values():
            if entry.name not in seen:
                seen.append(entry.name)
        return sorted(seen)

    def invoke(
        self,
        name: str,
        args: List[Any],
        context: "BuildContext",
        scope: Scope,
        registry: NamespaceRegistry,
    ) -> Any:
        """Invoke a command with already evaluated arguments.

        Raises:
            CommandNotFoundError: No command of that name
            ScriptRuntimeError: The command failed
        """
        entry = self.lookup(name)
        if entry.pass_invocation:
            return entry.func(CommandInvocation(name, list(args), context, scope, registry))
        try:
            return entry.func(*args)
        except (TypeError, ValueError) as e:
            raise ScriptRuntimeError(
                f"Command {entry.name} failed: {e}", {"command": entry.name}
            ) from e

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.can_resolve(name)

    def __len__(self) -> int:
        return len(self.names())
