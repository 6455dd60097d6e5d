"""Statement interpreter for compiled blocks.

A block is a sequence of statements separated by newlines or semicolons. A
statement that starts with a command word invokes the command with its
evaluated operands; any other statement is an expression whose values are
emitted. What each statement emits is collected, in order, into a flat list.
"""

import re
import types
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Mapping, Tuple

from xml_block_dsl.compiler import CompiledBlock
from xml_block_dsl.shared import (
    DiagnosticCode,
    ScriptRuntimeError,
    ScriptSyntaxError,
    UndefinedVariableError,
    get_logger,
)
from xml_block_dsl.tokenization import Token, TokenKind, significant_tokens
from xml_block_dsl.tree import Namespace, NamespaceRegistry, QualifiedName

from .blocks import ScriptBlock
from .scope import Scope

if TYPE_CHECKING:
    from .context import BuildContext

_INTEGER_PATTERN = re.compile(r"^-?\d+$")
_INTERPOLATION_NAME = re.compile(r"\w+")

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "e": "\x1b",
}

_OPENERS = {
    TokenKind.GROUP_START: TokenKind.GROUP_END,
    TokenKind.SUBEXPR_START: TokenKind.SUBEXPR_END,
}


def emit(value: Any, output: List[Any]) -> None:
    """Append ``value`` to ``output``, spreading lists, tuples and generators."""
    if value is None:
        return
    if isinstance(value, (list, tuple, types.GeneratorType)):
        for item in value:
            emit(item, output)
    else:
        output.append(value)


def _to_namespace(value: Any, registry: NamespaceRegistry) -> Namespace:
    if value is None:
        raise ValueError("a namespace URI is required")
    return value if isinstance(value, Namespace) else Namespace(str(value))


def _to_qname(value: Any, registry: NamespaceRegistry) -> QualifiedName:
    if isinstance(value, QualifiedName):
        return value
    text = str(value)
    if text.startswith("{"):
        return QualifiedName.parse(text)
    return registry.resolve(text)[0]


def _to_list(value: Any, registry: NamespaceRegistry) -> List[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


_CASTS: Dict[str, Callable[[Any, NamespaceRegistry], Any]] = {
    "ns": _to_namespace,
    "namespace": _to_namespace,
    "string": lambda value, registry: "" if value is None else str(value),
    "int": lambda value, registry: int(value),
    "float": lambda value, registry: float(value),
    "double": lambda value, registry: float(value),
    "bool": lambda value, registry: bool(value),
    "qname": _to_qname,
    "array": _to_list,
}


class Interpreter:
    """Evaluates the statements of one compiled block in one scope."""

    def __init__(
        self,
        context: "BuildContext",
        registry: NamespaceRegistry,
        scope: Scope,
    ) -> None:
        self.context = context
        self.registry = registry
        self.scope = scope
        self.source = ""
        self.logger = get_logger(__name__, context.correlation_id, "interpreter")

    def iter_statements(self, block: CompiledBlock) -> Iterator[List[Any]]:
        """Run the statements of ``block`` one at a time, yielding what each emitted.

        A statement runs only when the previous one's values have been taken.
        """
        self.source = block.compiled_source
        for statement in _split_statements(significant_tokens(list(block.tokens))):
            output: List[Any] = []
            emit(self._run_statement(statement), output)
            yield output

    # Statements

    def _run_statements(self, tokens: List[Token]) -> List[Any]:
        output: List[Any] = []
        for statement in _split_statements(tokens):
            emit(self._run_statement(statement), output)
        return output

    def _run_statement(self, tokens: List[Token]) -> Any:
        first = tokens[0]
        if first.kind == TokenKind.COMMAND:
            arguments = self._evaluate_operands(tokens, 1)
            return self.context.commands.invoke(
                first.text, arguments, self.context, self.scope, self.registry
            )
        return self._evaluate_operands(tokens, 0)

    # Operands

    def _evaluate_operands(self, tokens: List[Token], index: int) -> List[Any]:
        values: List[Any] = []
        while index < len(tokens):
            if tokens[index].kind == TokenKind.NEWLINE:
                index += 1
                continue
            value, index = self._operand(tokens, index)
            if index < len(tokens) and tokens[index].kind == TokenKind.COMMA:
                items = [value]
                while index < len(tokens) and tokens[index].kind == TokenKind.COMMA:
                    comma = tokens[index]
                    index += 1
                    while index < len(tokens) and tokens[index].kind == TokenKind.NEWLINE:
                        index += 1
                    if index >= len(tokens):
                        raise ScriptSyntaxError("Missing operand after ','", comma.line, comma.column)
                    value, index = self._operand(tokens, index)
                    items.append(value)
                value = items
            values.append(value)
        return values

    def _operand(self, tokens: List[Token], index: int) -> Tuple[Any, int]:
        token = tokens[index]
        kind = token.kind

        if kind == TokenKind.TYPE:
            if index + 1 >= len(tokens) or tokens[index + 1].kind in (
                TokenKind.COMMA, TokenKind.NEWLINE
            ):
                raise ScriptSyntaxError(
                    f"Missing operand after {token.text}", token.line, token.column
                )
            value, index = self._operand(tokens, index + 1)
            return self._cast(token, value), index
        if kind == TokenKind.GROUP_START:
            end = _matching(tokens, index)
            source = self.source[token.offset + 1:tokens[end].offset]
            return ScriptBlock(source, self.scope, token.line), end + 1
        if kind == TokenKind.SUBEXPR_START:
            end = _matching(tokens, index)
            values = self._run_statements(tokens[index + 1:end])
            if not values:
                return None, end + 1
            return (values[0] if len(values) == 1 else values), end + 1
        if kind == TokenKind.STRING:
            return self._string(token), index + 1
        if kind == TokenKind.NUMBER:
            if _INTEGER_PATTERN.match(token.text):
                return int(token.text), index + 1
            return float(token.text), index + 1
        if kind == TokenKind.VARIABLE:
            return self._variable(token), index + 1
        if kind in (TokenKind.ARGUMENT, TokenKind.PARAMETER, TokenKind.COMMAND):
            return token.text, index + 1
        raise ScriptSyntaxError(f"Unexpected {token.text!r}", token.line, token.column)

    def _cast(self, token: Token, value: Any) -> Any:
        type_name = token.text[1:-1].lower()
        cast = _CASTS.get(type_name)
        if cast is None:
            raise ScriptRuntimeError(
                f"Unknown type {token.text}", {"type": type_name, **token.position}
            )
        try:
            return cast(value, self.registry)
        except (TypeError, ValueError) as e:
            raise ScriptRuntimeError(
                f"Cannot convert {value!r} to {token.text}: {e}",
                {"type": type_name, **token.position},
            ) from e

    # Strings and variables

    def _string(self, token: Token) -> str:
        text = token.text
        if text.startswith("'"):
            return text[1:-1].replace("''", "'")

        inner = text[1:-1]
        parts: List[str] = []
        index = 0
        while index < len(inner):
            char = inner[index]
            if char == "`" and index + 1 < len(inner):
                escaped = inner[index + 1]
                parts.append(_ESCAPES.get(escaped, escaped))
                index += 2
            elif char == '"' and inner[index + 1:index + 2] == '"':
                parts.append('"')
                index += 2
            elif char == "$" and inner[index + 1:index + 2] == "{":
                close = inner.find("}", index + 2)
                if close == -1:
                    raise ScriptSyntaxError("Unterminated ${...} in string", token.line, token.column)
                parts.append(self._interpolate(inner[index + 2:close], token))
                index = close + 1
            elif char == "$":
                match = _INTERPOLATION_NAME.match(inner, index + 1)
                if match is None:
                    parts.append(char)
                    index += 1
                else:
                    parts.append(self._interpolate(match.group(), token))
                    index = match.end()
            else:
                parts.append(char)
                index += 1
        return "".join(parts)

    def _interpolate(self, name: str, token: Token) -> str:
        value = self._lookup(name, token)
        return "" if value is None else str(value)

    def _variable(self, token: Token) -> Any:
        text = token.text[1:]
        if text.startswith("{"):
            close = text.index("}")
            name, rest = text[1:close], text[close + 1:]
            members = rest.split(".")[1:] if rest else []
        else:
            name, *members = text.split(".")

        value = self._lookup(name, token)
        for member in members:
            value = _member(value, member)
        return value

    def _lookup(self, name: str, token: Token) -> Any:
        found, value = self.scope.lookup(name)
        if found:
            return value
        if self.context.config.runtime.strict_variables:
            raise UndefinedVariableError(name)

        self.logger.warning(
            "Undefined variable evaluates to null",
            extra={"variable": name, "line": token.line, "column": token.column},
        )
        self.context.diagnostics.warning(
            f"Variable ${name} is not defined",
            "interpreter",
            DiagnosticCode.UNDEFINED_VARIABLE,
            position=token.position,
            details={"variable": name},
        )
        return None


def _member(value: Any, member: str) -> Any:
    if value is None:
        return None
    if isinstance(value, Mapping):
        if member in value:
            return value[member]
        lowered = member.lower()
        for key, item in value.items():
            if isinstance(key, str) and key.lower() == lowered:
                return item
        return None
    return getattr(value, member, None)


def _split_statements(tokens: List[Token]) -> List[List[Token]]:
    """Split tokens into statements at top-level newlines and semicolons.

    A newline directly after a comma continues the statement.
    """
    statements: List[List[Token]] = []
    current: List[Token] = []
    nesting = 0
    for token in tokens:
        if token.kind in _OPENERS:
            nesting += 1
        elif token.kind in (TokenKind.GROUP_END, TokenKind.SUBEXPR_END):
            nesting -= 1
        elif nesting == 0 and token.kind in (TokenKind.NEWLINE, TokenKind.SEPARATOR):
            if token.kind == TokenKind.NEWLINE and current and current[-1].kind == TokenKind.COMMA:
                continue
            if current:
                statements.append(current)
            current = []
            continue
        current.append(token)
    if current:
        statements.append(current)
    return statements


def _matching(tokens: List[Token], index: int) -> int:
    """Index of the bracket closing the one at ``index``."""
    opener = tokens[index].kind
    closer = _OPENERS[opener]
    nesting = 0
    for position in range(index, len(tokens)):
        kind = tokens[position].kind
        if kind == opener:
            nesting += 1
        elif kind == closer:
            nesting -= 1
            if nesting == 0:
                return position
    token = tokens[index]
    raise ScriptSyntaxError(f"Unclosed '{token.text}'", token.line, token.column)
