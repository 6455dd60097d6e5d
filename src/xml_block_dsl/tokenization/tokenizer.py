"""Tokenizer for the embedded xml block language.

This module converts block source text into positioned tokens. It knows just
enough about the language to tell command-position words from arguments, to
keep quoted strings, variables and casts intact, and to track brace nesting so
that the compiler can restrict itself to the top level of a block.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from xml_block_dsl.shared.errors import ScriptSyntaxError

logger = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")
_WORD_DELIMITERS = frozenset(" \t\r\n{}()[];,\"'$#`")
_NAME_CHARS = re.compile(r"[\w]")


class TokenKind(Enum):
    """Token kinds of the embedded language."""

    COMMAND = auto()          # Bare word in command position
    ARGUMENT = auto()         # Bare word in argument position
    PARAMETER = auto()        # Flag argument: -name or -name:
    STRING = auto()           # Quoted string literal
    NUMBER = auto()           # Integer or float literal
    VARIABLE = auto()         # $name, ${name}, $name.member
    TYPE = auto()             # Cast prefix: [ns]
    GROUP_START = auto()      # {
    GROUP_END = auto()        # }
    SUBEXPR_START = auto()    # (
    SUBEXPR_END = auto()      # )
    COMMA = auto()            # , joins operands into a list
    NEWLINE = auto()          # Statement separator
    SEPARATOR = auto()        # ; statement separator
    COMMENT = auto()          # # to end of line
    CONTINUATION = auto()     # Trailing backtick joining two lines


# Tokens after which the next word is in command position
_COMMAND_POSITION_OPENERS = frozenset({
    TokenKind.NEWLINE,
    TokenKind.SEPARATOR,
    TokenKind.GROUP_START,
    TokenKind.SUBEXPR_START,
})


@dataclass(frozen=True)
class Token:
    """A single token with its source position.

    ``line`` and ``column`` are 1-based; ``length`` is the raw source length;
    ``depth`` is the brace nesting depth (0 is the top level of the block).
    """

    kind: TokenKind
    text: str
    line: int
    column: int
    length: int
    depth: int = 0
    offset: int = 0

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.length < 0:
            raise ValueError("Length must be >= 0")

    @property
    def end_column(self) -> int:
        """Column just past the token (valid for single-line tokens)."""
        return self.column + self.length

    @property
    def position(self) -> dict:
        return {"line": self.line, "column": self.column}


class ScriptTokenizer:
    """Cursor-based tokenizer for block source text.

    Converts source text into a flat token list. Brace and parenthesis
    balance is enforced; any other lexical problem is reported as a
    ``ScriptSyntaxError`` carrying the offending position.
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self._reset_state("")

    def _reset_state(self, source: str) -> None:
        self.source = source
        self.index = 0
        self.line = 1
        self.column = 1
        self.depth = 0
        self.brackets: List[tuple] = []
        self.tokens: List[Token] = []

    def tokenize(self, source: str) -> List[Token]:
        """Tokenize block source text.

        Args:
            source: Source text of one content block (without outer braces)

        Returns:
            Tokens in textual order
        """
        self._reset_state(source)

        while self.index < len(self.source):
            self._scan_next()

        if self.brackets:
            opener, line, column = self.brackets[-1]
            raise ScriptSyntaxError(f"Unclosed '{opener}'", line, column)

        logger.debug(
            "Tokenization completed",
            extra={
                "component": "script_tokenizer",
                "correlation_id": self.correlation_id,
                "token_count": len(self.tokens),
                "line_count": self.line,
            }
        )
        return self.tokens

    # Scanning

    def _peek(self, ahead: int = 0) -> str:
        position = self.index + ahead
        if position < len(self.source):
            return self.source[position]
        return ""

    def _in_command_position(self) -> bool:
        for token in reversed(self.tokens):
            if token.kind in (TokenKind.COMMENT, TokenKind.CONTINUATION):
                continue
            return token.kind in _COMMAND_POSITION_OPENERS
        return True

    def _emit(self, kind: TokenKind, text: str) -> None:
        token = Token(
            kind=kind,
            text=text,
            line=self.line,
            column=self.column,
            length=len(text),
            depth=self.depth,
            offset=self.index,
        )
        self.tokens.append(token)
        self._advance(text)

    def _advance(self, text: str) -> None:
        self.index += len(text)
        newlines = text.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rfind("\n")
        else:
            self.column += len(text)

    def _error(self, message: str) -> ScriptSyntaxError:
        return ScriptSyntaxError(message, self.line, self.column)

    def _scan_next(self) -> None:
        char = self._peek()

        if char in " \t\r":
            self._advance(char)
        elif char == "\n":
            self._emit(TokenKind.NEWLINE, char)
        elif char == "#":
            end = self.source.find("\n", self.index)
            end = len(self.source) if end == -1 else end
            self._emit(TokenKind.COMMENT, self.source[self.index:end])
        elif char == ";":
            self._emit(TokenKind.SEPARATOR, char)
        elif char == ",":
            self._emit(TokenKind.COMMA, char)
        elif char == "{":
            self._open_bracket(char, TokenKind.GROUP_START)
        elif char == "}":
            self._close_bracket(char, "{", TokenKind.GROUP_END)
        elif char == "(":
            self._open_bracket(char, TokenKind.SUBEXPR_START)
        elif char == ")":
            self._close_bracket(char, "(", TokenKind.SUBEXPR_END)
        elif char == "`":
            self._scan_continuation()
        elif char == '"':
            self._scan_double_quoted()
        elif char == "'":
            self._scan_single_quoted()
        elif char == "$":
            self._scan_variable()
        elif char == "[":
            self._scan_type()
        elif char == "-" and (
            self._peek(1).isdigit()
            or (self._peek(1) == "." and self._peek(2).isdigit())
        ):
            self._scan_word()
        elif char == "-":
            self._scan_parameter()
        elif char.isalnum() or char == "_" or char == ".":
            self._scan_word()
        else:
            raise self._error(f"Unexpected character {char!r}")

    def _open_bracket(self, char: str, kind: TokenKind) -> None:
        self.brackets.append((char, self.line, self.column))
        self._emit(kind, char)
        if kind == TokenKind.GROUP_START:
            self.depth += 1

    def _close_bracket(self, char: str, opener: str, kind: TokenKind) -> None:
        if not self.brackets or self.brackets[-1][0] != opener:
            raise self._error(f"Unbalanced '{char}'")
        self.brackets.pop()
        if kind == TokenKind.GROUP_END:
            self.depth -= 1
        self._emit(kind, char)

    def _scan_continuation(self) -> None:
        end = self.index + 1
        while end < len(self.source) and self.source[end] in " \t\r":
            end += 1
        if end < len(self.source) and self.source[end] != "\n":
            raise self._error("Backtick outside a string must end the line")
        self._emit(TokenKind.CONTINUATION, self.source[self.index:end + 1])

    def _scan_double_quoted(self) -> None:
        end = self.index + 1
        while end < len(self.source):
            char = self.source[end]
            if char == "`":
                end += 2
                continue
            if char == '"':
                if end + 1 < len(self.source) and self.source[end + 1] == '"':
                    end += 2
                    continue
                self._emit(TokenKind.STRING, self.source[self.index:end + 1])
                return
            end += 1
        raise self._error("Unterminated string literal")

    def _scan_single_quoted(self) -> None:
        end = self.index + 1
        while end < len(self.source):
            if self.source[end] == "'":
                if end + 1 < len(self.source) and self.source[end + 1] == "'":
                    end += 2
                    continue
                self._emit(TokenKind.STRING, self.source[self.index:end + 1])
                return
            end += 1
        raise self._error("Unterminated string literal")

    def _scan_variable(self) -> None:
        end = self.index + 1
        if self._peek(1) == "{":
            close = self.source.find("}", end)
            if close == -1 or "\n" in self.source[end:close]:
                raise self._error("Unterminated ${...} variable")
            end = close + 1
        else:
            while end < len(self.source) and _NAME_CHARS.match(self.source[end]):
                end += 1
            if end == self.index + 1:
                raise self._error("Expected a variable name after '$'")
        # member access: $item.title.text
        while (
            end + 1 < len(self.source)
            and self.source[end] == "."
            and _NAME_CHARS.match(self.source[end + 1])
        ):
            end += 1
            while end < len(self.source) and _NAME_CHARS.match(self.source[end]):
                end += 1
        self._emit(TokenKind.VARIABLE, self.source[self.index:end])

    def _scan_type(self) -> None:
        close = self.source.find("]", self.index)
        if close == -1:
            raise self._error("Unterminated type cast")
        name = self.source[self.index + 1:close]
        if not name or not re.match(r"^[A-Za-z][\w.]*$", name):
            raise self._error(f"Invalid type name {name!r}")
        self._emit(TokenKind.TYPE, self.source[self.index:close + 1])

    def _scan_parameter(self) -> None:
        end = self.index + 1
        if end >= len(self.source) or not (
            self.source[end].isalpha() or self.source[end] == "_"
        ):
            raise self._error("Expected a parameter name after '-'")
        while end < len(self.source) and (
            _NAME_CHARS.match(self.source[end]) or self.source[end] in "-.:"
        ):
            end += 1
        self._emit(TokenKind.PARAMETER, self.source[self.index:end])

    def _scan_word(self) -> None:
        end = self.index
        while end < len(self.source) and self.source[end] not in _WORD_DELIMITERS:
            end += 1
        text = self.source[self.index:end]
        if _NUMBER_PATTERN.match(text):
            kind = TokenKind.NUMBER
        elif self._in_command_position():
            kind = TokenKind.COMMAND
        else:
            kind = TokenKind.ARGUMENT
        self._emit(kind, text)


def tokenize(source: str, correlation_id: Optional[str] = None) -> List[Token]:
    """Tokenize block source text with a fresh ``ScriptTokenizer``."""
    return ScriptTokenizer(correlation_id).tokenize(source)


def significant_tokens(tokens: List[Token]) -> List[Token]:
    """Drop comments and line continuations, which carry no meaning."""
    return [
        token for token in tokens
        if token.kind not in (TokenKind.COMMENT, TokenKind.CONTINUATION)
    ]
