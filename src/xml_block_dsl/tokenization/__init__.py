"""Tokenization of embedded xml block source text.

Key Components:
    ScriptTokenizer: Converts block source text into positioned tokens
    Token: A token with kind, raw text, line, column, length and nesting depth
    TokenKind: Enumeration of the token kinds of the embedded language
"""

from .tokenizer import (
    ScriptTokenizer,
    Token,
    TokenKind,
    significant_tokens,
    tokenize,
)

__all__ = [
    "ScriptTokenizer",
    "Token",
    "TokenKind",
    "significant_tokens",
    "tokenize",
]
