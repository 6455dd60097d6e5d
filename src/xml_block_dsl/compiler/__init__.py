"""Compilation of embedded content blocks.

Key Components:
    TokenClassifier / classify: Find bare words that are element references
    rewrite / splice_token: Rewrite element references into constructor calls
    BlockCompiler: Tokenize, classify and rewrite a block, with caching
    CompiledBlock: Immutable, reusable result of compiling a block
"""

from .classifier import Resolver, TokenClassifier, classify, is_dud
from .compiler import BlockCompiler, CompiledBlock
from .rewriter import (
    quote_literal,
    report_unresolved,
    resolve_dud,
    rewrite,
    splice_token,
)

__all__ = [
    "BlockCompiler",
    "CompiledBlock",
    "Resolver",
    "TokenClassifier",
    "classify",
    "is_dud",
    "quote_literal",
    "report_unresolved",
    "resolve_dud",
    "rewrite",
    "splice_token",
]
