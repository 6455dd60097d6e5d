"""Public API for building documents from content blocks."""

from .documents import (
    XDocumentBuilder,
    block,
    compile_template,
    new_document,
    new_element,
)

__all__ = [
    "XDocumentBuilder",
    "block",
    "compile_template",
    "new_document",
    "new_element",
]
