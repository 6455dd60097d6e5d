"""Element building and document assembly.

Key Components:
    ElementBuilder: Classifies builder arguments into attributes, namespace
        declarations and content, and builds elements
    DocumentAssembler: Runs one document build from a root tag and content
"""

from .builder import ArgumentStream, ElementBuilder, argument_name, is_flag
from .document import DocumentAssembler

__all__ = [
    "ArgumentStream",
    "DocumentAssembler",
    "ElementBuilder",
    "argument_name",
    "is_flag",
]
