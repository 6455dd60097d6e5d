"""XML Block DSL.

Describe XML documents with nested, ordinary-looking statements: a bare word
is an element, a ``-flag value`` pair is an attribute, a ``{ ... }`` block is
element content, and ``-prefix [ns]"uri"`` declares a namespace.

Progressive API Disclosure:
- Level 1: Simple functions - new_document(), new_element(), compile_template()
- Level 2: Configured builder - XDocumentBuilder class
- Level 3: Components - compiler, runtime and building sub-packages
"""

__version__ = "0.1.0"
__author__ = "XML Block DSL Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Configured builder
from .api import XDocumentBuilder, block, compile_template, new_document, new_element
from .compiler import CompiledBlock

# Configuration classes for advanced usage
from .shared.config import XmlBlockConfig
from .shared.errors import XmlBlockError

# Core result objects for all API levels
from .tree import Document, Element, Namespace, QualifiedName, Text

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple functions (progressive disclosure entry point)
    "new_document",
    "new_element",
    "compile_template",
    "block",

    # Level 2: Configured builder class
    "XDocumentBuilder",

    # Result objects and data structures
    "CompiledBlock",
    "Document",
    "Element",
    "Namespace",
    "QualifiedName",
    "Text",

    # Configuration and errors
    "XmlBlockConfig",
    "XmlBlockError",
]
