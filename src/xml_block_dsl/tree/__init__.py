"""XML tree types, namespace registry and lxml serialization.

Key Components:
    QualifiedName: (local name, namespace URI) pair naming tags and attributes
    Namespace: Namespace URI value used in namespace declarations
    Element / Text / Attribute: Immutable tree nodes produced by the builder
    Document: XML declaration plus root element
    NamespaceRegistry: Prefix to URI table scoped to one document build
"""

from .nodes import (
    XML_NAMESPACE,
    XMLNS_NAMESPACE,
    Attribute,
    Document,
    Element,
    Namespace,
    Node,
    QualifiedName,
    Text,
)
from .namespaces import DEFAULT_PREFIX, NamespaceRegistry
from .serialize import from_lxml, to_bytes, to_lxml, to_string

__all__ = [
    "XML_NAMESPACE",
    "XMLNS_NAMESPACE",
    "Attribute",
    "DEFAULT_PREFIX",
    "Document",
    "Element",
    "Namespace",
    "NamespaceRegistry",
    "Node",
    "QualifiedName",
    "Text",
    "from_lxml",
    "to_bytes",
    "to_lxml",
    "to_string",
]
