"""Immutable XML tree types produced by the element builder.

Names are ``QualifiedName`` pairs of local name and namespace URI rather than
prefixed strings: prefixes only exist in the registry used while building and
in serialized output.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

XMLNS_NAMESPACE = "http://www.w3.org/2000/xmlns/"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


@dataclass(frozen=True)
class QualifiedName:
    """A (local name, optional namespace URI) pair identifying a tag or attribute."""

    local_name: str
    namespace_uri: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.local_name:
            raise ValueError("Local name cannot be empty")
        if self.namespace_uri == "":
            object.__setattr__(self, "namespace_uri", None)

    @classmethod
    def parse(cls, text: Union[str, "QualifiedName"]) -> "QualifiedName":
        """Parse Clark notation (``{uri}local``) or a plain name."""
        if isinstance(text, QualifiedName):
            return text
        text = str(text)
        if text.startswith("{"):
            close = text.find("}")
            if close == -1:
                raise ValueError(f"Malformed qualified name: {text!r}")
            return cls(text[close + 1:], text[1:close] or None)
        return cls(text)

    @property
    def clark(self) -> str:
        if self.namespace_uri:
            return f"{{{self.namespace_uri}}}{self.local_name}"
        return self.local_name

    @property
    def is_qualified(self) -> bool:
        return self.namespace_uri is not None

    def __str__(self) -> str:
        return self.clark


@dataclass(frozen=True)
class Namespace:
    """A namespace URI value, as written with ``[ns]"uri"`` in a block."""

    uri: str

    def __post_init__(self) -> None:
        if not self.uri:
            raise ValueError("Namespace URI cannot be empty")

    def __add__(self, local_name: str) -> QualifiedName:
        return QualifiedName(local_name, self.uri)

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class Attribute:
    """A single attribute of an element."""

    name: QualifiedName
    value: str

    @property
    def is_namespace_declaration(self) -> bool:
        return self.name.namespace_uri == XMLNS_NAMESPACE

    @property
    def display_name(self) -> str:
        """Name as it appears in markup for well-known namespaces, else Clark."""
        if self.name.namespace_uri == XMLNS_NAMESPACE:
            return f"xmlns:{self.name.local_name}"
        if self.name.namespace_uri == XML_NAMESPACE:
            return f"xml:{self.name.local_name}"
        return self.name.clark


@dataclass(frozen=True)
class Text:
    """A text child node."""

    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.value}


def _matches(name: QualifiedName, wanted: Union[str, QualifiedName]) -> bool:
    if isinstance(wanted, QualifiedName):
        return name == wanted
    return name.clark == wanted


@dataclass(frozen=True)
class Element:
    """An XML element with ordered attributes and children.

    Attribute order and child order are insertion order and are preserved by
    serialization.
    """

    tag: QualifiedName
    attributes: Tuple[Attribute, ...] = ()
    children: Tuple["Node", ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.tag, QualifiedName):
            raise TypeError("Element tag must be a QualifiedName")
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def local_name(self) -> str:
        return self.tag.local_name

    @property
    def namespace_uri(self) -> Optional[str]:
        return self.tag.namespace_uri

    @property
    def text(self) -> str:
        """Concatenated direct text children."""
        return "".join(child.value for child in self.children if isinstance(child, Text))

    @property
    def elements(self) -> List["Element"]:
        """Direct element children."""
        return [child for child in self.children if isinstance(child, Element)]

    @property
    def namespace_declarations(self) -> Dict[str, str]:
        """Prefix to URI mapping declared by ``xmlns:`` attributes on this element."""
        return {
            attribute.name.local_name: attribute.value
            for attribute in self.attributes
            if attribute.is_namespace_declaration
        }

    def get_attribute(
        self, name: Union[str, QualifiedName], default: Optional[str] = None
    ) -> Optional[str]:
        """Get attribute value by ``QualifiedName``, Clark name or display name."""
        for attribute in self.attributes:
            if isinstance(name, QualifiedName):
                if attribute.name == name:
                    return attribute.value
            elif name in (attribute.name.clark, attribute.display_name):
                return attribute.value
        return default

    def has_attribute(self, name: Union[str, QualifiedName]) -> bool:
        return self.get_attribute(name) is not None

    def find(self, tag: Union[str, QualifiedName]) -> Optional["Element"]:
        """Find first descendant element with matching tag."""
        return next(
            (element for element in self.iter_elements() if element is not self
             and _matches(element.tag, tag)),
            None,
        )

    def find_all(self, tag: Union[str, QualifiedName]) -> List["Element"]:
        """Find all descendant elements with matching tag, in document order."""
        return [
            element for element in self.iter_elements()
            if element is not self and _matches(element.tag, tag)
        ]

    def iter_elements(self) -> Iterator["Element"]:
        """Iterate over this element and all descendants in document order."""
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter_elements()

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"tag": self.tag.clark}
        if self.attributes:
            result["attributes"] = {
                attribute.display_name: attribute.value for attribute in self.attributes
            }
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result


Node = Union[Text, Element]


@dataclass
class Document:
    """An XML declaration together with a root element.

    ``diagnostics`` holds every tolerated problem reported while the document
    was built.
    """

    root: Element
    version: str = "1.0"
    encoding: str = "utf-8"
    standalone: str = "yes"
    diagnostics: List[Any] = field(default_factory=list)
    metrics: Optional[Any] = None
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.standalone, bool):
            self.standalone = "yes" if self.standalone else "no"
        if self.version not in ("1.0", "1.1"):
            raise ValueError("version must be '1.0' or '1.1'")
        if self.standalone not in ("yes", "no"):
            raise ValueError("standalone must be 'yes' or 'no'")
        if not isinstance(self.root, Element):
            raise TypeError("Document root must be an Element")

    def iter_elements(self) -> Iterator[Element]:
        return self.root.iter_elements()

    def find(self, tag: Union[str, QualifiedName]) -> Optional[Element]:
        if _matches(self.root.tag, tag):
            return self.root
        return self.root.find(tag)

    def find_all(self, tag: Union[str, QualifiedName]) -> List[Element]:
        return [element for element in self.iter_elements() if _matches(element.tag, tag)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "encoding": self.encoding,
            "standalone": self.standalone,
            "root": self.root.to_dict(),
        }

    def to_lxml(self) -> Any:
        """Convert to an ``lxml.etree._ElementTree``."""
        # Import here to avoid circular dependency
        from .serialize import document_to_lxml
        return document_to_lxml(self)

    def to_string(self, pretty_print: bool = True) -> str:
        """Serialize with an XML declaration."""
        from .serialize import to_string
        return to_string(self, pretty_print=pretty_print)

    def xpath(self, expression: str, namespaces: Optional[Dict[str, str]] = None) -> Any:
        """Evaluate an XPath expression against the serialized tree with lxml."""
        from .serialize import document_to_lxml
        return document_to_lxml(self).xpath(expression, namespaces=namespaces)
