"""Conversion between built trees and lxml.etree.

Built trees keep namespace declarations as ``xmlns:`` attributes; lxml keeps
them as ``nsmap`` entries fixed at element creation. The conversion moves
declarations between the two forms and places text in ``text``/``tail``.
"""

from typing import Dict, List, Optional, Union

from lxml import etree

from xml_block_dsl.shared import get_logger

from .nodes import (
    XML_NAMESPACE,
    XMLNS_NAMESPACE,
    Attribute,
    Document,
    Element,
    Node,
    QualifiedName,
    Text,
)

logger = get_logger(__name__, component="serializer")


def _lxml_name(name: QualifiedName) -> str:
    if name.namespace_uri is None and ":" in name.local_name:
        # unresolved prefix reference: lxml rejects colons in local names
        local_name = name.local_name.split(":", 1)[1] or name.local_name.replace(":", "_")
        logger.warning(
            "Unresolved prefixed name serialized without its prefix",
            extra={"qualified_name": name.local_name, "serialized_as": local_name},
        )
        return local_name
    return name.clark


def _captures_unqualified(element: Element) -> bool:
    """Whether a default namespace on ``element`` would capture an unqualified descendant.

    lxml cannot write ``xmlns=""``, so such a subtree must not use a default
    namespace.
    """
    return any(
        descendant.namespace_uri is None
        for descendant in element.iter_elements()
        if descendant is not element
    )


def _free_prefix(*taken: Dict[Optional[str], str]) -> str:
    index = 0
    while any(f"ns{index}" in bindings for bindings in taken):
        index += 1
    return f"ns{index}"


def to_lxml(
    element: Element,
    parent: Optional["etree._Element"] = None,
    in_scope: Optional[Dict[Optional[str], str]] = None,
) -> "etree._Element":
    """Convert an ``Element`` (and its subtree) to an lxml element.

    Args:
        element: Element to convert
        parent: lxml parent to attach the new element to
        in_scope: Prefix to URI bindings already declared by ancestors

    Returns:
        The new lxml element
    """
    in_scope = dict(in_scope or {})
    nsmap: Dict[Optional[str], str] = {
        prefix: uri for prefix, uri in element.namespace_declarations.items()
    }
    uri = element.tag.namespace_uri
    if (
        uri is not None
        and uri != XML_NAMESPACE
        and uri not in nsmap.values()
        and in_scope.get(None) != uri
        and uri not in in_scope.values()
        and None not in nsmap
    ):
        if _captures_unqualified(element):
            nsmap[_free_prefix(nsmap, in_scope)] = uri
        else:
            nsmap[None] = uri
    in_scope.update(nsmap)

    tag = _lxml_name(element.tag)
    if parent is None:
        lxml_element = etree.Element(tag, nsmap=nsmap or None)
    else:
        lxml_element = etree.SubElement(parent, tag, nsmap=nsmap or None)

    for attribute in element.attributes:
        if attribute.is_namespace_declaration:
            continue
        lxml_element.set(_lxml_name(attribute.name), attribute.value)

    last_child: Optional["etree._Element"] = None
    for child in element.children:
        if isinstance(child, Text):
            if last_child is None:
                lxml_element.text = (lxml_element.text or "") + child.value
            else:
                last_child.tail = (last_child.tail or "") + child.value
        else:
            last_child = to_lxml(child, lxml_element, in_scope)

    return lxml_element


def document_to_lxml(document: Document) -> "etree._ElementTree":
    return etree.ElementTree(to_lxml(document.root))


def from_lxml(
    lxml_element: "etree._Element",
    parent_nsmap: Optional[Dict[Optional[str], str]] = None,
) -> Element:
    """Convert an lxml element (and its subtree) to an ``Element``.

    Comments and processing instructions are dropped; their tails are kept.
    """
    if not isinstance(lxml_element.tag, str):
        raise ValueError("Only element nodes can be converted")

    parent_nsmap = parent_nsmap or {}
    attributes: List[Attribute] = []
    for prefix, uri in lxml_element.nsmap.items():
        if prefix is not None and parent_nsmap.get(prefix) != uri:
            attributes.append(Attribute(QualifiedName(prefix, XMLNS_NAMESPACE), uri))
    for name, value in lxml_element.attrib.items():
        attributes.append(Attribute(QualifiedName.parse(name), value))

    children: List[Node] = []
    if lxml_element.text:
        children.append(Text(lxml_element.text))
    for child in lxml_element:
        if isinstance(child.tag, str):
            children.append(from_lxml(child, lxml_element.nsmap))
        if child.tail:
            children.append(Text(child.tail))

    return Element(QualifiedName.parse(lxml_element.tag), tuple(attributes), tuple(children))


def to_bytes(node: Union[Document, Element], pretty_print: bool = True) -> bytes:
    """Serialize a document (with declaration) or a bare element.

    lxml always declares version 1.0, so any other version is written
    by hand.
    """
    if isinstance(node, Document) and node.version != "1.0":
        declaration = "<?xml version='%s' encoding='%s' standalone='%s'?>\n" % (
            node.version, node.encoding, node.standalone
        )
        body = etree.tostring(
            document_to_lxml(node),
            xml_declaration=False,
            encoding=node.encoding,
            pretty_print=pretty_print,
        )
        return declaration.encode(node.encoding) + body
    if isinstance(node, Document):
        return etree.tostring(
            document_to_lxml(node),
            xml_declaration=True,
            encoding=node.encoding,
            standalone=node.standalone == "yes",
            pretty_print=pretty_print,
        )
    return etree.tostring(to_lxml(node), encoding="utf-8", pretty_print=pretty_print)


def to_string(node: Union[Document, Element], pretty_print: bool = True) -> str:
    """Serialize to text, decoding with the document's declared encoding."""
    encoding = node.encoding if isinstance(node, Document) else "utf-8"
    return to_bytes(node, pretty_print=pretty_print).decode(encoding)
