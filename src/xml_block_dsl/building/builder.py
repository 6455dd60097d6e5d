"""Argument classification and element construction.

``ElementBuilder.build`` turns a flat, heterogeneous argument list into an
element. Arguments are consumed from the front of a queue; at each step the
first rule that matches decides what the head (and possibly the item after
it) means:

1. the head is a content block: run it, its output becomes children
2. the next item is a content block and the head names the content marker
   (any leading part of ``CONTENT``, e.g. ``-c``): run the block as content
3. the next item is a ``Namespace``: declare ``xmlns:<head>`` and register
   the prefix
4. the next item looks like a flag (``-name``): the head had no value, drop
   it and let the flag start the next step
5. the next item is present and not null: attribute ``head = item``
6. anything else: drop the head

Each rule consumes one or two items, so the queue always shrinks.

An ``ArgumentStream`` in the queue is expanded one chunk at a time when it
reaches the front, so a namespace declared by an earlier chunk is registered
before later chunks run their nested blocks.
"""

import re
from collections import OrderedDict, deque
from typing import TYPE_CHECKING, Any, Deque, Iterable, List, Optional

from lxml import etree

from xml_block_dsl.shared import (
    BuildDepthError,
    DiagnosticCode,
    DuplicateAttributePolicy,
    DuplicateAttributeError,
    MalformedArgumentError,
    NamespaceCollisionError,
    NamespaceCollisionPolicy,
    get_logger,
)
from xml_block_dsl.tree import (
    DEFAULT_PREFIX,
    XMLNS_NAMESPACE,
    Attribute,
    Element,
    Namespace,
    NamespaceRegistry,
    Node,
    QualifiedName,
    Text,
    from_lxml,
)

if TYPE_CHECKING:
    from xml_block_dsl.runtime import BuildContext

_FLAG_PATTERN = re.compile(r"^-(?!\d)\w")


def argument_name(value: Any) -> str:
    """Name written by an argument: one leading ``-`` and one trailing ``:`` removed."""
    name = str(value)
    if name.startswith("-"):
        name = name[1:]
    if name.endswith(":"):
        name = name[:-1]
    return name


def is_flag(value: Any) -> bool:
    """Whether ``value`` is written like a parameter name (``-name``)."""
    return value is not None and _FLAG_PATTERN.match(str(value)) is not None


class ArgumentStream:
    """Builder arguments produced in chunks, as the builder reaches them."""

    def __init__(self, chunks: Iterable[List[Any]]) -> None:
        self.chunks = iter(chunks)


class ElementBuilder:
    """Builds elements for one document build.

    The namespace registry is passed to every call; namespace declarations
    met while building an element are added to it before that element's
    content blocks run, so nested blocks can use the new prefixes.
    """

    def __init__(self, context: "BuildContext") -> None:
        self.context = context
        self.config = context.config.builder
        self.diagnostics = context.diagnostics
        self.logger = get_logger(__name__, context.correlation_id, "element_builder")

    def build(self, tag: Any, args: List[Any], registry: NamespaceRegistry) -> Element:
        """Build one element.

        Args:
            tag: Element name (``QualifiedName``, Clark notation or plain name)
            args: Builder arguments, consumed in order
            registry: Namespace bindings of the current build

        Returns:
            The finished, immutable element

        Raises:
            BuildDepthError: nesting exceeds ``max_depth``
            NamespaceCollisionError: prefix rebound under the strict policy
            DuplicateAttributeError: repeated attribute under the reject policy
            MalformedArgumentError: dropped argument when ``strict_arguments``
        """
        if isinstance(tag, str) and not tag.startswith("{"):
            tag = registry.resolve(tag)[0]
        tag = QualifiedName.parse(tag)
        self.context.depth += 1
        try:
            if self.context.depth > self.config.max_depth:
                raise BuildDepthError(
                    f"Element nesting deeper than {self.config.max_depth} at '{tag}'",
                    {"tag": tag.clark, "max_depth": self.config.max_depth},
                )
            element = self._build(tag, args, registry)
        finally:
            self.context.depth -= 1

        self.context.metrics.elements_built += 1
        self.context.metrics.attributes_emitted += len(element.attributes)
        if self.logger.is_debug_enabled():
            self.logger.debug(
                "Element built",
                extra={
                    "tag": tag.clark,
                    "attribute_count": len(element.attributes),
                    "child_count": len(element.children),
                    "depth": self.context.depth + 1,
                },
            )
        return element

    def _build(self, tag: QualifiedName, args: List[Any], registry: NamespaceRegistry) -> Element:
        """Consume ``args`` by the rules above."""
        attributes: "OrderedDict[QualifiedName, Attribute]" = OrderedDict()
        children: List[Node] = []
        queue: Deque[Any] = deque(args)
        is_content_block = self.context.executor.is_content_block

        while queue:
            if isinstance(queue[0], ArgumentStream):
                self._expand(queue)
                continue
            head = queue.popleft()

            if is_content_block(head):
                self._add_children(children, self._run(head, registry), tag)
                continue
            if head is None:
                continue
            if isinstance(head, (Element, Text)) or etree.iselement(head):
                self._add_children(children, [head], tag)
                continue
            if not isinstance(head, (str, QualifiedName)):
                self._malformed(f"Argument {head!r} cannot name an attribute", tag, head)
                continue

            self._expand(queue)
            has_second = bool(queue)
            second = queue[0] if has_second else None
            name = head if isinstance(head, QualifiedName) else argument_name(head)

            if is_content_block(second) and self._is_content_marker(name):
                queue.popleft()
                self._add_children(children, self._run(second, registry), tag)
            elif isinstance(second, Namespace):
                queue.popleft()
                self._declare_namespace(attributes, name, second, registry, tag)
            elif is_flag(second):
                # head was a flag without a value
                continue
            elif has_second and second is not None:
                queue.popleft()
                self._add_attribute(
                    attributes, self._attribute_name(name, registry, tag),
                    self._attribute_value(second, registry, tag), tag,
                )
            else:
                self._malformed(f"Argument {head!r} has no value", tag, head)

        return Element(tag, tuple(attributes.values()), tuple(children))

    def _expand(self, queue: Deque[Any]) -> None:
        """Replace streams at the front of ``queue`` with their next chunk."""
        while queue and isinstance(queue[0], ArgumentStream):
            chunk = next(queue[0].chunks, None)
            if chunk is None:
                queue.popleft()
            else:
                queue.extendleft(reversed(chunk))

    # Rules

    def _is_content_marker(self, name: Any) -> bool:
        """Whether ``name`` is a leading part of the content marker."""
        if not isinstance(name, str) or not name:
            return False
        return self.config.content_marker.lower().startswith(name.lower())

    def _run(self, block: Any, registry: NamespaceRegistry) -> List[Any]:
        """Run a content block against the current registry."""
        return self.context.executor.execute(block, registry)

    def _declare_namespace(
        self,
        attributes: "OrderedDict[QualifiedName, Attribute]",
        name: Any,
        namespace: Namespace,
        registry: NamespaceRegistry,
        tag: QualifiedName,
    ) -> None:
        """Declare ``xmlns:<name>`` on the element and register the prefix."""
        prefix = name.local_name if isinstance(name, QualifiedName) else name
        if prefix == "xmlns":
            # default namespace: elements below pick it up through the registry
            self._register(registry, DEFAULT_PREFIX, namespace.uri, tag)
            return
        if prefix.startswith("xmlns:"):
            prefix = prefix[len("xmlns:"):]
        if not prefix or ":" in prefix:
            self._malformed(f"Invalid namespace prefix {name!r}", tag, name)
            return

        self._add_attribute(
            attributes, QualifiedName(prefix, XMLNS_NAMESPACE), namespace.uri, tag
        )
        self._register(registry, prefix, namespace.uri, tag)

    def _register(
        self, registry: NamespaceRegistry, prefix: str, uri: str, tag: QualifiedName
    ) -> None:
        """Add a binding, applying the namespace collision policy."""
        try:
            registry.add(prefix, uri)
        except NamespaceCollisionError as e:
            if self.config.namespace_collision_policy == NamespaceCollisionPolicy.STRICT:
                raise
            self.logger.warning(
                "Namespace prefix rebound, keeping first binding",
                extra={"prefix": prefix, "existing_uri": e.existing_uri, "new_uri": uri},
            )
            self.diagnostics.warning(
                str(e),
                "element_builder",
                DiagnosticCode.NAMESPACE_COLLISION,
                details={"tag": tag.clark, **e.details},
            )

    def _attribute_name(
        self, name: Any, registry: NamespaceRegistry, tag: QualifiedName
    ) -> Optional[QualifiedName]:
        """Resolve an attribute name; an unbound prefix is reported and kept."""
        if isinstance(name, QualifiedName):
            return name
        if not name:
            self._malformed("Empty attribute name", tag, name)
            return None
        qualified_name, resolved = registry.resolve_attribute(name)
        if not resolved:
            self.logger.warning(
                "Unresolved attribute prefix, keeping unqualified name",
                extra={"attribute": name, "tag": tag.clark},
            )
            self.diagnostics.warning(
                f"Prefix of attribute '{name}' is not bound to a namespace",
                "element_builder",
                DiagnosticCode.UNRESOLVED_PREFIX,
                details={"tag": tag.clark, "attribute": name},
            )
        return qualified_name

    def _attribute_value(self, value: Any, registry: NamespaceRegistry, tag: QualifiedName) -> str:
        """Flatten a value to attribute text, running it first if it is a block."""
        if self.context.executor.is_content_block(value):
            value = self._run(value, registry)
        if isinstance(value, (list, tuple)):
            return "".join(self._attribute_value(item, registry, tag) for item in value)
        if isinstance(value, Element):
            return value.text
        if isinstance(value, Text):
            return value.value
        if value is None:
            return ""
        return str(value)

    def _add_attribute(
        self,
        attributes: "OrderedDict[QualifiedName, Attribute]",
        name: Optional[QualifiedName],
        value: str,
        tag: QualifiedName,
    ) -> None:
        """Add an attribute, applying the duplicate attribute policy."""
        if name is None:
            return
        if name not in attributes:
            attributes[name] = Attribute(name, value)
            return

        policy = self.config.duplicate_attribute_policy
        display_name = Attribute(name, value).display_name
        if policy == DuplicateAttributePolicy.REJECT:
            raise DuplicateAttributeError(tag.clark, display_name)
        if policy == DuplicateAttributePolicy.LAST:
            attributes[name] = Attribute(name, value)
        self.logger.warning(
            "Duplicate attribute",
            extra={"tag": tag.clark, "attribute": display_name, "policy": policy.name},
        )
        self.diagnostics.warning(
            f"Duplicate attribute '{display_name}' on '{tag}', kept the {policy.name.lower()} value",
            "element_builder",
            DiagnosticCode.DUPLICATE_ATTRIBUTE,
            details={"tag": tag.clark, "attribute": display_name},
        )

    def _add_children(self, children: List[Node], values: List[Any], tag: QualifiedName) -> None:
        """Append values as child nodes; lists are flattened."""
        for value in values:
            if value is None:
                continue
            if isinstance(value, (Element, Text)):
                children.append(value)
            elif isinstance(value, (list, tuple)):
                self._add_children(children, list(value), tag)
            elif isinstance(value, (str, int, float, bool, Namespace)):
                children.append(Text(str(value)))
            elif etree.iselement(value):
                if isinstance(value.tag, str):
                    children.append(from_lxml(value))
                else:
                    self._malformed("Only lxml element nodes can be content", tag, value)
            else:
                self._malformed(f"Value of type {type(value).__name__} cannot be content", tag, value)

    def _malformed(self, message: str, tag: QualifiedName, value: Any) -> None:
        """Drop a malformed argument, or raise under ``strict_arguments``."""
        if self.config.strict_arguments:
            raise MalformedArgumentError(message, {"tag": tag.clark, "value": repr(value)})
        self.logger.warning(message, extra={"tag": tag.clark})
        self.diagnostics.warning(
            message,
            "element_builder",
            DiagnosticCode.MALFORMED_ARGUMENT,
            details={"tag": tag.clark, "value": repr(value)},
        )

