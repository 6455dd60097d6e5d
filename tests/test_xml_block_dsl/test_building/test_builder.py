"""Tests for argument classification and element construction."""

import pytest
from lxml import etree

from xml_block_dsl.building import ArgumentStream, DocumentAssembler, argument_name, is_flag
from xml_block_dsl.runtime import ScriptBlock
from xml_block_dsl.shared import (
    BuildDepthError,
    DiagnosticCode,
    DuplicateAttributeError,
    MalformedArgumentError,
    NamespaceCollisionError,
    XmlBlockConfig,
)
from xml_block_dsl.tree import (
    XML_NAMESPACE,
    XMLNS_NAMESPACE,
    Attribute,
    Element,
    Namespace,
    NamespaceRegistry,
    QualifiedName,
    Text,
)

ATOM = "http://www.w3.org/2005/Atom"
DC = "http://purl.org/dc/elements/1.1"


def build(tag, *args, config=None, registry=None, parameters=None):
    context = DocumentAssembler(config).new_context(parameters)
    registry = NamespaceRegistry() if registry is None else registry
    return context.builder.build(tag, list(args), registry), context


def codes(context):
    return [entry.code for entry in context.diagnostics]


class TestArgumentHelpers:
    """Test flag detection and argument names."""

    @pytest.mark.parametrize(
        "value, expected",
        [("-isPermaLink", True), ("-c", True), ("-_x", True), ("-5", False),
         ("-", False), ("name", False), (None, False), (3, False)],
    )
    def test_is_flag(self, value, expected):
        """Test which values look like flags."""
        assert is_flag(value) is expected

    def test_argument_name(self):
        """Test stripping one leading dash and one trailing colon."""
        assert argument_name("-dc:") == "dc"
        assert argument_name("-xmlns:dc") == "xmlns:dc"
        assert argument_name("title") == "title"
        assert argument_name("--x") == "-x"


class TestAttributes:
    """Test flag and value pairs."""

    def test_guid_with_attribute_and_content(self):
        """Test attribute followed by a content block."""
        element, _ = build("guid", "-isPermaLink", "true", ScriptBlock('"http://e/1"'))

        assert element.attributes == (Attribute(QualifiedName("isPermaLink"), "true"),)
        assert element.text == "http://e/1"

    def test_flag_without_value_is_dropped(self):
        """Test that a flag followed by another flag is skipped."""
        element, context = build("item", "-foo", "-bar", "baz")

        assert element.attributes == (Attribute(QualifiedName("bar"), "baz"),)
        assert codes(context) == []

    def test_attribute_order_preserved(self):
        """Test insertion order of attributes."""
        element, _ = build("a", "-z", 1, "-a", 2.5, "-m", True)

        assert [(a.name.local_name, a.value) for a in element.attributes] == [
            ("z", "1"), ("a", "2.5"), ("m", "True"),
        ]

    def test_negative_number_is_a_value(self):
        """Test that a negative number does not look like a flag."""
        element, _ = build("point", "-x", "-5")

        assert element.get_attribute("x") == "-5"

    def test_block_value_is_executed(self):
        """Test a block in value position yields the attribute text."""
        element, _ = build("a", "-value", ScriptBlock('"x"; "y"'))

        assert element.get_attribute("value") == "xy"
        assert element.children == ()

    def test_element_and_text_values(self):
        """Test values taken from nodes and lists."""
        node = Element(QualifiedName("x"), children=(Text("t"),))

        element, _ = build("a", "-e", node, "-t", Text("v"), "-l", ["a", None, 1])

        assert element.get_attribute("e") == "t"
        assert element.get_attribute("t") == "v"
        assert element.get_attribute("l") == "a1"

    def test_prefixed_attribute(self):
        """Test attribute prefix resolution."""
        element, context = build(
            "a", "-dc:date", "2020", "-lang", "en",
            registry=NamespaceRegistry({"dc": DC, "": ATOM}),
        )

        assert element.get_attribute(QualifiedName("date", DC)) == "2020"
        # the default namespace never applies to attributes
        assert element.get_attribute(QualifiedName("lang")) == "en"
        assert codes(context) == []

    def test_unresolved_attribute_prefix(self):
        """Test an unbound attribute prefix keeps the literal name."""
        element, context = build("a", "-zz:date", "2020")

        assert element.get_attribute("zz:date") == "2020"
        assert codes(context) == [DiagnosticCode.UNRESOLVED_PREFIX]

    def test_qualified_name_head(self):
        """Test a QualifiedName as attribute name."""
        element, _ = build("a", QualifiedName("lang", XML_NAMESPACE), "en")

        assert element.get_attribute("xml:lang") == "en"


class TestDuplicateAttributes:
    """Test each duplicate attribute policy."""

    def test_reject(self):
        """Test the default policy raises."""
        with pytest.raises(DuplicateAttributeError):
            build("a", "-id", "1", "-id", "2")

    @pytest.mark.parametrize("policy, expected", [("FIRST", "1"), ("LAST", "2")])
    def test_first_and_last(self, policy, expected):
        """Test keeping one of the values with a diagnostic."""
        config = XmlBlockConfig.from_dict({"builder": {"duplicate_attribute_policy": policy}})

        element, context = build("a", "-id", "1", "-id", "2", config=config)

        assert element.get_attribute("id") == expected
        assert len(element.attributes) == 1
        assert codes(context) == [DiagnosticCode.DUPLICATE_ATTRIBUTE]


class TestContent:
    """Test content blocks and direct children."""

    def test_leading_block(self):
        """Test a block in head position."""
        element, _ = build("title", ScriptBlock('"Test RSS Feed"'))

        assert element.children == (Text("Test RSS Feed"),)

    @pytest.mark.parametrize("marker", ["-Content", "-c", "-CONT", "-content:"])
    def test_content_marker(self, marker):
        """Test the content marker and its prefixes."""
        element, _ = build("title", marker, ScriptBlock('"x"'))

        assert element.text == "x"
        assert element.attributes == ()

    def test_content_marker_without_block_is_attribute(self):
        """Test that the marker only applies to blocks."""
        element, _ = build("a", "-c", "x")

        assert element.get_attribute("c") == "x"

    def test_block_output_converted(self):
        """Test scalars become text and elements stay elements."""
        element, _ = build("a", ScriptBlock("1; 2.5; $true; b"))

        assert element.children[:3] == (Text("1"), Text("2.5"), Text("True"))
        assert element.children[3].tag == QualifiedName("b")

    def test_direct_children(self):
        """Test nodes, lxml elements and None in the argument list."""
        lxml_child = etree.fromstring('<c k="v">t</c>')

        element, _ = build("a", Element(QualifiedName("b")), None, Text("x"), lxml_child)

        assert [type(child) for child in element.children] == [Element, Text, Element]
        assert element.children[2].get_attribute("k") == "v"
        assert element.children[2].text == "t"

    def test_python_block(self):
        """Test a callable content block."""
        element, _ = build("a", lambda block: [block.element("b"), "t"])

        assert element.find("b") is not None
        assert element.text == "t"

    def test_unsupported_content(self):
        """Test a value that cannot become content."""
        element, context = build("a", lambda block: object())

        assert element.children == ()
        assert codes(context) == [DiagnosticCode.MALFORMED_ARGUMENT]


class TestNamespaces:
    """Test namespace declarations."""

    def test_prefix_declaration(self):
        """Test declaring a prefix used by a nested block."""
        registry = NamespaceRegistry()

        element, _ = build(
            "channel", "-dc", Namespace(DC), ScriptBlock('dc:rights { "CC" }'),
            registry=registry,
        )

        assert element.attributes == (Attribute(QualifiedName("dc", XMLNS_NAMESPACE), DC),)
        assert element.namespace_declarations == {"dc": DC}
        assert element.find(QualifiedName("rights", DC)).text == "CC"
        assert registry.get("dc") == DC

    def test_xmlns_prefix_form(self):
        """Test the ``-xmlns:prefix`` spelling."""
        element, _ = build("a", "-xmlns:dc", Namespace(DC))

        assert element.namespace_declarations == {"dc": DC}

    def test_default_namespace(self):
        """Test ``-xmlns`` binds the default namespace for nested elements."""
        registry = NamespaceRegistry()

        element, _ = build("feed", "-xmlns", Namespace(ATOM), ScriptBlock("title"), registry=registry)

        assert element.attributes == ()
        assert registry.get("") == ATOM
        assert element.elements[0].tag == QualifiedName("title", ATOM)

    def test_invalid_prefix(self):
        """Test a prefix containing a colon."""
        element, context = build("a", "-a:b", Namespace(DC))

        assert element.attributes == ()
        assert codes(context) == [DiagnosticCode.MALFORMED_ARGUMENT]

    def test_collision_warns(self):
        """Test rebinding a prefix under the default policy."""
        registry = NamespaceRegistry({"dc": "urn:one"})

        element, context = build("a", "-dc", Namespace("urn:two"), registry=registry)

        assert element.namespace_declarations == {"dc": "urn:two"}
        assert registry.get("dc") == "urn:one"
        assert codes(context) == [DiagnosticCode.NAMESPACE_COLLISION]

    def test_collision_strict(self):
        """Test rebinding a prefix under the strict policy."""
        registry = NamespaceRegistry({"dc": "urn:one"})

        with pytest.raises(NamespaceCollisionError):
            build("a", "-dc", Namespace("urn:two"), registry=registry,
                  config=XmlBlockConfig.strict())

    def test_same_binding_is_not_a_collision(self):
        """Test redeclaring a prefix with the same URI."""
        element, context = build(
            "a", "-dc", Namespace(DC), registry=NamespaceRegistry({"dc": DC})
        )

        assert element.namespace_declarations == {"dc": DC}
        assert codes(context) == []

    def test_tag_resolution(self):
        """Test plain and prefixed tags resolve against the registry."""
        registry = NamespaceRegistry({"": ATOM, "dc": DC})

        assert build("title", registry=registry)[0].tag == QualifiedName("title", ATOM)
        assert build("dc:date", registry=registry)[0].tag == QualifiedName("date", DC)
        assert build("{urn:x}y", registry=registry)[0].tag == QualifiedName("y", "urn:x")


class TestMalformedArguments:
    """Test dropped arguments."""

    @pytest.mark.parametrize("args", [("-orphan",), ("-x", None), (42,)])
    def test_dropped_with_diagnostic(self, args):
        """Test arguments without a meaning are dropped."""
        element, context = build("a", *args)

        assert element.attributes == ()
        assert element.children == ()
        assert codes(context) == [DiagnosticCode.MALFORMED_ARGUMENT]
        assert context.diagnostics.entries[0].details["tag"] == "a"

    def test_strict_arguments(self):
        """Test dropped arguments raise when strict."""
        config = XmlBlockConfig().override(builder__strict_arguments=True)

        with pytest.raises(MalformedArgumentError):
            build("a", "-orphan", config=config)

    def test_build_continues_after_malformed(self):
        """Test later arguments still apply."""
        element, _ = build("a", 42, "-id", "1")

        assert element.get_attribute("id") == "1"


class TestDepthAndMetrics:
    """Test nesting limit and counters."""

    def test_max_depth(self):
        """Test nesting deeper than the limit."""
        config = XmlBlockConfig().override(builder__max_depth=2)

        with pytest.raises(BuildDepthError) as exc_info:
            build("a", ScriptBlock("b { c }"), config=config)

        assert exc_info.value.details["max_depth"] == 2

    def test_depth_within_limit(self):
        """Test nesting exactly at the limit."""
        config = XmlBlockConfig().override(builder__max_depth=3)

        element, context = build("a", ScriptBlock("b { c }"), config=config)

        assert element.find("c") is not None
        assert context.depth == 0

    def test_metrics(self):
        """Test element and attribute counters."""
        _, context = build("a", "-x", "1", ScriptBlock("b -y 2; c"))

        assert context.metrics.elements_built == 3
        assert context.metrics.attributes_emitted == 2


class TestArgumentStream:
    """Test arguments produced in chunks while the element is built."""

    def test_chunk_produced_after_earlier_arguments(self):
        """Test a later chunk sees the prefix an earlier chunk declared."""
        registry = NamespaceRegistry()
        seen = []

        def chunks():
            yield ["-dc", Namespace(DC)]
            seen.append(registry.prefixes())
            yield ["-id", "1"]

        element, _ = build("r", ArgumentStream(chunks()), registry=registry)

        assert seen == [["dc"]]
        assert element.get_attribute("id") == "1"
        assert element.namespace_declarations == {"dc": DC}

    def test_value_in_next_chunk(self):
        """Test an attribute whose value comes from the following chunk."""
        element, context = build("r", ArgumentStream(iter([["-id"], [], ["1"]])))

        assert element.get_attribute("id") == "1"
        assert codes(context) == []

    def test_stream_between_arguments(self):
        """Test arguments before and after a stream keep their order."""
        element, _ = build(
            "r", "-a", "1", ArgumentStream(iter([["-b", "2"]])), "-c", "3"
        )

        assert [attribute.name.local_name for attribute in element.attributes] == [
            "a", "b", "c",
        ]

    def test_empty_stream(self):
        """Test a stream without chunks."""
        element, _ = build("r", ArgumentStream(iter([])))

        assert element == Element(QualifiedName("r"))
