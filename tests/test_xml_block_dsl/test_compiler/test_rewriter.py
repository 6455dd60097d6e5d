"""Tests for source rewriting, including splice ordering."""

from xml_block_dsl.compiler import (
    classify,
    quote_literal,
    resolve_dud,
    rewrite,
    splice_token,
)
from xml_block_dsl.shared import DiagnosticCode, DiagnosticLog
from xml_block_dsl.tokenization import tokenize
from xml_block_dsl.tree import NamespaceRegistry

ATOM = "http://www.w3.org/2005/Atom"
DC = "http://purl.org/dc/elements/1.1"
CTOR = "New-XElement"


def no_commands(name: str) -> bool:
    return False


def duds_of(source):
    return classify(tokenize(source), no_commands)


def rewrite_forward(source, duds):
    """Splice duds first-to-last using their original coordinates."""
    lines = source.split("\n")
    for token in sorted(duds, key=lambda t: (t.line, t.column)):
        splice_token(lines, token, f"{CTOR} {quote_literal(token.text)}")
    return "\n".join(lines)


class TestQuoting:
    """Test literal quoting."""

    def test_quote_literal(self):
        """Test single quotes are doubled."""
        assert quote_literal("title") == "'title'"
        assert quote_literal("it's") == "'it''s'"

    def test_splice_token(self):
        """Test replacing one token span in place."""
        lines = ["  title { }"]
        token = duds_of("  title { }")[0]

        splice_token(lines, token, "X")

        assert lines == ["  X { }"]


class TestRewrite:
    """Test rewriting element references into constructor calls."""

    def test_zero_duds_returns_source_unchanged(self):
        """Test that a block without duds is returned as is."""
        source = '"Test RSS Feed"\nWrite-Output $x'

        assert rewrite(source, [], NamespaceRegistry(), CTOR) is source
        assert rewrite(source, duds_of(source), NamespaceRegistry(), CTOR) == source

    def test_single_dud(self):
        """Test constructor insertion before the quoted name."""
        source = 'title { "x" }'

        result = rewrite(source, duds_of(source), NamespaceRegistry(), CTOR)

        assert result == "New-XElement 'title' { \"x\" }"

    def test_default_namespace_applied(self):
        """Test unprefixed names take the default namespace."""
        source = "title { }"
        registry = NamespaceRegistry({"": ATOM})

        result = rewrite(source, duds_of(source), registry, CTOR)

        assert result == "New-XElement '{%s}title' { }" % ATOM

    def test_prefixed_name_resolved(self):
        """Test prefix lookup in the registry."""
        source = "dc:rights { }"
        registry = NamespaceRegistry({"dc": DC})

        result = rewrite(source, duds_of(source), registry, CTOR)

        assert result == "New-XElement '{%s}rights' { }" % DC

    def test_unresolved_prefix_falls_back_and_reports(self):
        """Test an unbound prefix keeps the token text and adds a diagnostic."""
        source = "dc:rights { }"
        diagnostics = DiagnosticLog()

        result = rewrite(source, duds_of(source), NamespaceRegistry(), CTOR, diagnostics)

        assert result == "New-XElement 'dc:rights' { }"
        entries = diagnostics.by_code(DiagnosticCode.UNRESOLVED_PREFIX)
        assert len(entries) == 1
        assert entries[0].position == {"line": 1, "column": 1}

    def test_custom_constructor_name(self):
        """Test the inserted constructor name is configurable."""
        source = "title"

        assert rewrite(source, duds_of(source), NamespaceRegistry(), "xe") == "xe 'title'"

    def test_multiline_positions(self):
        """Test duds on several lines keep their own line."""
        source = "channel {\n}\n  item\nlink"

        result = rewrite(source, duds_of(source), NamespaceRegistry(), CTOR)

        assert result.split("\n") == [
            "New-XElement 'channel' {",
            "}",
            "  New-XElement 'item'",
            "New-XElement 'link'",
        ]

    def test_resolve_dud(self):
        """Test resolution of a single dud."""
        token = duds_of("dc:rights")[0]

        assert resolve_dud(token, NamespaceRegistry({"dc": DC})) == ("{%s}rights" % DC, True)
        assert resolve_dud(token, NamespaceRegistry()) == ("dc:rights", False)


class TestSpliceOrder:
    """Test that reverse order is required for same-line duds."""

    def test_two_duds_on_one_line(self):
        """Test both same-line duds are rewritten."""
        source = "title; link"

        result = rewrite(source, duds_of(source), NamespaceRegistry(), CTOR)

        assert result == "New-XElement 'title'; New-XElement 'link'"

    def test_forward_order_corrupts_reverse_order_does_not(self):
        """Test the contrast between forward and reverse splicing directly."""
        source = "a; bb; ccc"
        duds = duds_of(source)
        expected = "New-XElement 'a'; New-XElement 'bb'; New-XElement 'ccc'"

        forward = rewrite_forward(source, duds)
        reverse = rewrite(source, duds, NamespaceRegistry(), CTOR)

        assert len(duds) == 3
        assert reverse == expected
        assert forward != expected
        assert "; bb;" in forward

    def test_duds_order_of_input_irrelevant(self):
        """Test that rewrite sorts duds itself."""
        source = "x; y; z"
        duds = duds_of(source)

        result = rewrite(source, list(reversed(duds)), NamespaceRegistry(), CTOR)

        assert result == rewrite(source, duds, NamespaceRegistry(), CTOR)
