"""Tests for the command table and built-in commands."""

import re
from datetime import datetime

import pytest

from xml_block_dsl.building import DocumentAssembler
from xml_block_dsl.runtime import (
    CommandInvocation,
    CommandTable,
    ELEMENT_COMMAND,
    ScriptBlock,
    bind_parameters,
)
from xml_block_dsl.shared import CommandNotFoundError, ScriptRuntimeError
from xml_block_dsl.tree import Element, Namespace, NamespaceRegistry, QualifiedName


def invoke(name, *args, context=None, registry=None):
    context = context or DocumentAssembler().new_context()
    return context.commands.invoke(
        name, list(args), context, context.root_scope, registry or NamespaceRegistry()
    )


class TestBindParameters:
    """Test splitting of named and positional arguments."""

    def test_switches_and_options(self):
        """Test switches, options and positional values."""
        named, positional = bind_parameters(
            ["a", "-utcnow", "-Format:", "%Y", 3],
            switches=("UtcNow",),
            options=("Format",),
        )

        assert named == {"utcnow": True, "format": "%Y"}
        assert positional == ["a", 3]

    def test_unknown_parameters_stay_positional(self):
        """Test that unlisted flags are not consumed."""
        named, positional = bind_parameters(["-other", "x"], options=("Format",))

        assert named == {}
        assert positional == ["-other", "x"]

    def test_option_without_value(self):
        """Test an option at the end of the arguments."""
        with pytest.raises(ScriptRuntimeError, match="requires a value"):
            bind_parameters(["-Separator"], options=("Separator",))


class TestCommandTable:
    """Test registration and resolution."""

    def test_builtins_registered(self):
        """Test the built-in commands and aliases."""
        table = CommandTable()

        assert table.names() == [
            "ForEach-Item",
            "Get-Date",
            "Join-Text",
            "New-XElement",
            "New-XNamespace",
            "Write-Output",
        ]
        assert len(table) == 6
        assert table.can_resolve("xe")
        assert table.can_resolve("ns")
        assert table.lookup("xe").name == ELEMENT_COMMAND

    def test_without_builtins(self):
        """Test an empty table."""
        table = CommandTable(register_builtins=False)

        assert len(table) == 0
        assert not table.can_resolve(ELEMENT_COMMAND)

    def test_case_sensitivity(self):
        """Test case-insensitive and case-sensitive resolution."""
        assert CommandTable().can_resolve("new-xelement")
        assert not CommandTable(case_insensitive=False).can_resolve("new-xelement")
        assert "Write-Output" in CommandTable()
        assert 42 not in CommandTable()

    def test_register_and_unregister(self):
        """Test adding and removing a command with aliases."""
        table = CommandTable()
        version = table.version

        table.register("Get-Title", lambda: "t", aliases=("gt",), description="Title")

        assert table.can_resolve("gt")
        assert table.version > version
        assert "Get-Title" in table.names()

        table.unregister("gt")

        assert not table.can_resolve("Get-Title")
        assert not table.can_resolve("gt")

    def test_register_validation(self):
        """Test invalid registrations."""
        table = CommandTable()

        with pytest.raises(ValueError, match="non-empty word"):
            table.register("", lambda: None)
        with pytest.raises(ValueError, match="non-empty word"):
            table.register("Get Title", lambda: None)
        with pytest.raises(TypeError, match="callable"):
            table.register("Get-Title", "not callable")

    def test_unknown_command(self):
        """Test lookup and removal of unknown names."""
        table = CommandTable()

        with pytest.raises(CommandNotFoundError):
            table.lookup("Nope-Command")
        with pytest.raises(CommandNotFoundError):
            table.unregister("Nope-Command")

    def test_registering_a_word_stops_it_being_an_element(self):
        """Test that a registered bare word resolves as a command."""
        table = CommandTable()
        assert not table.can_resolve("title")

        table.register("title", lambda: "x")

        assert table.can_resolve("Title")

    def test_plain_function_errors_wrapped(self):
        """Test that argument errors of plain commands become runtime errors."""
        context = DocumentAssembler().new_context()
        context.commands.register("Take-One", lambda value: value)

        with pytest.raises(ScriptRuntimeError, match="Command Take-One failed"):
            invoke("Take-One", 1, 2, context=context)

    def test_invocation_passed(self):
        """Test commands receiving the invocation."""
        context = DocumentAssembler().new_context()
        seen = []
        context.commands.register("Show-Invocation", seen.append, pass_invocation=True)

        invoke("show-invocation", "a", context=context)

        assert isinstance(seen[0], CommandInvocation)
        assert seen[0].name == "show-invocation"
        assert seen[0].args == ["a"]
        assert seen[0].context is context


class TestBuiltins:
    """Test built-in command behavior."""

    def test_new_xelement(self):
        """Test element construction with spread argument lists."""
        element = invoke(ELEMENT_COMMAND, "guid", ["-isPermaLink", "true"])

        assert isinstance(element, Element)
        assert element.tag == QualifiedName("guid")
        assert element.get_attribute("isPermaLink") == "true"

    def test_new_xelement_resolves_prefix(self):
        """Test that a plain tag is resolved against the registry."""
        element = invoke("xe", "dc:rights", registry=NamespaceRegistry({"dc": "urn:dc"}))

        assert element.tag == QualifiedName("rights", "urn:dc")

    def test_new_xelement_requires_name(self):
        """Test missing element names."""
        with pytest.raises(ScriptRuntimeError, match="requires an element name"):
            invoke(ELEMENT_COMMAND)
        with pytest.raises(ScriptRuntimeError, match="requires an element name"):
            invoke(ELEMENT_COMMAND, None)

    def test_new_xnamespace(self):
        """Test namespace values."""
        assert invoke("ns", "urn:x") == Namespace("urn:x")

        with pytest.raises(ScriptRuntimeError, match="exactly one namespace URI"):
            invoke("New-XNamespace")
        with pytest.raises(ScriptRuntimeError, match="exactly one namespace URI"):
            invoke("New-XNamespace", "a", "b")

    def test_foreach_item(self):
        """Test running a block per item."""
        result = invoke("ForEach-Item", [1, 2, 3], ScriptBlock("$_"))

        assert result == [1, 2, 3]

    def test_foreach_item_single_and_none(self):
        """Test scalar and null item lists."""
        assert invoke("ForEach-Item", "x", ScriptBlock("$_")) == ["x"]
        assert invoke("ForEach-Item", None, ScriptBlock("$_")) == []

    def test_foreach_item_validation(self):
        """Test bad ForEach-Item arguments."""
        with pytest.raises(ScriptRuntimeError, match="expects an item list and a block"):
            invoke("ForEach-Item", [1])
        with pytest.raises(ScriptRuntimeError, match="expects a block"):
            invoke("ForEach-Item", [1], "not a block")

    def test_write_output(self):
        """Test emitting arguments."""
        assert invoke("Write-Output", 1, "a") == [1, "a"]

    def test_join_text(self):
        """Test joining values with a separator."""
        assert invoke("Join-Text", ["a", None, "b"], "c", "-Separator", ", ") == "a, b, c"
        assert invoke("Join-Text", "a", "b") == "ab"

    def test_get_date(self):
        """Test formatted and ISO dates."""
        assert invoke("Get-Date", "-Format", "%Y") == str(datetime.now().year)
        assert re.match(r"^\d{4}-\d{2}-\d{2}T", invoke("Get-Date", "-UtcNow"))
        assert invoke("Get-Date", "-UtcNow").endswith("+00:00")

        with pytest.raises(ScriptRuntimeError, match="unexpected arguments"):
            invoke("Get-Date", "tomorrow")
