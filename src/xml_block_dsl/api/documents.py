"""Document building API with progressive disclosure.

Level 1 is a set of module functions that build with a default
configuration; level 2 is ``XDocumentBuilder``, a configured, reusable
builder that owns a command table and a template cache.
"""

import time
from typing import Any, Callable, Dict, Iterable, Optional, Union

from xml_block_dsl.building import DocumentAssembler
from xml_block_dsl.compiler import BlockCompiler, CompiledBlock
from xml_block_dsl.runtime import CommandTable, ScriptBlock
from xml_block_dsl.shared import XmlBlockConfig, get_logger
from xml_block_dsl.tree import Document, Element, NamespaceRegistry, QualifiedName

# Constants for API operations
MS_PER_SECOND = 1000  # Milliseconds per second conversion


def new_document(
    root_tag: Union[str, QualifiedName],
    content: Any = None,
    parameters: Optional[Dict[str, Any]] = None,
    version: Optional[str] = None,
    encoding: Optional[str] = None,
    standalone: Union[str, bool, None] = None,
    config: Optional[XmlBlockConfig] = None,
    correlation_id: Optional[str] = None,
    args: Optional[Iterable[Any]] = None,
) -> Document:
    """Build a document from a root tag and its content.

    Args:
        root_tag: Root element name, plain or in Clark notation
        content: Block source text, ``ScriptBlock``, ``CompiledBlock``,
            Python callable or list of builder arguments
        parameters: Variables available to every block
        version: XML declaration version
        encoding: XML declaration encoding
        standalone: XML declaration standalone flag
        config: Configuration (defaults to ``XmlBlockConfig()``)
        correlation_id: Optional correlation ID for request tracking
        args: Builder arguments for the root, taken before ``content``

    Returns:
        Document with diagnostics and metrics attached

    Examples:
        Nested blocks:
        >>> doc = new_document("rss", '''
        ...     -version "2.0"
        ...     channel { title { "Test RSS Feed" } }
        ... ''')
        >>> doc.find("title").text
        'Test RSS Feed'

        Default namespace from the root tag:
        >>> doc = new_document("{http://www.w3.org/2005/Atom}feed", 'title { "x" }')
        >>> doc.root.elements[0].namespace_uri
        'http://www.w3.org/2005/Atom'

        Prefix declared on the root:
        >>> dc = "http://purl.org/dc/elements/1.1"
        >>> doc = new_document("rss", '-dc [ns]"%s"; channel { dc:rights { "CC-BY" } }' % dc)
        >>> doc.find("{%s}rights" % dc).text
        'CC-BY'
    """
    return XDocumentBuilder(config, correlation_id).build_document(
        root_tag,
        content,
        parameters=parameters,
        version=version,
        encoding=encoding,
        standalone=standalone,
        args=args,
    )


def new_element(
    tag: Union[str, QualifiedName],
    *args: Any,
    namespaces: Optional[Dict[str, str]] = None,
    config: Optional[XmlBlockConfig] = None,
) -> Element:
    """Build one element from builder arguments.

    Examples:
        >>> element = new_element("guid", "-isPermaLink", "true", block('"u"'))
        >>> element.get_attribute("isPermaLink"), element.text
        ('true', 'u')
    """
    return XDocumentBuilder(config).build_element(tag, *args, namespaces=namespaces)


def compile_template(
    source: str,
    namespaces: Optional[Dict[str, str]] = None,
    config: Optional[XmlBlockConfig] = None,
) -> CompiledBlock:
    """Compile block source once so it can be used by many builds."""
    return XDocumentBuilder(config).compile(source, namespaces)


def block(source: str) -> ScriptBlock:
    """Wrap source text as a content block for use in builder arguments."""
    return ScriptBlock(source)


class XDocumentBuilder:
    """Configured document builder for reuse across many builds.

    Attributes:
        config: Complete configuration
        commands: Command table; register custom commands here
        compiler: Block compiler with the template cache
        correlation_id: Correlation ID for request tracking

    Examples:
        Custom commands:
        >>> builder = XDocumentBuilder()
        >>> builder.register_command("Get-Title", lambda: "Hello")
        >>> builder.build_document("page", "title { Get-Title }").find("title").text
        'Hello'

        Template reuse:
        >>> template = builder.compile('item { $_ }')
        >>> docs = [builder.build_document("list", template, parameters={"_": n})
        ...         for n in range(3)]
    """

    def __init__(
        self,
        config: Optional[XmlBlockConfig] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize document builder.

        Args:
            config: Configuration (defaults to ``XmlBlockConfig()``)
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or XmlBlockConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "xdocument_builder")

        self.commands = CommandTable(
            case_insensitive=self.config.runtime.case_insensitive_commands,
            register_builtins=self.config.runtime.register_builtins,
            correlation_id=correlation_id,
        )
        self.compiler = BlockCompiler(
            resolver=self.commands.can_resolve,
            config=self.config.compiler,
            correlation_id=correlation_id,
            resolver_version=lambda: self.commands.version,
        )
        self._assembler = DocumentAssembler(
            self.config, self.commands, self.compiler, correlation_id
        )

        self._build_count = 0
        self._total_processing_time = 0.0

    def register_command(
        self,
        name: str,
        func: Callable[..., Any],
        aliases: Iterable[str] = (),
        pass_invocation: bool = False,
    ) -> None:
        """Make ``name`` callable from block source.

        Same as ``commands.register``; blocks compiled before the
        registration are compiled again on their next use.
        """
        self.commands.register(name, func, aliases, pass_invocation)

    def build_document(
        self,
        root_tag: Union[str, QualifiedName],
        content: Any = None,
        parameters: Optional[Dict[str, Any]] = None,
        version: Optional[str] = None,
        encoding: Optional[str] = None,
        standalone: Union[str, bool, None] = None,
        args: Optional[Iterable[Any]] = None,
    ) -> Document:
        """Build a document; see ``new_document``."""
        start_time = time.time()
        document = self._assembler.build_document(
            root_tag,
            version=version,
            encoding=encoding,
            standalone=standalone,
            parameters=parameters,
            root_content=content,
            args=list(args or []),
        )
        self._build_count += 1
        self._total_processing_time += (time.time() - start_time) * MS_PER_SECOND
        return document

    def build_element(
        self,
        tag: Union[str, QualifiedName],
        *args: Any,
        namespaces: Optional[Dict[str, str]] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Element:
        """Build one element; ``namespaces`` seeds the prefix bindings."""
        return self._assembler.build_element(tag, args, namespaces, parameters)

    def compile(
        self, source: str, namespaces: Optional[Dict[str, str]] = None
    ) -> CompiledBlock:
        """Compile block source against fixed namespace bindings."""
        return self.compiler.compile(source, NamespaceRegistry(namespaces))

    def to_string(
        self,
        root_tag: Union[str, QualifiedName],
        content: Any = None,
        pretty_print: bool = True,
        **kwargs: Any,
    ) -> str:
        """Build a document and serialize it with its XML declaration."""
        return self.build_document(root_tag, content, **kwargs).to_string(pretty_print)

    @property
    def statistics(self) -> Dict[str, Any]:
        """Builder usage statistics."""
        return {
            "total_builds": self._build_count,
            "total_processing_time_ms": self._total_processing_time,
            "average_processing_time_ms": (
                self._total_processing_time / self._build_count
                if self._build_count > 0 else 0.0
            ),
            "template_cache_size": self.compiler.cache_size,
            "template_cache_hits": self.compiler.cache_hits,
            "template_cache_misses": self.compiler.cache_misses,
            "commands": len(self.commands),
        }
