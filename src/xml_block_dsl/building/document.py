"""Document assembly: one document build from a root tag and its content."""

import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Union

from xml_block_dsl.compiler import BlockCompiler, CompiledBlock
from xml_block_dsl.runtime import (
    BlockExecutor,
    BuildContext,
    CommandTable,
    Scope,
    ScriptBlock,
)
from xml_block_dsl.shared import XmlBlockConfig, XmlBlockError, get_logger
from xml_block_dsl.tree import (
    DEFAULT_PREFIX,
    Document,
    Element,
    NamespaceRegistry,
    QualifiedName,
)

from .builder import ArgumentStream, ElementBuilder

RootContent = Union[str, ScriptBlock, CompiledBlock, Sequence[Any], Any]


class DocumentAssembler:
    """Builds whole documents.

    Each call to ``build_document`` is one build: it gets a fresh namespace
    registry, diagnostic log, metrics and correlation ID. The command table
    and the compiler (with its template cache) are shared between builds.
    """

    def __init__(
        self,
        config: Optional[XmlBlockConfig] = None,
        commands: Optional[CommandTable] = None,
        compiler: Optional[BlockCompiler] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize document assembler.

        Args:
            config: Complete configuration (defaults to ``XmlBlockConfig()``)
            commands: Command table providing the resolver capability
            compiler: Block compiler; built from ``commands`` when omitted
            correlation_id: Fixed correlation ID for every build, otherwise
                each build gets a new one
        """
        self.config = config or XmlBlockConfig()
        self.commands = commands or CommandTable(
            case_insensitive=self.config.runtime.case_insensitive_commands,
            register_builtins=self.config.runtime.register_builtins,
            correlation_id=correlation_id,
        )
        self.compiler = compiler or BlockCompiler(
            resolver=self.commands.can_resolve,
            config=self.config.compiler,
            correlation_id=correlation_id,
            resolver_version=lambda: self.commands.version,
        )
        self.correlation_id = correlation_id

    def new_context(
        self,
        parameters: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> BuildContext:
        """Create the per-build state with an executor and a builder installed."""
        correlation_id = correlation_id or self.correlation_id or str(uuid.uuid4())[:8]
        context = BuildContext(
            self.config,
            self.commands,
            self.compiler,
            root_scope=Scope(parameters),
            correlation_id=correlation_id,
        )
        context.executor = BlockExecutor(context)
        context.builder = ElementBuilder(context)
        return context

    def build_document(
        self,
        root_tag: Union[str, QualifiedName],
        version: Optional[str] = None,
        encoding: Optional[str] = None,
        standalone: Union[str, bool, None] = None,
        parameters: Optional[Dict[str, Any]] = None,
        root_content: RootContent = None,
        correlation_id: Optional[str] = None,
        args: Optional[Sequence[Any]] = None,
    ) -> Document:
        """Build a document.

        Args:
            root_tag: Root element name; a namespace on it becomes the default
                namespace of the document
            version: XML declaration version (default from configuration)
            encoding: XML declaration encoding (default from configuration)
            standalone: ``"yes"``/``"no"`` or a bool (default from configuration)
            parameters: Variables visible to every block of the build
            root_content: Block source text, ``ScriptBlock``, ``CompiledBlock``,
                Python callable, or a list of builder arguments for the root
            correlation_id: Correlation ID for this build only
            args: Builder arguments for the root taken before the root content,
                e.g. namespace declarations the content relies on

        Returns:
            The assembled document with diagnostics and metrics attached

        Raises:
            XmlBlockError: The build failed; no partial document is returned
        """
        start_time = time.time()
        context = self.new_context(parameters, correlation_id)
        root_name = QualifiedName.parse(root_tag)
        logger = get_logger(__name__, context.correlation_id, "document_assembler").bind(
            root_tag=root_name.clark
        )

        registry = NamespaceRegistry()
        if root_name.namespace_uri:
            registry.add(DEFAULT_PREFIX, root_name.namespace_uri)

        logger.info(
            "Starting document build",
            extra={
                "content_type": type(root_content).__name__,
                "parameter_count": len(parameters or {}),
            },
        )

        try:
            arguments = list(args or []) + self._root_arguments(root_content, context, registry)
            root = context.builder.build(root_name, arguments, registry)
        except XmlBlockError:
            logger.exception(
                "Document build failed",
                extra={"elements_built": context.metrics.elements_built},
            )
            raise

        context.metrics.processing_time_ms = (time.time() - start_time) * 1000
        document_config = self.config.document
        document = Document(
            root=root,
            version=version or document_config.version,
            encoding=encoding or document_config.encoding,
            standalone=document_config.standalone if standalone is None else standalone,
            diagnostics=list(context.diagnostics.entries),
            metrics=context.metrics,
            correlation_id=context.correlation_id,
        )

        logger.info(
            "Document build completed",
            extra={
                "elements_built": context.metrics.elements_built,
                "diagnostic_count": len(context.diagnostics),
                "processing_time_ms": context.metrics.processing_time_ms,
            },
        )
        return document

    def build_element(
        self,
        tag: Union[str, QualifiedName],
        args: Sequence[Any],
        namespaces: Optional[Dict[str, str]] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> Element:
        """Build a single element outside of any document."""
        context = self.new_context(parameters)
        registry = NamespaceRegistry(namespaces)
        return context.builder.build(tag, list(args), registry)

    def _root_arguments(
        self, content: RootContent, context: BuildContext, registry: NamespaceRegistry
    ) -> List[Any]:
        """Root content as arguments for the root element.

        A list is taken as the arguments themselves. A content block is
        streamed: each statement runs when the builder reaches it, so a
        namespace declared on the root is in scope for later statements.
        """
        if content is None:
            return []
        if isinstance(content, (list, tuple)):
            return list(content)
        if isinstance(content, str):
            content = ScriptBlock(content, context.root_scope)
        elif isinstance(content, ScriptBlock):
            if content.scope is not None:
                # parameters shadow the variables the block was written with
                context.root_scope.parent = content.scope
            content = content.with_scope(context.root_scope)
        elif not context.executor.is_content_block(content):
            return [content]
        return [ArgumentStream(context.executor.iter_execute(content, registry))]
