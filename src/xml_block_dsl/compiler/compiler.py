"""Block compilation: tokenize, classify and rewrite one content block.

A ``CompiledBlock`` is immutable and can be executed any number of times, in
any number of builds, without paying for tokenization and rewriting again.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from xml_block_dsl.shared import (
    CompilerConfig,
    DiagnosticLog,
    HostCapabilityUnavailableError,
    get_logger,
)
from xml_block_dsl.tokenization import ScriptTokenizer, Token
from xml_block_dsl.tree import NamespaceRegistry

from .classifier import Resolver, TokenClassifier
from .rewriter import report_unresolved, rewrite

Tokenizer = Callable[[str], List[Token]]

_CacheKey = Tuple[str, Tuple[Tuple[str, str], ...], str, Any]


@dataclass(frozen=True)
class CompiledBlock:
    """A content block whose element references have been rewritten."""

    source: str
    compiled_source: str
    tokens: Tuple[Token, ...]
    duds: Tuple[Token, ...] = ()
    unresolved: Tuple[Token, ...] = ()
    namespaces: Tuple[Tuple[str, str], ...] = ()
    element_ctor_name: str = "New-XElement"
    compile_time_ms: float = field(default=0.0, compare=False)

    @property
    def was_rewritten(self) -> bool:
        return bool(self.duds)


class BlockCompiler:
    """Compiles block source text with injected tokenizer and resolver.

    Compiled blocks are cached by source text, namespace bindings,
    constructor name and the value of ``resolver_version``. A resolver whose
    answers can change needs a ``resolver_version`` that changes with them;
    otherwise call ``clear_cache`` after changing what it resolves.
    """

    def __init__(
        self,
        tokenizer: Optional[Tokenizer] = None,
        resolver: Optional[Resolver] = None,
        config: Optional[CompilerConfig] = None,
        correlation_id: Optional[str] = None,
        resolver_version: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Initialize block compiler.

        Args:
            tokenizer: Host tokenizer (defaults to ``ScriptTokenizer``)
            resolver: Host capability telling real commands from element tags
            resolver_version: Returns a token that changes whenever the
                resolver's answers may have changed
            config: Compiler configuration
            correlation_id: Optional correlation ID for request tracking
        """
        self.tokenizer = tokenizer or ScriptTokenizer(correlation_id).tokenize
        self.resolver = resolver
        self.resolver_version = resolver_version
        self.config = config or CompilerConfig()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "block_compiler")
        self._cache: "OrderedDict[_CacheKey, CompiledBlock]" = OrderedDict()
        self.cache_hits = 0
        self.cache_misses = 0

    def compile(
        self,
        source: str,
        registry: NamespaceRegistry,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> CompiledBlock:
        """Compile one block against the current namespace bindings.

        Raises:
            HostCapabilityUnavailableError: tokenizer or resolver missing
            ScriptSyntaxError: source cannot be tokenized
        """
        if self.tokenizer is None:
            raise HostCapabilityUnavailableError("tokenizer")
        if self.resolver is None:
            raise HostCapabilityUnavailableError("command resolver")

        namespaces = tuple(sorted(registry.as_dict().items()))
        version = self.resolver_version() if self.resolver_version is not None else None
        key = (source, namespaces, self.config.element_ctor_name, version)
        cached = self._cache_get(key)
        if cached is not None:
            for token in cached.unresolved:
                report_unresolved(token, diagnostics)
            return cached

        start_time = time.time()
        tokens = self.tokenizer(source)
        duds = TokenClassifier(self.resolver, self.correlation_id).classify(tokens)
        compiled_source = rewrite(
            source, duds, registry, self.config.element_ctor_name, diagnostics
        )
        if duds:
            tokens = self.tokenizer(compiled_source)

        block = CompiledBlock(
            source=source,
            compiled_source=compiled_source,
            tokens=tuple(tokens),
            duds=tuple(duds),
            unresolved=tuple(
                token for token in duds if not registry.resolve(token.text)[1]
            ),
            namespaces=namespaces,
            element_ctor_name=self.config.element_ctor_name,
            compile_time_ms=(time.time() - start_time) * 1000,
        )
        self._cache_put(key, block)

        self.logger.debug(
            "Block compiled",
            extra={
                "dud_count": len(duds),
                "token_count": len(block.tokens),
                "compile_time_ms": block.compile_time_ms,
            },
        )
        return block

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _cache_get(self, key: _CacheKey) -> Optional[CompiledBlock]:
        if not self.config.enable_template_cache:
            return None
        block = self._cache.get(key)
        if block is None:
            self.cache_misses += 1
            return None
        self._cache.move_to_end(key)
        self.cache_hits += 1
        return block

    def _cache_put(self, key: _CacheKey, block: CompiledBlock) -> None:
        if not self.config.enable_template_cache or self.config.cache_size_limit == 0:
            return
        self._cache[key] = block
        while len(self._cache) > self.config.cache_size_limit:
            self._cache.popitem(last=False)
