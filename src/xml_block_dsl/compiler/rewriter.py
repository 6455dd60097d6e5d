"""Source rewriting: turn element references into explicit constructor calls.

Each dud token is replaced in place by ``<ctor> '<qualified name>'`` where the
qualified name is resolved against the namespace registry at rewrite time and
written in Clark notation (``{uri}local``).

Edits are applied in reverse textual order. An edit only shifts text that
comes after it, so every token not yet processed still has valid
``(line, column)`` coordinates. Forward order would shift the columns of later
tokens on the same line.
"""

from typing import List, Optional, Sequence, Tuple

from xml_block_dsl.shared import DiagnosticCode, DiagnosticLog, get_logger
from xml_block_dsl.tokenization import Token
from xml_block_dsl.tree import NamespaceRegistry

logger = get_logger(__name__, component="source_rewriter")


def quote_literal(text: str) -> str:
    """Quote text as a single-quoted literal (no interpolation)."""
    return "'" + text.replace("'", "''") + "'"


def resolve_dud(token: Token, registry: NamespaceRegistry) -> Tuple[str, bool]:
    """Resolve a dud's text to a qualified-name literal.

    Returns:
        Clark-notation name (or the token text when the prefix is unbound)
        and whether the name resolved
    """
    qualified_name, resolved = registry.resolve(token.text)
    return qualified_name.clark, resolved


def report_unresolved(token: Token, diagnostics: Optional[DiagnosticLog]) -> None:
    """Log (and record) a dud whose prefix has no namespace binding."""
    logger.warning(
        "Unresolved namespace prefix, keeping unqualified name",
        extra={"element_name": token.text, "line": token.line, "column": token.column},
    )
    if diagnostics is not None:
        diagnostics.warning(
            f"Prefix of '{token.text}' is not bound to a namespace",
            "source_rewriter",
            DiagnosticCode.UNRESOLVED_PREFIX,
            position=token.position,
            details={"name": token.text},
        )


def splice_token(lines: List[str], token: Token, replacement: str) -> None:
    """Replace ``token``'s span on its line with ``replacement``, in place."""
    index = token.line - 1
    start = token.column - 1
    line = lines[index]
    lines[index] = line[:start] + replacement + line[start + token.length:]


def rewrite(
    source_text: str,
    duds: Sequence[Token],
    registry: NamespaceRegistry,
    element_ctor_name: str,
    diagnostics: Optional[DiagnosticLog] = None,
) -> str:
    """Rewrite every dud of ``source_text`` into an element constructor call.

    Args:
        source_text: Block source the duds were tokenized from
        duds: Element-reference tokens (see ``classify``)
        registry: Namespace bindings used to resolve prefixes
        element_ctor_name: Command name inserted before each resolved name
        diagnostics: Optional log receiving unresolved-prefix warnings

    Returns:
        The rewritten source; unchanged when there are no duds
    """
    if not duds:
        return source_text

    lines = source_text.split("\n")
    for token in sorted(duds, key=lambda t: (t.line, t.column), reverse=True):
        resolved_name, resolved = resolve_dud(token, registry)
        if not resolved:
            report_unresolved(token, diagnostics)
        splice_token(lines, token, f"{element_ctor_name} {quote_literal(resolved_name)}")

    return "\n".join(lines)
