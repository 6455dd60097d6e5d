"""Token classification: which bare words are element references.

A bare word in command position is either a real command (something the host
can call) or a "dud" that the author meant as an element tag. Real command
names conventionally contain a hyphen (``ForEach-Item``), element tags are
usually single words, so hyphenated words are never duds.
"""

from typing import Callable, Iterable, List, Optional

from xml_block_dsl.shared import HostCapabilityUnavailableError, get_logger
from xml_block_dsl.tokenization import Token, TokenKind

Resolver = Callable[[str], bool]


def is_dud(token: Token, can_resolve_as_callable: Resolver) -> bool:
    """Check whether a single token is an element reference."""
    return (
        token.kind == TokenKind.COMMAND
        and "-" not in token.text
        and not can_resolve_as_callable(token.text)
    )


class TokenClassifier:
    """Labels the bare words of one block as element references or real calls."""

    def __init__(
        self,
        can_resolve_as_callable: Optional[Resolver],
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize classifier.

        Args:
            can_resolve_as_callable: Host capability answering whether a name
                is a real command, alias or function
            correlation_id: Optional correlation ID of the document build
        """
        self.can_resolve_as_callable = can_resolve_as_callable
        self.logger = get_logger(__name__, correlation_id, "token_classifier")

    def classify(self, tokens: Iterable[Token], top_level_only: bool = True) -> List[Token]:
        """Return the dud tokens, in textual order.

        Nested blocks are skipped by default: they are classified when they
        are themselves compiled, against the namespace bindings in force then.
        """
        if self.can_resolve_as_callable is None:
            raise HostCapabilityUnavailableError("command resolver")

        duds = [
            token for token in tokens
            if (not top_level_only or token.depth == 0)
            and is_dud(token, self.can_resolve_as_callable)
        ]
        self.logger.debug(
            "Classified block tokens",
            extra={"dud_count": len(duds), "top_level_only": top_level_only},
        )
        return duds


def classify(
    tokens: Iterable[Token],
    can_resolve_as_callable: Optional[Resolver],
    top_level_only: bool = True,
) -> List[Token]:
    """Return the tokens of ``tokens`` that are element references."""
    return TokenClassifier(can_resolve_as_callable).classify(tokens, top_level_only)
