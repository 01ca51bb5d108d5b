"""Token counting utilities for the staging pipeline.

This module estimates how many downstream units (tokens) a block of text
will cost, so that text can be sized against the consumer's limits before
it is sent.
"""

from fractions import Fraction
from typing import Optional

from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TokenCounter:
    """Token counter for estimating token counts in text.

    The real tokenizer lives with the downstream model and is not available
    locally, so counts are estimated from character length with a fixed,
    conservative ratio. The ratio is low enough that the estimate does not
    fall below a real tokenizer's count for typical prose.

    Arithmetic is done on exact fractions.
    """

    # Characters per token
    CHARS_PER_TOKEN = Fraction(7, 2)

    def __init__(self, chars_per_token: Optional[float] = None):
        """Initialize token counter.

        Args:
            chars_per_token: Characters assumed per unit (defaults to 3.5)
        """
        if chars_per_token is None:
            ratio = self.CHARS_PER_TOKEN
        else:
            ratio = Fraction(str(chars_per_token))
        if ratio <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = ratio
        LOGGER.debug(f"Initialized token counter at {float(ratio)} chars per token")

    def count_tokens(self, text: str) -> int:
        """Count approximate tokens in text.

        Args:
            text: Text to count tokens for

        Returns:
            int: Estimated token count, rounded up

        Example:
            >>> counter = TokenCounter()
            >>> counter.count_tokens("Policy Number: 12345")
            6
        """
        if not text:
            return 0
        return self.count_tokens_for_length(len(text))

    def count_tokens_for_length(self, char_count: int) -> int:
        """Estimate tokens for a text of ``char_count`` characters."""
        if char_count <= 0:
            return 0
        return _ceil(Fraction(char_count) / self.chars_per_token)

    def chars_for_tokens(self, token_count: int) -> int:
        """Character proxy for a token budget, rounded down."""
        if token_count <= 0:
            return 0
        return int(token_count * self.chars_per_token)

    def can_fit_in_limit(self, text: str, limit: int) -> bool:
        """Check if text fits within token limit.

        Args:
            text: Text to check
            limit: Maximum token limit

        Returns:
            bool: True if text fits within limit
        """
        return self.count_tokens(text) <= limit


def _ceil(value: Fraction) -> int:
    return -(-value.numerator // value.denominator)


_DEFAULT_COUNTER = TokenCounter()


def estimate_units(text: str) -> int:
    """Estimate downstream units for ``text`` with the default ratio."""
    return _DEFAULT_COUNTER.count_tokens(text)
