"""Boundary-aware truncation.

When text is over the consumer's limits it is cut back to a character budget
10% below the hard ceiling, preferring whole paragraphs, then whole
sentences, and only then a hard character cut.
"""

from fractions import Fraction
from typing import Optional

from input_staging.services.chunking.boundaries import (
    PARAGRAPH_BREAK,
    SENTENCE_BREAK,
    split_spans,
    trim_span,
)
from input_staging.services.chunking.limit_validator import LimitValidator
from input_staging.services.chunking.models import (
    LimitConfig,
    LimitsInput,
    TruncationResult,
    TruncationStrategy,
)
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Truncator:
    """Shortens over-limit text at the best available semantic boundary."""

    SAFETY_MARGIN = Fraction(9, 10)
    ELLIPSIS = "..."
    SENTENCE_JOINER = ". "

    def __init__(self, validator: Optional[LimitValidator] = None):
        """Initialize truncator.

        Args:
            validator: Limit validator instance (creates new if None)
        """
        self.validator = validator or LimitValidator()

    @property
    def token_counter(self):
        return self.validator.token_counter

    def target_chars(self, limits: LimitConfig) -> int:
        """Character budget for truncated output under ``limits``.

        90% of the hard unit ceiling converted to characters, capped at 90%
        of the character ceiling.
        """
        unit_budget = int(self.SAFETY_MARGIN * limits.max_units * self.token_counter.chars_per_token)
        char_budget = int(self.SAFETY_MARGIN * limits.max_chars)
        return min(unit_budget, char_budget)

    def truncate(self, text: str, limits: LimitsInput = None) -> TruncationResult:
        """Truncate text so it fits within limits.

        Args:
            text: Text to truncate
            limits: LimitConfig or partial overrides of the defaults

        Returns:
            TruncationResult: Identity result when the text already fits
        """
        text = text or ""
        validation = self.validator.validate(text, limits)

        if validation.is_valid:
            return TruncationResult(
                text=text,
                original_length=len(text),
                new_length=len(text),
                units_saved=0,
                was_truncated=False,
            )

        budget = self.target_chars(validation.limits)

        strategy = TruncationStrategy.PARAGRAPH
        truncated = self._truncate_paragraphs(text, budget)
        if truncated is None:
            strategy = TruncationStrategy.SENTENCE
            truncated = self._truncate_sentences(text, budget)
        if truncated is None:
            strategy = TruncationStrategy.HARD
            truncated = text[:budget] + self.ELLIPSIS

        units_saved = max(0, validation.unit_count - self.token_counter.count_tokens(truncated))

        LOGGER.info(
            f"Truncated text at {strategy.value} boundary: "
            f"{len(text)} -> {len(truncated)} chars ({units_saved} units saved)"
        )

        return TruncationResult(
            text=truncated,
            original_length=len(text),
            new_length=len(truncated),
            units_saved=units_saved,
            was_truncated=True,
            strategy=strategy,
        )

    def _truncate_paragraphs(self, text: str, budget: int) -> Optional[str]:
        """Longest prefix of whole paragraphs within budget, or None."""
        kept_end = 0
        for start, end in split_spans(text, PARAGRAPH_BREAK):
            content_start, content_end = trim_span(text, start, end)
            if content_start == content_end:
                continue
            if content_end > budget:
                break
            kept_end = content_end

        if kept_end == 0:
            return None
        return text[:kept_end]

    def _truncate_sentences(self, text: str, budget: int) -> Optional[str]:
        """Whole sentences rejoined with a period, or None if none fit."""
        kept = []
        length = 0

        for sentence in SENTENCE_BREAK.split(text):
            sentence = sentence.strip()
            if not sentence:
                continue
            joined_length = length + (len(self.SENTENCE_JOINER) if kept else 0) + len(sentence)
            closing = 0 if sentence.endswith((".", "!", "?")) else 1
            if joined_length + closing > budget:
                break
            kept.append(sentence)
            length = joined_length

        if not kept:
            return None

        truncated = self.SENTENCE_JOINER.join(kept)
        if not truncated.endswith((".", "!", "?")):
            truncated += "."
        return truncated


_DEFAULT_TRUNCATOR = Truncator()


def truncate(text: str, limits: LimitsInput = None) -> TruncationResult:
    """Truncate ``text`` against the default limits merged with ``limits``."""
    return _DEFAULT_TRUNCATOR.truncate(text, limits)
