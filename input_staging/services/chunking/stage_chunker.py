"""Stage-level chunking implementation.

This module splits arbitrarily large text into an ordered sequence of
bounded stages, each small enough to be submitted to the downstream consumer
on its own. Paragraphs are packed greedily; a paragraph too large for one
stage is split at sentence boundaries, and a sentence too large at word
boundaries. Words are never split.

Stages are contiguous slices of the source text. Only whitespace that falls
on a boundary between two stages is left out of both, so
``text[stage.start:stage.end] == stage.content`` holds for every stage and
all other characters appear in exactly one stage, in order.
"""

from fractions import Fraction
from typing import List, Optional, Tuple

from input_staging.services.chunking.boundaries import CASCADE, split_spans, trim_span
from input_staging.services.chunking.models import (
    LimitConfig,
    LimitsInput,
    Stage,
    resolve_limits,
)
from input_staging.services.chunking.token_counter import TokenCounter
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StageChunker:
    """Splits text into stages sized for a single downstream call.

    The per-stage budget is 80% of the hard unit ceiling, tighter than the
    truncator's 90% because the cost of every stage adds up downstream.
    """

    STAGE_FRACTION = Fraction(4, 5)
    STAGE_ID_PREFIX = "stage_"

    def __init__(
        self,
        token_counter: Optional[TokenCounter] = None,
        limits: LimitsInput = None,
    ):
        """Initialize stage chunker.

        Args:
            token_counter: Token counter instance (creates new if None)
            limits: LimitConfig or partial overrides of the defaults
        """
        self.token_counter = token_counter or TokenCounter()
        self.limits = resolve_limits(limits)

    def stage_budget(self, limits: LimitConfig) -> Tuple[int, int]:
        """Per-stage budget as (units, characters)."""
        unit_budget = int(self.STAGE_FRACTION * limits.max_units)
        return unit_budget, self.token_counter.chars_for_tokens(unit_budget)

    def chunk(self, text: str, limits: LimitsInput = None) -> List[Stage]:
        """Split text into pending stages.

        Args:
            text: Full document text
            limits: Optional overrides merged over this chunker's limits

        Returns:
            List[Stage]: Stages in document order; empty for blank input
        """
        if not text or not text.strip():
            LOGGER.debug("Empty text provided for stage chunking")
            return []

        config = limits if isinstance(limits, LimitConfig) else self.limits.merge(limits)
        unit_budget, char_budget = self.stage_budget(config)

        spans: List[Tuple[int, int]] = []
        self._pack(text, 0, len(text), 0, unit_budget, char_budget, spans)

        stages = []
        for index, (start, end) in enumerate(spans):
            content = text[start:end]
            stages.append(Stage(
                id=f"{self.STAGE_ID_PREFIX}{index}",
                content=content,
                unit_count=self.token_counter.count_tokens(content),
                start=start,
                end=end,
            ))

        LOGGER.info(
            f"Split {len(text)} chars into {len(stages)} stages "
            f"(budget {unit_budget} units / {char_budget} chars per stage)"
        )
        return stages

    def _fits(self, start: int, end: int, unit_budget: int, char_budget: int) -> bool:
        # Both proxies are checked: they diverge if the counter's ratio changes
        length = end - start
        return length <= char_budget and self.token_counter.count_tokens_for_length(length) <= unit_budget

    def _pack(
        self,
        text: str,
        start: int,
        end: int,
        level: int,
        unit_budget: int,
        char_budget: int,
        spans: List[Tuple[int, int]],
    ) -> None:
        """Greedily pack boundary pieces of ``text[start:end]`` into ``spans``.

        Pieces that do not fit on their own are split again at the next
        finer boundary level.
        """
        buffer_start = buffer_end = None

        for piece_start, piece_end in split_spans(text, CASCADE[level], start, end):
            piece_start, piece_end = trim_span(text, piece_start, piece_end)
            if piece_start == piece_end:
                continue

            if buffer_start is not None and self._fits(buffer_start, piece_end, unit_budget, char_budget):
                buffer_end = piece_end
                continue

            if buffer_start is not None:
                spans.append((buffer_start, buffer_end))
                buffer_start = buffer_end = None

            if self._fits(piece_start, piece_end, unit_budget, char_budget):
                buffer_start, buffer_end = piece_start, piece_end
            elif level + 1 < len(CASCADE):
                self._pack(text, piece_start, piece_end, level + 1, unit_budget, char_budget, spans)
            else:
                LOGGER.warning(
                    f"Single word of {piece_end - piece_start} chars exceeds the stage "
                    f"budget ({char_budget} chars); emitting it as an oversized stage"
                )
                spans.append((piece_start, piece_end))

        if buffer_start is not None:
            spans.append((buffer_start, buffer_end))


_DEFAULT_CHUNKER = StageChunker()


def chunk(text: str, limits: LimitsInput = None) -> List[Stage]:
    """Split ``text`` into stages under the default limits merged with ``limits``."""
    return _DEFAULT_CHUNKER.chunk(text, limits)
