"""Chunking service package.

This package sizes text against the downstream consumer's limits and
reshapes it to fit:

- TokenCounter / estimate_units: character-ratio unit estimation
- LimitValidator / validate: within-limit, warning, over-limit classification
- Truncator / truncate: lossy cut at paragraph, sentence, or character level
- StageChunker / chunk: lossless split into bounded, ordered stages
"""

from input_staging.services.chunking.limit_validator import (
    LengthMessage,
    LimitValidator,
    get_length_message,
    validate,
)
from input_staging.services.chunking.models import (
    DEFAULT_LIMITS,
    LimitConfig,
    Stage,
    StagedResult,
    StageStatus,
    TruncationResult,
    TruncationStrategy,
    ValidationResult,
    ValidationStatus,
    resolve_limits,
)
from input_staging.services.chunking.stage_chunker import StageChunker, chunk
from input_staging.services.chunking.token_counter import TokenCounter, estimate_units
from input_staging.services.chunking.truncator import Truncator, truncate

__all__ = [
    "DEFAULT_LIMITS",
    "LimitConfig",
    "resolve_limits",
    "ValidationResult",
    "ValidationStatus",
    "TruncationResult",
    "TruncationStrategy",
    "Stage",
    "StageStatus",
    "StagedResult",
    "TokenCounter",
    "estimate_units",
    "LimitValidator",
    "LengthMessage",
    "get_length_message",
    "validate",
    "Truncator",
    "truncate",
    "StageChunker",
    "chunk",
]
