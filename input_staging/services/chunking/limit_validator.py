"""Limit validation for text bound for the downstream consumer.

Validation never raises on oversized text. It classifies the text and
leaves the decision (truncate, chunk, or reject) to the caller.
"""

from dataclasses import dataclass
from typing import Optional

from input_staging.services.chunking.models import (
    LimitConfig,
    LimitsInput,
    ValidationResult,
    ValidationStatus,
    resolve_limits,
)
from input_staging.services.chunking.token_counter import TokenCounter
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LimitValidator:
    """Classifies text as within limit, warning, or over limit."""

    def __init__(
        self,
        limits: LimitsInput = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        """Initialize limit validator.

        Args:
            limits: LimitConfig or partial overrides of the defaults
            token_counter: Token counter instance (creates new if None)
        """
        self.limits = resolve_limits(limits)
        self.token_counter = token_counter or TokenCounter()

    def validate(self, text: str, limits: LimitsInput = None) -> ValidationResult:
        """Validate text length against the configured limits.

        Args:
            text: Text to validate
            limits: Optional overrides merged over this validator's limits

        Returns:
            ValidationResult: Unit and character counts with the classification
        """
        config = limits if isinstance(limits, LimitConfig) else self.limits.merge(limits)
        text = text or ""

        unit_count = self.token_counter.count_tokens(text)
        char_count = len(text)
        exceeds_limit = unit_count > config.max_units or char_count > config.max_chars
        needs_warning = unit_count > config.warning_threshold

        result = ValidationResult(
            unit_count=unit_count,
            char_count=char_count,
            is_valid=not exceeds_limit,
            exceeds_limit=exceeds_limit,
            needs_warning=needs_warning,
            limits=config,
        )

        if exceeds_limit:
            LOGGER.debug(
                f"Text exceeds limits ({unit_count} units / {char_count} chars, "
                f"max {config.max_units} units / {config.max_chars} chars)"
            )
        return result


@dataclass(frozen=True)
class LengthMessage:
    """User-facing description of a validation result."""

    level: str
    message: str
    suggestion: Optional[str] = None


def get_length_message(validation: ValidationResult) -> LengthMessage:
    """Describe a validation result for display.

    Args:
        validation: Result from ``validate``

    Returns:
        LengthMessage: ``error`` when over limit, ``warning`` above the
        warning threshold, ``success`` otherwise
    """
    status = validation.status
    if status is ValidationStatus.OVER_LIMIT:
        return LengthMessage(
            level="error",
            message=(
                f"Input is too long ({validation.unit_count:,} tokens, "
                f"{validation.char_count:,} characters). Maximum allowed is "
                f"{validation.limits.max_units:,} tokens."
            ),
            suggestion=(
                "Consider shortening your input or using staged processing "
                "to handle it in smaller chunks."
            ),
        )
    if status is ValidationStatus.WARNING:
        return LengthMessage(
            level="warning",
            message=(
                f"Input is quite long ({validation.unit_count:,} tokens). "
                "This may take longer to process."
            ),
            suggestion="Consider breaking this into smaller parts for faster processing.",
        )
    return LengthMessage(
        level="success",
        message=f"Input length is acceptable ({validation.unit_count:,} tokens).",
    )


_DEFAULT_VALIDATOR = LimitValidator()


def validate(text: str, limits: LimitsInput = None) -> ValidationResult:
    """Validate ``text`` against the default limits merged with ``limits``."""
    return _DEFAULT_VALIDATOR.validate(text, limits)
