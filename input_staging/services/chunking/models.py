"""Data models for the staging pipeline.

This module defines the limit configuration, the derived validation and
truncation results, and the stage records that flow from the chunker to the
executor.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Generic, List, Mapping, Optional, TypeVar, Union

from input_staging.core.exceptions import ConfigurationError, StageStateError

T = TypeVar("T")

DEFAULT_MAX_UNITS = 180000
DEFAULT_MAX_CHARS = 720000
DEFAULT_WARNING_THRESHOLD = 150000


@dataclass(frozen=True)
class LimitConfig:
    """Capacity limits of the downstream consumer.

    Attributes:
        max_units: Hard ceiling in estimated units
        max_chars: Secondary ceiling in characters
        warning_threshold: Units above which callers are warned but not blocked
    """

    max_units: int = DEFAULT_MAX_UNITS
    max_chars: int = DEFAULT_MAX_CHARS
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{f.name} must be a positive integer, got {value!r}")
        if self.warning_threshold >= self.max_units:
            raise ConfigurationError(
                f"warning_threshold ({self.warning_threshold}) must be below "
                f"max_units ({self.max_units})"
            )

    def merge(self, overrides: Optional[Mapping[str, Any]] = None) -> "LimitConfig":
        """Return a fully populated config with ``overrides`` applied.

        Unset fields inherit this config's values. When ``max_units`` is
        lowered below an inherited ``warning_threshold``, the threshold is
        scaled to keep the same ratio to ``max_units`` instead.
        """
        if not overrides:
            return self

        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"Unknown limit option(s): {', '.join(sorted(unknown))}")

        values = {k: v for k, v in overrides.items() if v is not None}
        if "warning_threshold" not in values and "max_units" in values:
            max_units = values["max_units"]
            if isinstance(max_units, int) and self.warning_threshold >= max_units:
                ratio = self.warning_threshold / self.max_units
                values["warning_threshold"] = max(1, int(max_units * ratio))

        return replace(self, **values)


DEFAULT_LIMITS = LimitConfig()

LimitsInput = Union[LimitConfig, Mapping[str, Any], None]


def resolve_limits(limits: LimitsInput = None) -> LimitConfig:
    """Build a complete LimitConfig from a config, a partial mapping, or None."""
    if limits is None:
        return DEFAULT_LIMITS
    if isinstance(limits, LimitConfig):
        return limits
    return DEFAULT_LIMITS.merge(limits)


class ValidationStatus(str, Enum):
    WITHIN_LIMIT = "within_limit"
    WARNING = "warning"
    OVER_LIMIT = "over_limit"


@dataclass(frozen=True)
class ValidationResult:
    """Size classification of a block of text against a LimitConfig."""

    unit_count: int
    char_count: int
    is_valid: bool
    exceeds_limit: bool
    needs_warning: bool
    limits: LimitConfig

    @property
    def status(self) -> ValidationStatus:
        if self.exceeds_limit:
            return ValidationStatus.OVER_LIMIT
        if self.needs_warning:
            return ValidationStatus.WARNING
        return ValidationStatus.WITHIN_LIMIT


class TruncationStrategy(str, Enum):
    NONE = "none"
    PARAGRAPH = "paragraph"
    SENTENCE = "sentence"
    HARD = "hard"


@dataclass(frozen=True)
class TruncationResult:
    """Outcome of truncating text to fit a LimitConfig.

    Attributes:
        text: The (possibly) shortened text
        original_length: Character length of the input
        new_length: Character length of ``text``
        units_saved: Estimated units removed
        was_truncated: False when the input already fit and is returned as-is
        strategy: Boundary level the cut was made at
    """

    text: str
    original_length: int
    new_length: int
    units_saved: int
    was_truncated: bool
    strategy: TruncationStrategy = TruncationStrategy.NONE


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Stage(Generic[T]):
    """One bounded slice of a source document.

    Created ``pending`` by the chunker. Only the executor moves it through
    ``processing`` to ``completed`` or ``error``; a stage never goes back.

    Attributes:
        id: Sequential identifier (``stage_0``, ``stage_1``, ...)
        content: Text of this slice
        unit_count: Estimated units of ``content``
        status: Current lifecycle status
        result: Output of the processing function once completed
        error_message: Failure message once errored
        start: Offset of ``content`` in the source text
        end: End offset (exclusive) of ``content`` in the source text
    """

    id: str
    content: str
    unit_count: int
    status: StageStatus = StageStatus.PENDING
    result: Optional[T] = None
    error_message: Optional[str] = None
    start: int = 0
    end: int = 0

    def __len__(self) -> int:
        return len(self.content)

    def __str__(self) -> str:
        return f"Stage(id={self.id}, status={self.status.value}, units={self.unit_count})"

    def mark_processing(self) -> None:
        self._transition(StageStatus.PENDING, StageStatus.PROCESSING)

    def mark_completed(self, result: T) -> None:
        self._transition(StageStatus.PROCESSING, StageStatus.COMPLETED)
        self.result = result

    def mark_error(self, message: str) -> None:
        self._transition(StageStatus.PROCESSING, StageStatus.ERROR)
        self.error_message = message

    def _transition(self, expected: StageStatus, target: StageStatus) -> None:
        if self.status is not expected:
            raise StageStateError(
                f"Stage {self.id} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target


@dataclass
class StagedResult(Generic[T]):
    """Aggregate outcome of one staged run.

    Attributes:
        stages: Every stage of the run, in document order
        total_units: Sum of the stages' unit counts
        is_complete: True only if every stage completed
        combined_results: Results of the successful stages, in order
    """

    stages: List[Stage[T]]
    total_units: int
    is_complete: bool
    combined_results: List[T] = field(default_factory=list)

    @classmethod
    def from_stages(cls, stages: List[Stage[T]]) -> "StagedResult[T]":
        return cls(
            stages=stages,
            total_units=sum(stage.unit_count for stage in stages),
            is_complete=all(stage.status is StageStatus.COMPLETED for stage in stages),
            combined_results=[
                stage.result for stage in stages if stage.status is StageStatus.COMPLETED
            ],
        )

    @property
    def completed_count(self) -> int:
        return len(self.combined_results)

    @property
    def failed_stages(self) -> List[Stage[T]]:
        return [stage for stage in self.stages if stage.status is StageStatus.ERROR]
