"""Exception hierarchy for the staging pipeline."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from input_staging.services.chunking.models import ValidationResult


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(AppError):
    """Raised when limits or settings are invalid."""
    pass


class InputLimitExceededError(AppError):
    """Raised when text over the configured limits is submitted as-is."""
    def __init__(self, message: str, validation: Optional["ValidationResult"] = None):
        super().__init__(message)
        self.validation = validation


class StageStateError(AppError):
    """Raised on an illegal stage status transition."""
    pass


class StageTimeoutError(AppError):
    """Raised when a stage's processing function overruns its timeout."""
    pass


class TaskTimeoutError(AppError):
    """Raised to a queued task's caller when the task overruns its timeout."""
    pass


class QueueClosedError(AppError):
    """Raised when work is submitted to a closed queue."""
    pass
