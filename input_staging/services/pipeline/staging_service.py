"""High-level staging service.

Wraps validation, truncation, chunking and staged execution behind one
entry point, choosing how to shape the input for the downstream consumer
and keeping track of the progress of the current run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TypeVar

from input_staging.config import Settings, get_settings
from input_staging.core.exceptions import InputLimitExceededError
from input_staging.services.chunking.limit_validator import LimitValidator, get_length_message
from input_staging.services.chunking.models import (
    LimitConfig,
    LimitsInput,
    Stage,
    StagedResult,
    ValidationResult,
)
from input_staging.services.chunking.stage_chunker import StageChunker
from input_staging.services.chunking.truncator import Truncator
from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.services.pipeline.staged_executor import (
    ProcessFn,
    ProgressCallback,
    StagedExecutor,
)
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


class ProcessingMode(str, Enum):
    """How input is shaped before it reaches the consumer."""

    AUTO = "auto"  # direct when within limits, staged otherwise
    DIRECT = "direct"
    TRUNCATED = "truncated"
    STAGED = "staged"


@dataclass(frozen=True)
class ProgressSnapshot:
    completed: int = 0
    total: int = 0
    current_stage: Optional[Stage] = None


class StagingService:
    """Shapes text for a size-limited consumer and runs it through.

    Attributes:
        limits: Resolved limits applied to every call
        executor: Executor driving the stages
        queue: Queue the executor routes calls through, if any
        is_processing: True while ``process`` is running
        progress: Latest progress of the current run
        last_result: Result of the most recent completed run
    """

    def __init__(
        self,
        limits: LimitsInput = None,
        executor: Optional[StagedExecutor] = None,
        settings: Optional[Settings] = None,
        queue: Optional[SequentialTaskQueue] = None,
    ):
        """Initialize staging service.

        Args:
            limits: LimitConfig or overrides merged over the settings' limits
            executor: Staged executor (built from settings if None)
            settings: Settings instance (loaded from the environment if None)
            queue: Queue for the built executor. If None and the settings
                set a task timeout, a queue with that timeout is created.
                Ignored when an executor is given.
        """
        settings = settings or get_settings()
        if isinstance(limits, LimitConfig):
            self.limits = limits
        else:
            self.limits = settings.limit_config().merge(limits)

        self.validator = LimitValidator(self.limits)
        self.truncator = Truncator(self.validator)
        self.chunker = StageChunker(self.validator.token_counter, self.limits)
        if executor is not None:
            self.executor = executor
        else:
            if queue is None and settings.task_timeout_seconds is not None:
                queue = SequentialTaskQueue(
                    task_timeout=settings.task_timeout_seconds, name="staging-queue"
                )
            self.executor = StagedExecutor(
                stage_timeout=settings.stage_timeout_seconds, queue=queue
            )
        self.queue = self.executor.queue

        self.is_processing = False
        self.progress = ProgressSnapshot()
        self.last_result: Optional[StagedResult] = None

    def analyze(self, text: str) -> ValidationResult:
        """Validate text against the service limits."""
        validation = self.validator.validate(text)
        if validation.needs_warning or validation.exceeds_limit:
            LOGGER.warning(get_length_message(validation).message)
        return validation

    def prepare(self, text: str, mode: ProcessingMode = ProcessingMode.AUTO) -> List[Stage]:
        """Shape text into pending stages for ``mode``.

        Args:
            text: Input text
            mode: Processing mode

        Returns:
            List[Stage]: A single stage for direct and truncated modes,
            chunked stages for staged mode

        Raises:
            InputLimitExceededError: In direct mode when the text is over limit
        """
        mode = ProcessingMode(mode)
        text = text or ""

        if mode is ProcessingMode.AUTO:
            validation = self.analyze(text)
            mode = ProcessingMode.DIRECT if validation.is_valid else ProcessingMode.STAGED
            LOGGER.info(f"Auto mode resolved to {mode.value}")

        if mode is ProcessingMode.STAGED:
            return self.chunker.chunk(text)

        if mode is ProcessingMode.TRUNCATED:
            text = self.truncator.truncate(text).text
        else:
            validation = self.validator.validate(text)
            if validation.exceeds_limit:
                raise InputLimitExceededError(get_length_message(validation).message, validation)

        if not text.strip():
            return []
        return [Stage(
            id=f"{StageChunker.STAGE_ID_PREFIX}0",
            content=text,
            unit_count=self.validator.token_counter.count_tokens(text),
            end=len(text),
        )]

    async def process(
        self,
        text: str,
        process_fn: ProcessFn[T],
        mode: ProcessingMode = ProcessingMode.AUTO,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StagedResult[T]:
        """Shape text and run the resulting stages through ``process_fn``.

        Args:
            text: Input text
            process_fn: ``(content, index, total)`` coroutine function
            mode: Processing mode
            on_progress: Optional callback forwarded from the executor

        Returns:
            StagedResult: Aggregate of the run
        """
        stages = self.prepare(text, mode)

        def track(completed: int, total: int, stage: Optional[Stage]) -> None:
            self.progress = ProgressSnapshot(completed, total, stage)
            if on_progress:
                on_progress(completed, total, stage)

        self.is_processing = True
        self.last_result = None
        try:
            result = await self.executor.run(stages, process_fn, track)
        except Exception:
            LOGGER.error("Staged processing failed", exc_info=True)
            raise
        finally:
            self.is_processing = False
            self.progress = ProgressSnapshot()

        self.last_result = result
        return result

    async def close(self) -> None:
        """Drain and stop the executor's queue, if any."""
        if self.queue is not None:
            await self.queue.close()
