"""Sequential execution of chunked stages through a processing function.

Stages run strictly in document order, since a stage's processing may rely
on what earlier stages produced (a running summary, for instance). A failing
stage is recorded and logged, and the run continues with the next stage;
callers that need all-or-nothing semantics check ``StagedResult.is_complete``.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

from input_staging.core.exceptions import StageStateError, StageTimeoutError
from input_staging.services.chunking.models import Stage, StagedResult, StageStatus
from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

ProcessFn = Callable[[str, int, int], Awaitable[T]]
ProgressCallback = Callable[[int, int, Optional[Stage]], None]


class StagedExecutor:
    """Drives stages one at a time through a caller-supplied function."""

    def __init__(
        self,
        stage_timeout: Optional[float] = None,
        queue: Optional[SequentialTaskQueue] = None,
    ):
        """Initialize staged executor.

        Args:
            stage_timeout: Seconds a single stage may take before it is
                marked as failed (None disables the timeout)
            queue: Optional queue every processing call is routed through,
                serializing it with other users of the same consumer
        """
        self.stage_timeout = stage_timeout
        self.queue = queue

    async def run(
        self,
        stages: List[Stage[T]],
        process_fn: ProcessFn[T],
        on_progress: Optional[ProgressCallback] = None,
    ) -> StagedResult[T]:
        """Process every stage in order.

        Args:
            stages: Pending stages, typically from the stage chunker
            process_fn: ``(content, index, total)`` coroutine function
            on_progress: Called with ``(completed, total, stage)`` before each
                stage starts and again after it settles

        Returns:
            StagedResult: Aggregate of the run

        Raises:
            StageStateError: If any stage is not pending
        """
        not_pending = [stage.id for stage in stages if stage.status is not StageStatus.PENDING]
        if not_pending:
            raise StageStateError(f"Stages already processed: {', '.join(not_pending)}")

        total = len(stages)
        completed = 0
        LOGGER.info(f"Starting staged run of {total} stages")

        for index, stage in enumerate(stages):
            stage.mark_processing()
            if on_progress:
                on_progress(completed, total, stage)

            try:
                result = await self._process(stage, process_fn, index, total)
            except asyncio.CancelledError as e:
                stage.mark_error(str(e) or "Stage cancelled")
                if asyncio.current_task().cancelling():
                    LOGGER.warning(f"Staged run cancelled at stage {index + 1}/{total} ({stage.id})")
                    raise
                LOGGER.error(f"Stage {index + 1}/{total} ({stage.id}) was cancelled")
            except Exception as e:
                stage.mark_error(str(e) or e.__class__.__name__)
                LOGGER.error(f"Stage {index + 1}/{total} ({stage.id}) failed: {e}", exc_info=True)
            else:
                stage.mark_completed(result)
                completed += 1
                LOGGER.debug(f"Stage {index + 1}/{total} ({stage.id}) completed")

            if on_progress:
                on_progress(completed, total, stage)

        result = StagedResult.from_stages(stages)
        LOGGER.info(
            f"Staged run finished: {completed}/{total} stages completed, "
            f"{total - completed} failed"
        )
        return result

    async def _process(self, stage: Stage, process_fn: ProcessFn, index: int, total: int):
        async def call():
            if self.stage_timeout is None:
                return await process_fn(stage.content, index, total)
            try:
                return await asyncio.wait_for(
                    process_fn(stage.content, index, total), timeout=self.stage_timeout
                )
            except asyncio.TimeoutError as e:
                raise StageTimeoutError(
                    f"Stage {stage.id} timed out after {self.stage_timeout}s", original_error=e
                ) from e

        if self.queue is not None:
            return await self.queue.enqueue(call)
        return await call()


async def run_stages(
    stages: List[Stage[T]],
    process_fn: ProcessFn[T],
    on_progress: Optional[ProgressCallback] = None,
) -> StagedResult[T]:
    """Run ``stages`` with a default executor (no timeout, no queue)."""
    return await StagedExecutor().run(stages, process_fn, on_progress)


def format_progress(completed: int, total: int, current_stage: Optional[Stage] = None) -> str:
    """Human-readable progress line, e.g. ``Processing stage 2 of 4 (25%)``."""
    if total <= 0:
        return "No stages to process"

    percentage = round(completed / total * 100)
    message = f"Processing stage {min(completed + 1, total)} of {total} ({percentage}%)"
    if current_stage is not None:
        message += f" - {current_stage.unit_count:,} tokens"
    return message
