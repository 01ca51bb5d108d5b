"""Pipeline package: staged execution and serialized access to the consumer."""

from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.services.pipeline.stage_processors import StageOutput, StagePromptProcessor
from input_staging.services.pipeline.staged_executor import (
    StagedExecutor,
    format_progress,
    run_stages,
)
from input_staging.services.pipeline.staging_service import (
    ProcessingMode,
    ProgressSnapshot,
    StagingService,
)

__all__ = [
    "SequentialTaskQueue",
    "StagedExecutor",
    "run_stages",
    "format_progress",
    "StagingService",
    "ProcessingMode",
    "ProgressSnapshot",
    "StagePromptProcessor",
    "StageOutput",
]
