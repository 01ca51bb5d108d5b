"""Unit tests for StagingService."""

import asyncio

import pytest

from input_staging.config import Settings
from input_staging.core.exceptions import InputLimitExceededError
from input_staging.services.chunking.models import LimitConfig, StageStatus
from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.services.pipeline.staged_executor import StagedExecutor
from input_staging.services.pipeline.staging_service import (
    ProcessingMode,
    ProgressSnapshot,
    StagingService,
)


async def upper(content, index, total):
    return content.upper()


class TestStagingService:
    """Test suite for StagingService."""

    @pytest.fixture
    def settings(self):
        return Settings(max_units=100, warning_threshold=50)

    @pytest.fixture
    def service(self, settings):
        return StagingService(settings=settings)

    @pytest.fixture
    def long_text(self, hundred_char_paragraphs):
        return "\n\n".join(hundred_char_paragraphs)

    def test_limits_come_from_settings(self, service):
        assert service.limits == LimitConfig(max_units=100, max_chars=720000, warning_threshold=50)

    def test_overrides_merge_over_settings(self, settings):
        service = StagingService(limits={"max_chars": 5000}, settings=settings)

        assert service.limits.max_units == 100
        assert service.limits.max_chars == 5000

    def test_analyze(self, service, long_text):
        assert service.analyze("short").is_valid
        assert service.analyze(long_text).exceeds_limit

    def test_auto_mode_direct_when_valid(self, service):
        stages = service.prepare("A short request.")

        assert len(stages) == 1
        assert stages[0].content == "A short request."

    def test_auto_mode_staged_when_over_limit(self, service, long_text):
        stages = service.prepare(long_text, ProcessingMode.AUTO)

        assert len(stages) == 3
        assert all(len(s.content) <= 280 for s in stages)

    def test_direct_mode_rejects_over_limit(self, service, long_text):
        with pytest.raises(InputLimitExceededError) as exc_info:
            service.prepare(long_text, ProcessingMode.DIRECT)

        assert exc_info.value.validation.exceeds_limit
        assert "too long" in str(exc_info.value)

    def test_truncated_mode_single_stage(self, service, long_text, hundred_char_paragraphs):
        stages = service.prepare(long_text, "truncated")

        assert len(stages) == 1
        assert stages[0].content == "\n\n".join(hundred_char_paragraphs[:3])

    def test_blank_input_has_no_stages(self, service):
        assert service.prepare("   ", ProcessingMode.DIRECT) == []
        assert service.prepare("", ProcessingMode.STAGED) == []

    @pytest.mark.asyncio
    async def test_process_tracks_progress(self, service, long_text):
        seen = []

        async def process(content, index, total):
            seen.append((service.is_processing, service.progress.total, service.progress.completed))
            return index

        result = await service.process(long_text, process, ProcessingMode.STAGED)

        assert result.is_complete
        assert seen == [(True, 3, 0), (True, 3, 1), (True, 3, 2)]
        assert not service.is_processing
        assert service.progress == ProgressSnapshot()
        assert service.last_result is result

    @pytest.mark.asyncio
    async def test_process_forwards_progress(self, service):
        calls = []

        await service.process("hello", upper, on_progress=lambda c, t, s: calls.append((c, t)))

        assert calls == [(0, 1), (1, 1)]

    @pytest.mark.asyncio
    async def test_stage_failure_does_not_raise(self, service, long_text):
        async def process(content, index, total):
            if index == 0:
                raise RuntimeError("rate limited")
            return content

        result = await service.process(long_text, process, ProcessingMode.STAGED)

        assert not result.is_complete
        assert result.stages[0].status is StageStatus.ERROR
        assert result.stages[0].error_message == "rate limited"
        assert len(result.combined_results) == 2

    @pytest.mark.asyncio
    async def test_direct_mode_error_resets_state(self, service, long_text):
        with pytest.raises(InputLimitExceededError):
            await service.process(long_text, upper, ProcessingMode.DIRECT)

        assert not service.is_processing
        assert service.last_result is None

    @pytest.mark.asyncio
    async def test_custom_executor(self, settings):
        service = StagingService(executor=StagedExecutor(stage_timeout=5), settings=settings)

        result = await service.process("hello", upper)

        assert result.combined_results == ["HELLO"]

    def test_executor_timeout_from_settings(self):
        service = StagingService(settings=Settings(stage_timeout_seconds=2.5))

        assert service.executor.stage_timeout == 2.5

    def test_no_queue_without_task_timeout(self, service):
        assert service.queue is None
        assert service.executor.queue is None

    @pytest.mark.asyncio
    async def test_task_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("STAGING_TASK_TIMEOUT_SECONDS", "0.05")
        service = StagingService()

        async def process(content, index, total):
            await asyncio.sleep(1)
            return content

        assert service.queue.task_timeout == 0.05
        assert service.executor.queue is service.queue

        result = await service.process("hello", process)
        await service.close()

        assert not result.is_complete
        assert result.stages[0].status is StageStatus.ERROR
        assert result.stages[0].error_message == "Task exceeded 0.05s timeout"
        assert service.queue.is_closed

    @pytest.mark.asyncio
    async def test_explicit_queue_is_used(self, settings):
        async with SequentialTaskQueue() as queue:
            service = StagingService(settings=settings, queue=queue)
            result = await service.process("hello", upper)

        assert service.executor.queue is queue
        assert result.combined_results == ["HELLO"]


class TestSettings:
    """Test suite for environment-driven settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.limit_config() == LimitConfig()
        assert settings.stage_timeout_seconds is None
        assert settings.task_timeout_seconds is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STAGING_MAX_UNITS", "200000")
        monkeypatch.setenv("STAGING_TASK_TIMEOUT_SECONDS", "30")

        settings = Settings()

        assert settings.max_units == 200000
        assert settings.task_timeout_seconds == 30.0

    def test_inconsistent_limits_rejected(self):
        from input_staging.core.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            Settings(max_units=1000).limit_config()
