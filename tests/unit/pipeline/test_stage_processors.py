"""Unit tests for StagePromptProcessor."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from input_staging.services.chunking.stage_chunker import StageChunker
from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.services.pipeline.stage_processors import StageOutput, StagePromptProcessor
from input_staging.services.pipeline.staged_executor import StagedExecutor


@pytest.fixture
def mock_llm_client():
    """Mock client exposing generate_content."""
    client = MagicMock()
    client.generate_content = AsyncMock(side_effect=lambda contents, **kwargs: f"summary of {len(contents)} chars")
    return client


class TestStagePromptProcessor:
    """Test suite for StagePromptProcessor."""

    @pytest.mark.asyncio
    async def test_prompt_and_output(self, mock_llm_client):
        processor = StagePromptProcessor(mock_llm_client, system_instruction="Be brief.")

        output = await processor("Roadmap content", 0, 2)

        assert isinstance(output, StageOutput)
        assert output.stage_index == 0
        assert output.units == 5
        assert output.output.startswith("summary of")

        kwargs = mock_llm_client.generate_content.call_args.kwargs
        assert kwargs["contents"] == (
            "Analyze and summarize this content (Stage 1 of 2):\n\nRoadmap content"
        )
        assert kwargs["system_instruction"] == "Be brief."
        assert kwargs["generation_config"] == {"max_output_tokens": 500}

    @pytest.mark.asyncio
    async def test_carries_previous_output(self, mock_llm_client):
        mock_llm_client.generate_content = AsyncMock(side_effect=["first summary", "second summary"])
        processor = StagePromptProcessor(mock_llm_client, carry_context=True)

        await processor("part one", 0, 2)
        await processor("part two", 1, 2)

        second_prompt = mock_llm_client.generate_content.call_args_list[1].kwargs["contents"]
        assert second_prompt.startswith("Summary of the previous stages:\nfirst summary")
        assert second_prompt.endswith("(Stage 2 of 2):\n\npart two")

    @pytest.mark.asyncio
    async def test_context_reset_on_new_run(self, mock_llm_client):
        processor = StagePromptProcessor(mock_llm_client, carry_context=True)

        await processor("old run", 0, 1)
        await processor("new run", 0, 1)

        prompt = mock_llm_client.generate_content.call_args.kwargs["contents"]
        assert "previous stages" not in prompt

    @pytest.mark.asyncio
    async def test_serializes_through_queue(self, mock_llm_client):
        async with SequentialTaskQueue() as queue:
            processor = StagePromptProcessor(mock_llm_client, queue=queue)
            output = await processor("queued", 0, 1)

        assert output.output == "summary of 58 chars"
        mock_llm_client.generate_content.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_end_to_end_with_executor(self, mock_llm_client, small_limits, sentence_paragraph):
        stages = StageChunker(limits=small_limits).chunk(sentence_paragraph)
        processor = StagePromptProcessor(mock_llm_client)

        result = await StagedExecutor().run(stages, processor)

        assert result.is_complete
        assert [o.stage_index for o in result.combined_results] == list(range(len(stages)))
        assert mock_llm_client.generate_content.await_count == len(stages)
