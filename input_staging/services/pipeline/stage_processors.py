"""Processing functions that send stages to a text-generation client.

The client is anything exposing the ``generate_content`` coroutine used by
the LLM clients in this codebase::

    async def generate_content(contents, system_instruction=None, generation_config=None) -> str
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from input_staging.services.chunking.token_counter import TokenCounter
from input_staging.services.pipeline.sequential_queue import SequentialTaskQueue
from input_staging.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TextGenerator(Protocol):
    async def generate_content(
        self,
        contents: Any,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...


@dataclass(frozen=True)
class StageOutput:
    """Output of one stage's generation call."""

    stage_index: int
    output: str
    units: int
    processing_time_ms: int


class StagePromptProcessor:
    """Summarizes each stage with a text-generation client.

    An instance is a valid ``process_fn`` for the staged executor. With
    ``carry_context`` enabled, each prompt also includes the previous
    stage's output, so the stages must run in order (which the executor
    guarantees).
    """

    PROMPT_TEMPLATE = (
        "Analyze and summarize this content (Stage {stage} of {total}):\n\n{content}"
    )
    CONTEXT_TEMPLATE = "Summary of the previous stages:\n{context}\n\n"

    def __init__(
        self,
        client: TextGenerator,
        system_instruction: Optional[str] = None,
        max_output_tokens: int = 500,
        carry_context: bool = False,
        queue: Optional[SequentialTaskQueue] = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        """Initialize the processor.

        Args:
            client: Text-generation client
            system_instruction: Optional system instruction for every call
            max_output_tokens: Output cap passed in the generation config
            carry_context: Prepend the previous stage's output to each prompt
            queue: Optional queue to serialize calls with other users of the client;
                must not be the queue the executor itself routes stages through
            token_counter: Token counter instance (creates new if None)
        """
        self.client = client
        self.system_instruction = system_instruction
        self.max_output_tokens = max_output_tokens
        self.carry_context = carry_context
        self.queue = queue
        self.token_counter = token_counter or TokenCounter()
        self._previous_output: Optional[str] = None

    def build_prompt(self, content: str, index: int, total: int) -> str:
        prompt = self.PROMPT_TEMPLATE.format(stage=index + 1, total=total, content=content)
        if self.carry_context and index > 0 and self._previous_output:
            prompt = self.CONTEXT_TEMPLATE.format(context=self._previous_output) + prompt
        return prompt

    async def __call__(self, content: str, index: int, total: int) -> StageOutput:
        if index == 0:
            self._previous_output = None

        prompt = self.build_prompt(content, index, total)
        start_time = time.monotonic()

        async def generate() -> str:
            return await self.client.generate_content(
                contents=prompt,
                system_instruction=self.system_instruction,
                generation_config={"max_output_tokens": self.max_output_tokens},
            )

        if self.queue is not None:
            text = await self.queue.enqueue(generate)
        else:
            text = await generate()

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        self._previous_output = text
        LOGGER.debug(f"Stage {index + 1}/{total} generated {len(text)} chars in {elapsed_ms}ms")

        return StageOutput(
            stage_index=index,
            output=text,
            units=self.token_counter.count_tokens(content),
            processing_time_ms=elapsed_ms,
        )
