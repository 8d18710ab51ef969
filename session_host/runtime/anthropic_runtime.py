"""Agent runtime backed by the Anthropic Messages API (chat only, no tools)."""

import os
import uuid
from typing import AsyncIterator

import anthropic

from ..logging_config import get_logger
from ..models import (
    AgentMessageItem,
    ItemCompleted,
    ThreadEvent,
    ThreadStarted,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
    Usage,
)

logger = get_logger(__name__)


class AnthropicRuntime:
    """Anthropic Claude API provider exposed as an agent runtime."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
        max_tokens: int = 1024,
        system: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        if client is None:
            api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable not set")
            client = anthropic.AsyncAnthropic(api_key=api_key)

        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._system = system

    def start_thread(self, working_directory: str | None = None) -> "AnthropicThread":
        """Create a new conversation thread."""
        return AnthropicThread(self, None)

    def resume_thread(self, thread_id: str) -> "AnthropicThread":
        """Reattach by id. History lives in process memory, so it starts empty."""
        return AnthropicThread(self, thread_id)

    async def complete(self, messages: list[dict]) -> anthropic.types.Message:
        """Generate a completion using Claude API."""
        kwargs = {
            "model": self._model,
            "messages": messages,
            "max_tokens": self._max_tokens,
        }
        if self._system:
            kwargs["system"] = self._system

        try:
            return await self._client.messages.create(**kwargs)
        except Exception as e:
            # Re-raise for handling by caller
            raise RuntimeError(f"LLM API error: {e}") from e


class AnthropicThread:
    """Conversation history kept in memory for one thread."""

    def __init__(self, runtime: AnthropicRuntime, thread_id: str | None):
        self._runtime = runtime
        self._id = thread_id
        self._history: list[dict] = []

    @property
    def id(self) -> str | None:
        return self._id

    async def run_streamed(self, content: str) -> AsyncIterator[ThreadEvent]:
        """Execute one turn and yield its lifecycle events in arrival order."""
        if self._id is None:
            self._id = f"thread-{uuid.uuid4()}"
            yield ThreadStarted(thread_id=self._id)

        yield TurnStarted()

        messages = self._history + [{"role": "user", "content": content}]
        try:
            response = await self._runtime.complete(messages)
        except RuntimeError as e:
            logger.error("Turn failed for thread %s: %s", self._id, e)
            yield TurnFailed(message=str(e))
            return

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        self._history = messages + [{"role": "assistant", "content": text}]

        yield ItemCompleted(item=AgentMessageItem(id=response.id, text=text))
        yield TurnCompleted(
            usage=Usage(
                input_tokens=response.usage.input_tokens,
                cached_input_tokens=getattr(response.usage, "cache_read_input_tokens", 0) or 0,
                output_tokens=response.usage.output_tokens,
            )
        )
