from abc import ABC, abstractmethod
from typing import Any

from ..protocol import ChatMessage
from .models import StreamingResponse


class LLMProvider(ABC):
    """A model backend that streams text and tool calls.

    The server only depends on this interface. Each implementation owns the
    vendor SDK client, converts the transcript (tool calls and tool results
    included) into the vendor's message format, and turns the vendor's
    stream into provider events. Tool calls are emitted only once they are
    complete, never as fragments.

    Providers hold network clients, so use them as async context managers:
        async with create_llm_provider("openai", api_key=key) as provider:
            stream = await provider.chat_completion_stream(messages, tools)
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model used when a call does not name one."""
        pass

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Start one model call.

        Args:
            messages: Full transcript, system prompt first
            tools: OpenAI-style function specs the model may call
            model: Per-call model override
            temperature: Sampling temperature
            max_tokens: Generation limit (provider default when None)
            **kwargs: Passed to the vendor API unchanged

        Returns:
            StreamingResponse of TextDelta and ToolCallEvent items ending with
            StreamFinished; ``usage`` is filled in once it is exhausted

        Raises:
            Exception: Vendor errors, either here or while iterating the response
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the SDK client."""
        pass

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # httpx can fail to close its pool while the loop shuts down
            if "Event loop is closed" not in str(e):
                raise
