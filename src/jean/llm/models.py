from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextDelta(BaseModel):
    """A fragment of assistant text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str = Field(description="Text fragment in generation order")


class ToolCallEvent(BaseModel):
    """A fully assembled tool invocation emitted by the provider."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tool_call"] = "tool_call"
    id: str = Field(description="Provider-assigned tool call identifier")
    name: str = Field(description="Tool name")
    arguments: str = Field(default="", description="Raw JSON argument string")


class StreamFinished(BaseModel):
    """The provider finished the completion."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["finished"] = "finished"
    reason: str = Field(default="stop", description="Provider finish/stop reason")


ProviderEvent = TextDelta | ToolCallEvent | StreamFinished


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator of provider events while storing token usage
    that becomes available at the end of the stream. A response is consumed
    once; a new completion needs a new call.

    Usage:
        stream = await provider.chat_completion_stream(messages, tools)
        async for event in stream:
            ...
        # After iteration, usage is available
        print(stream.usage)  # {"prompt_tokens": 100, "completion_tokens": 50, ...}
    """

    def __init__(self, async_iter: AsyncIterator[ProviderEvent]):
        """Initialize with an async iterator of provider events.

        Args:
            async_iter: Async iterator yielding provider events
        """
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info (called by provider at end of stream)."""
        self._usage = usage

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> ProviderEvent:
        """Get next event from the underlying iterator."""
        return await self._iter.__anext__()
