import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from openai import AsyncOpenAI

from ...protocol import ChatMessage, Role
from ..base import LLMProvider
from ..models import ProviderEvent, StreamFinished, StreamingResponse, TextDelta, ToolCallEvent


def _arguments_json(arguments: Any) -> str:
    """Chat Completions expects tool arguments as a JSON string."""
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments if arguments is not None else {})


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert transcript messages to Chat Completions format.

    Assistant messages carrying tool calls are sent with null content, and
    tool results carry the id of the call they answer.
    """
    converted: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == Role.TOOL:
            converted.append({
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content,
            })
        elif msg.role == Role.ASSISTANT and msg.tool_calls:
            converted.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": _arguments_json(call.arguments),
                        },
                    }
                    for call in msg.tool_calls
                ],
            })
        else:
            converted.append({"role": msg.role.value, "content": msg.content})
    return converted


class OpenAIProvider(LLMProvider):
    """OpenAI LLM provider implementation.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion (tool calls and tool results)
    - Reassembly of tool calls streamed as indexed fragments
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Default model to use
            base_url: Optional custom API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming chat completion using OpenAI.

        Args:
            messages: Conversation history
            tools: Function specifications offered to the model
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            StreamingResponse that yields provider events and captures usage info
        """
        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": to_openai_messages(messages),
            "temperature": temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
            **kwargs,
        }
        if tools:
            request_params["tools"] = tools
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens

        response: StreamingResponse
        response = StreamingResponse(
            self._chat_stream_generator(request_params, lambda usage: response.set_usage(usage))
        )
        return response

    async def _chat_stream_generator(
        self,
        request_params: dict[str, Any],
        on_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[ProviderEvent]:
        """Internal generator for Chat Completions streaming with usage capture."""
        stream = await self._client.chat.completions.create(**request_params)

        # Tool calls arrive as fragments keyed by index: the first fragment
        # carries id and name, later ones append to the argument string.
        pending: dict[int, dict[str, str]] = {}
        finish_reason = "stop"

        def flush() -> list[ToolCallEvent]:
            calls = [
                ToolCallEvent(id=entry["id"], name=entry["name"], arguments=entry["arguments"])
                for _, entry in sorted(pending.items())
            ]
            pending.clear()
            return calls

        async for chunk in stream:
            # Check for usage in the final chunk
            if getattr(chunk, "usage", None) is not None:
                on_usage({
                    "prompt_tokens": chunk.usage.prompt_tokens,
                    "completion_tokens": chunk.usage.completion_tokens,
                    "total_tokens": chunk.usage.total_tokens,
                })
            if not chunk.choices:
                continue

            choice = chunk.choices[0]
            delta = choice.delta
            if delta is not None:
                if delta.content:
                    yield TextDelta(text=delta.content)
                for fragment in delta.tool_calls or []:
                    entry = pending.setdefault(
                        fragment.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if fragment.id:
                        entry["id"] = fragment.id
                    function = fragment.function
                    if function is not None:
                        if function.name:
                            entry["name"] = function.name
                        if function.arguments:
                            entry["arguments"] += function.arguments

            if choice.finish_reason:
                finish_reason = choice.finish_reason
                for call in flush():
                    yield call

        # Some compatible servers end the stream without a finish reason
        for call in flush():
            yield call
        yield StreamFinished(reason=finish_reason)

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
