"""Anthropic Claude LLM provider implementation.

Uses the official Anthropic Python SDK for async streaming with tool use.
Reference: https://github.com/anthropics/anthropic-sdk-python
"""

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from anthropic import AsyncAnthropic

from ...protocol import ChatMessage, Role
from ..base import LLMProvider
from ..models import ProviderEvent, StreamFinished, StreamingResponse, TextDelta, ToolCallEvent


def _tool_input(arguments: Any) -> Any:
    if isinstance(arguments, str):
        try:
            return json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError:
            return {"raw": arguments}
    return arguments if arguments is not None else {}


def to_anthropic_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert OpenAI-style function specs to Anthropic tool specs."""
    converted = []
    for spec in tools:
        function = spec.get("function", spec)
        converted.append({
            "name": function["name"],
            "description": function.get("description", ""),
            "input_schema": function.get("parameters", {"type": "object"}),
        })
    return converted


def to_anthropic_messages(messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, Any]]]:
    """Split out the system prompt and convert the rest to Anthropic format.

    Tool calls become ``tool_use`` blocks on the assistant side and tool
    results become ``tool_result`` blocks on the user side. Consecutive
    messages of the same role are merged, since the API requires alternation.
    """
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == Role.SYSTEM:
            system_parts.append(msg.content)
            continue

        if msg.role == Role.TOOL:
            role = "user"
            blocks = [{
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content,
            }]
        elif msg.role == Role.ASSISTANT and msg.tool_calls:
            role = "assistant"
            blocks = [
                {
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": _tool_input(call.arguments),
                }
                for call in msg.tool_calls
            ]
        else:
            role = msg.role.value
            blocks = [{"type": "text", "text": msg.content}]

        if converted and converted[-1]["role"] == role:
            converted[-1]["content"].extend(blocks)
        else:
            converted.append({"role": role, "content": blocks})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, converted


class AnthropicProvider(LLMProvider):
    """Anthropic Claude LLM provider implementation.

    Hidden design decisions:
    - Anthropic API client initialization
    - Message format conversion (system message, tool_use and tool_result blocks)
    - Assembly of streamed tool input JSON
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Default model to use (default: claude-sonnet-4-20250514)
            base_url: Optional custom API base URL
            **client_kwargs: Additional kwargs for AsyncAnthropic client
        """
        self._model = model
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
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
        """Generate a streaming chat completion using Anthropic Claude.

        Args:
            messages: Conversation history
            tools: OpenAI-style function specifications offered to the model
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (default: 4096)
            **kwargs: Additional Anthropic-specific parameters

        Returns:
            StreamingResponse that yields provider events and captures usage info
        """
        system_message, anthropic_messages = to_anthropic_messages(messages)

        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": anthropic_messages,
            "temperature": temperature,
            "max_tokens": max_tokens or 4096,  # Anthropic requires max_tokens
            **kwargs
        }
        if system_message:
            request_params["system"] = system_message
        if tools:
            request_params["tools"] = to_anthropic_tools(tools)

        response: StreamingResponse
        response = StreamingResponse(
            self._stream_generator(request_params, lambda usage: response.set_usage(usage))
        )
        return response

    async def _stream_generator(
        self,
        request_params: dict[str, Any],
        on_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[ProviderEvent]:
        """Internal generator that translates stream events and captures usage."""
        input_tokens = 0
        output_tokens = 0
        stop_reason = "end_turn"
        # tool_use blocks in progress, keyed by content block index
        tool_blocks: dict[int, dict[str, str]] = {}

        async with self._client.messages.stream(**request_params) as stream:
            async for event in stream:
                event_type = getattr(event, "type", None)

                if event_type == "message_start":
                    usage = getattr(event.message, "usage", None)
                    if usage is not None:
                        input_tokens = usage.input_tokens
                elif event_type == "content_block_start":
                    block = event.content_block
                    if getattr(block, "type", None) == "tool_use":
                        tool_blocks[event.index] = {"id": block.id, "name": block.name, "json": ""}
                elif event_type == "content_block_delta":
                    delta = event.delta
                    delta_type = getattr(delta, "type", None)
                    if delta_type == "text_delta" and delta.text:
                        yield TextDelta(text=delta.text)
                    elif delta_type == "input_json_delta" and event.index in tool_blocks:
                        tool_blocks[event.index]["json"] += delta.partial_json
                elif event_type == "content_block_stop":
                    block = tool_blocks.pop(event.index, None)
                    if block is not None:
                        yield ToolCallEvent(
                            id=block["id"],
                            name=block["name"],
                            arguments=block["json"] or "{}",
                        )
                elif event_type == "message_delta":
                    if getattr(event.delta, "stop_reason", None):
                        stop_reason = event.delta.stop_reason
                    usage = getattr(event, "usage", None)
                    if usage is not None and hasattr(usage, "output_tokens"):
                        output_tokens = usage.output_tokens

        on_usage({
            "prompt_tokens": input_tokens,
            "completion_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        })
        yield StreamFinished(reason=stop_reason)

    async def close(self) -> None:
        """Close the Anthropic client."""
        await self._client.close()
