"""Backend control loop for one connection.

State machine:
    idle --ChatRequest--> generating --done text--> idle
                          generating --tool calls--> awaiting_tool
    awaiting_tool --last matching ToolResult--> generating

Frames that do not fit the current state are protocol violations: they are
logged and discarded, and the state machine does not move.
"""

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from ..config import LOG_PREVIEW_CHARS, SYSTEM_PROMPT
from ..llm import LLMProvider, TextDelta, ToolCallEvent
from ..protocol import (
    ChatMessage,
    ChatRequest,
    ErrorChunk,
    ProtocolError,
    TextChunk,
    ToolCallChunk,
    ToolCallRequest,
    ToolResult,
    ToolResultChunk,
    decode_client_message,
)
from .conversation import ConversationState

logger = logging.getLogger(__name__)

ChunkSender = Callable[[BaseModel], Awaitable[None]]


class SessionState(str, Enum):
    """Where the session is in the request/tool cycle."""

    IDLE = "idle"
    GENERATING = "generating"
    AWAITING_TOOL = "awaiting_tool"


def decode_tool_arguments(raw: str) -> Any:
    """Parse a provider argument string for the wire, keeping it raw if unparsable."""
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        return raw


def _preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_CHARS:
        return text
    return text[:LOG_PREVIEW_CHARS] + "..."


class StreamingSession:
    """Streams model turns for one connection and coordinates tool calls.

    The session owns its ConversationState; nothing outside the connection
    task touches it. Output goes through the ``send`` coroutine, whose
    transport errors propagate to the caller.
    """

    def __init__(
        self,
        provider: LLMProvider,
        send: ChunkSender,
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        model: str | None = None,
        echo_tool_results: bool = True,
        session_id: str | None = None,
    ):
        """Initialize the session.

        Args:
            provider: Model provider invoked for every turn
            send: Coroutine delivering one chunk to the client
            tools: Fixed tool definitions offered to the model
            system_prompt: Prepended to the transcript on every model call
            model: Model override (None uses the provider's default)
            echo_tool_results: Relay accepted tool results back as ToolResultChunk
            session_id: Label used in log lines
        """
        self._provider = provider
        self._send = send
        self._tools = tools or []
        self._system_prompt = system_prompt
        self._model = model
        self._echo_tool_results = echo_tool_results
        self._session_id = session_id or uuid.uuid4().hex[:8]
        self._conversation = ConversationState()
        self._state = SessionState.IDLE
        self._outstanding: dict[str, str] = {}  # tool call id -> tool name

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def conversation(self) -> ConversationState:
        return self._conversation

    @property
    def outstanding_tool_calls(self) -> list[str]:
        return list(self._outstanding)

    async def handle_frame(self, raw: str | bytes) -> None:
        """Decode one frame and process it; malformed frames are dropped."""
        try:
            message = decode_client_message(raw)
        except ProtocolError as e:
            logger.warning("[%s] Discarding malformed frame: %s", self._session_id, e)
            return
        await self.handle_message(message)

    async def handle_message(self, message: ChatRequest | ToolResult) -> None:
        if isinstance(message, ChatRequest):
            await self._on_chat_request(message)
        elif isinstance(message, ToolResult):
            await self._on_tool_result(message)
        else:
            logger.warning("[%s] Discarding unsupported message %r", self._session_id, message)

    async def _on_chat_request(self, request: ChatRequest) -> None:
        if self._state != SessionState.IDLE:
            logger.warning(
                "[%s] Discarding chat_request while %s (outstanding tool calls: %s)",
                self._session_id, self._state.value, ", ".join(self._outstanding) or "none",
            )
            return
        if not request.messages:
            logger.warning("[%s] Discarding chat_request with no messages", self._session_id)
            return

        if self._conversation.seeded:
            appended = self._conversation.synchronize(request.messages)
            logger.info(
                "[%s] chat_request: %d message(s), %d new, transcript length %d",
                self._session_id, len(request.messages), appended, len(self._conversation),
            )
        else:
            self._conversation.seed(request.messages)
            logger.info(
                "[%s] chat_request: seeded transcript with %d message(s)",
                self._session_id, len(request.messages),
            )
        await self._run_turn()

    async def _on_tool_result(self, result: ToolResult) -> None:
        if self._state != SessionState.AWAITING_TOOL or result.id not in self._outstanding:
            logger.warning(
                "[%s] Discarding tool_result with unmatched id %s (state: %s)",
                self._session_id, result.id, self._state.value,
            )
            return

        name = self._outstanding.pop(result.id)
        self._conversation.append_tool_result(result.id, result.content)
        logger.info(
            "[%s] tool_result for %s (%s), %d chars: %s",
            self._session_id, name, result.id, len(result.content), _preview(result.content),
        )
        if self._echo_tool_results:
            await self._send(ToolResultChunk(id=result.id, content=result.content))

        if not self._outstanding:
            await self._run_turn()

    def _prompt_messages(self) -> list[ChatMessage]:
        prompt = [ChatMessage.system(self._system_prompt)] if self._system_prompt else []
        return prompt + self._conversation.messages

    async def _fail(self, error: Exception) -> None:
        """Report a provider failure; the partial turn is not committed."""
        logger.error("[%s] Provider failure: %s", self._session_id, error, exc_info=error)
        self._state = SessionState.IDLE
        await self._send(ErrorChunk(message=f"Error: {error}"))

    async def _run_turn(self) -> None:
        self._state = SessionState.GENERATING
        text_parts: list[str] = []
        calls: list[ToolCallRequest] = []

        try:
            stream = await self._provider.chat_completion_stream(
                self._prompt_messages(), tools=self._tools, model=self._model
            )
        except Exception as e:
            await self._fail(e)
            return

        events = stream.__aiter__()
        while True:
            try:
                event = await events.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                await self._fail(e)
                return

            if isinstance(event, TextDelta):
                text_parts.append(event.text)
                await self._send(TextChunk(delta=event.text, done=False))
            elif isinstance(event, ToolCallEvent):
                calls.append(ToolCallRequest(
                    id=event.id or f"call_{uuid.uuid4().hex[:12]}",
                    name=event.name,
                    arguments=decode_tool_arguments(event.arguments),
                ))

        text = "".join(text_parts)
        if text:
            self._conversation.append_assistant_text(text)
        if calls:
            self._conversation.append_tool_calls(calls)
            for call in calls:
                logger.info("[%s] tool_call %s (%s): %s", self._session_id, call.name, call.id, call.arguments)
                await self._send(ToolCallChunk(id=call.id, name=call.name, arguments=call.arguments))

        self._outstanding = {call.id: call.name for call in calls}
        self._state = SessionState.AWAITING_TOOL if calls else SessionState.IDLE
        logger.info(
            "[%s] turn complete: %d chars, %d tool call(s), usage=%s",
            self._session_id, len(text), len(calls), stream.usage,
        )
        await self._send(TextChunk(delta="", done=True))
