"""Client-side application event loop.

A single cooperative loop multiplexes three sources: user input, connection
events, and in-flight tool tasks. Exactly one ready event is handled per
iteration, and the handler runs to completion before the next one.

The controller owns the client's message history (user messages and
finalized assistant text) and drives a ChatView. It knows nothing about
rendering.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..protocol import (
    ChatMessage,
    ChatRequest,
    ErrorChunk,
    TextChunk,
    ToolCallChunk,
    ToolCallRequest,
    ToolResult,
    ToolResultChunk,
)
from ..tools import ToolCallResult, ToolExecutor
from .connection import (
    ChunkEvent,
    ConnectionEvent,
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    NotConnectedError,
    StatusEvent,
)
from .transcript_log import TranscriptLogger

logger = logging.getLogger(__name__)


class ChatView(ABC):
    """What the controller needs from a user interface."""

    @abstractmethod
    def set_status(self, status: ConnectionStatus) -> None:
        pass

    @abstractmethod
    def add_user_message(self, text: str) -> None:
        pass

    @abstractmethod
    def begin_assistant_message(self) -> None:
        pass

    @abstractmethod
    def append_assistant_delta(self, delta: str) -> None:
        pass

    @abstractmethod
    def finalize_assistant_message(self) -> None:
        pass

    @abstractmethod
    def interrupt_assistant_message(self, reason: str) -> None:
        """Keep the partial message visible but mark it incomplete."""
        pass

    @abstractmethod
    def add_notice(self, text: str, level: str = "info") -> None:
        pass

    @abstractmethod
    def tool_started(self, call: ToolCallRequest) -> None:
        pass

    @abstractmethod
    def tool_finished(self, result: ToolCallResult) -> None:
        pass


@dataclass
class _Turn:
    """Bookkeeping for one conversation turn (user input to final done)."""

    history_start: int  # history length right after the user message
    pending_send: bool = False
    streaming: bool = False
    text: list[str] = field(default_factory=list)
    outstanding: set[str] = field(default_factory=set)
    calls_this_model_turn: int = 0

    def reset(self) -> None:
        self.streaming = False
        self.text.clear()
        self.outstanding.clear()
        self.calls_this_model_turn = 0


class ChatController:
    """Runs the client side of the chat protocol.

    Usage:
        controller = ChatController(connection, view)
        asyncio.create_task(controller.run())
        controller.submit("List the TODOs in src/")
        ...
        controller.quit()
    """

    def __init__(
        self,
        connection: ConnectionManager,
        view: ChatView,
        executor: ToolExecutor | None = None,
        transcript: TranscriptLogger | None = None,
    ):
        self._connection = connection
        self._view = view
        self._executor = executor or ToolExecutor()
        self._transcript = transcript
        self._input: asyncio.Queue[str | None] = asyncio.Queue()
        self._history: list[ChatMessage] = []
        self._turn: _Turn | None = None
        self._status = ConnectionStatus()
        # Tool tasks remember the epoch they were started in; results from an
        # older epoch belong to an abandoned turn and are not sent.
        self._epoch = 0
        self._tool_tasks: dict[asyncio.Task[ToolCallResult], int] = {}
        self._running = False

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    @property
    def busy(self) -> bool:
        """Whether a conversation turn is in flight."""
        return self._turn is not None

    @property
    def running(self) -> bool:
        """Whether run() is processing events."""
        return self._running

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def submit(self, text: str) -> None:
        self._input.put_nowait(text)

    def quit(self) -> None:
        self._input.put_nowait(None)

    async def run(self) -> None:
        """Process events until quit() is called."""
        self._connection.start()
        self._running = True
        input_task: asyncio.Task | None = None
        event_task: asyncio.Task | None = None
        try:
            while True:
                if input_task is None:
                    input_task = asyncio.create_task(self._input.get())
                if event_task is None:
                    event_task = asyncio.create_task(self._connection.next_event())

                done, _ = await asyncio.wait(
                    {input_task, event_task, *self._tool_tasks},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if event_task in done:
                    event, event_task = event_task.result(), None
                    await self.handle_event(event)
                    continue

                finished = next((task for task in self._tool_tasks if task in done), None)
                if finished is not None:
                    await self._on_tool_finished(finished)
                    continue

                text, input_task = input_task.result(), None
                if text is None:
                    break
                await self.handle_input(text)
        finally:
            self._running = False
            for task in (input_task, event_task, *self._tool_tasks):
                if task is not None:
                    task.cancel()
            self._tool_tasks.clear()
            await self._connection.close()

    async def handle_input(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        if self._turn is not None:
            self._notice("Still working on the previous request; please wait.", "warning")
            return

        self._history.append(ChatMessage.user(text))
        self._view.add_user_message(text)
        if self._transcript:
            self._transcript.log_user_message(text)

        self._turn = _Turn(history_start=len(self._history))
        await self._send_request()

    async def handle_event(self, event: ConnectionEvent) -> None:
        if isinstance(event, StatusEvent):
            await self._on_status(event.status)
        elif isinstance(event, ChunkEvent):
            await self._on_chunk(event.chunk)

    async def _send_request(self) -> None:
        turn = self._turn
        try:
            await self._connection.send(ChatRequest(messages=self._history))
        except NotConnectedError as e:
            logger.info("Deferring chat request until reconnected: %s", e)
            turn.pending_send = True
            self._notice("Not connected; the message will be sent once the connection is restored.", "warning")
            return
        turn.pending_send = False

    async def _on_status(self, status: ConnectionStatus) -> None:
        self._status = status
        self._view.set_status(status)
        turn = self._turn
        if turn is None:
            return

        if status.state == ConnectionState.DISCONNECTED and not turn.pending_send:
            # The server session is gone with the connection: abandon this
            # attempt and replay the turn from the user message.
            if turn.streaming:
                self._view.interrupt_assistant_message("connection lost")
            del self._history[turn.history_start:]
            self._epoch += 1
            turn.reset()
            turn.pending_send = True
            self._notice("Connection lost; retrying the request after reconnecting.", "warning")
        elif status.state == ConnectionState.CONNECTED and turn.pending_send:
            await self._send_request()

    async def _on_chunk(self, chunk) -> None:
        turn = self._turn
        if turn is None or turn.pending_send:
            logger.debug("Ignoring %s chunk outside an active turn", chunk.type)
            return

        if isinstance(chunk, TextChunk):
            if chunk.done:
                self._finish_model_turn(turn)
            elif chunk.delta:
                if not turn.streaming:
                    self._view.begin_assistant_message()
                    turn.streaming = True
                turn.text.append(chunk.delta)
                self._view.append_assistant_delta(chunk.delta)

        elif isinstance(chunk, ToolCallChunk):
            call = chunk.to_request()
            turn.outstanding.add(call.id)
            turn.calls_this_model_turn += 1
            self._view.tool_started(call)
            if self._transcript:
                self._transcript.log_tool_call(call.id, call.name, call.arguments)
            task = asyncio.create_task(self._executor.run(call))
            self._tool_tasks[task] = self._epoch

        elif isinstance(chunk, ToolResultChunk):
            logger.debug("Server accepted tool result %s", chunk.id)

        elif isinstance(chunk, ErrorChunk):
            if turn.streaming:
                self._view.interrupt_assistant_message("error")
            self._notice(chunk.message, "error")
            self._end_turn()

    def _finish_model_turn(self, turn: _Turn) -> None:
        text = "".join(turn.text)
        if turn.streaming:
            self._view.finalize_assistant_message()
        if text:
            self._history.append(ChatMessage.assistant(text))
            if self._transcript:
                self._transcript.log_assistant_message(text)
        turn.streaming = False
        turn.text.clear()

        if turn.calls_this_model_turn == 0 and not turn.outstanding:
            self._end_turn()
        else:
            turn.calls_this_model_turn = 0

    def _end_turn(self) -> None:
        self._turn = None
        self._epoch += 1

    async def _on_tool_finished(self, task: asyncio.Task[ToolCallResult]) -> None:
        epoch = self._tool_tasks.pop(task)
        result = task.result()
        self._view.tool_finished(result)
        if self._transcript:
            self._transcript.log_tool_result(result.tool_call_id, result.content)

        turn = self._turn
        if epoch != self._epoch or turn is None or result.tool_call_id not in turn.outstanding:
            logger.info("Dropping result of abandoned tool call %s", result.tool_call_id)
            return

        turn.outstanding.discard(result.tool_call_id)
        try:
            await self._connection.send(ToolResult(id=result.tool_call_id, content=result.content))
        except NotConnectedError as e:
            # The disconnect status event that follows replays the turn.
            logger.warning("Could not send tool result %s: %s", result.tool_call_id, e)

    def _notice(self, text: str, level: str = "info") -> None:
        self._view.add_notice(text, level)
        if self._transcript:
            self._transcript.log_notice(text)
