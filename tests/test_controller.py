"""Unit tests for the client chat controller."""
import asyncio
import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import RecordingView
from jean.client import (
    ChatController,
    ChunkEvent,
    ConnectionState,
    ConnectionStatus,
    NotConnectedError,
    StatusEvent,
    TranscriptLogger,
)
from jean.protocol import (
    ChatMessage,
    ChatRequest,
    ErrorChunk,
    TextChunk,
    ToolCallChunk,
    ToolResult,
)
from jean.tools import ReadFileTool, ToolExecutor


class GatedReadFile(ReadFileTool):
    """read_file that blocks until the test opens the gate."""

    def __init__(self, base_path):
        super().__init__(base_path)
        self.gate = threading.Event()

    def run(self, arguments):
        self.gate.wait(timeout=5)
        return super().run(arguments)


class FakeConnection:
    """In-memory stand-in for ConnectionManager."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.sent = []
        self.started = False
        self.closed = False
        self._events: asyncio.Queue = asyncio.Queue()

    def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def next_event(self):
        return await self._events.get()

    async def send(self, message) -> None:
        if not self.connected:
            raise NotConnectedError("not connected to server")
        self.sent.append(message)

    def push(self, event) -> None:
        self._events.put_nowait(event)


def status(state: ConnectionState) -> StatusEvent:
    return StatusEvent(status=ConnectionStatus(state=state))


def chunk(value) -> ChunkEvent:
    return ChunkEvent(chunk=value)


DONE = chunk(TextChunk(delta="", done=True))


def make_controller(connected: bool = True, **kwargs):
    connection = FakeConnection(connected)
    view = RecordingView()
    controller = ChatController(connection, view, **kwargs)
    return controller, connection, view


async def wait_until(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class BrokenConnection(FakeConnection):
    """Connection whose event stream fails."""

    async def next_event(self):
        raise RuntimeError("event stream failed")


class TestLifecycle:
    """Tests for starting and stopping the event loop."""

    @pytest.mark.asyncio
    async def test_running_until_quit(self):
        controller, connection, _ = make_controller()
        assert not controller.running
        runner = asyncio.create_task(controller.run())
        await wait_until(lambda: controller.running)

        controller.quit()
        await asyncio.wait_for(runner, timeout=5)
        assert not controller.running
        assert connection.closed

    @pytest.mark.asyncio
    async def test_not_running_after_failure(self):
        connection = BrokenConnection()
        controller = ChatController(connection, RecordingView())
        with pytest.raises(RuntimeError, match="event stream failed"):
            await controller.run()
        assert not controller.running
        assert connection.closed


class TestTextTurns:
    """Tests for sending a message and rendering the reply."""

    @pytest.mark.asyncio
    async def test_send_and_finalize(self):
        controller, connection, view = make_controller()

        await controller.handle_input("  hello  ")
        assert connection.sent == [ChatRequest(messages=[ChatMessage.user("hello")])]
        assert controller.busy

        await controller.handle_event(chunk(TextChunk(delta="Hi ", done=False)))
        await controller.handle_event(chunk(TextChunk(delta="there", done=False)))
        await controller.handle_event(DONE)

        assert ("final", "Hi there") in view.calls
        assert controller.history == [ChatMessage.user("hello"), ChatMessage.assistant("Hi there")]
        assert not controller.busy

    @pytest.mark.asyncio
    async def test_blank_input_is_ignored(self):
        controller, connection, view = make_controller()
        await controller.handle_input("   ")
        assert connection.sent == []
        assert view.calls == []

    @pytest.mark.asyncio
    async def test_input_while_busy_shows_notice(self):
        controller, connection, view = make_controller()
        await controller.handle_input("first")
        await controller.handle_input("second")

        assert len(connection.sent) == 1
        assert ("notice", "warning") in view.calls
        assert controller.history == [ChatMessage.user("first")]

    @pytest.mark.asyncio
    async def test_next_request_carries_full_history(self):
        controller, connection, _ = make_controller()
        await controller.handle_input("a")
        await controller.handle_event(chunk(TextChunk(delta="b", done=False)))
        await controller.handle_event(DONE)
        await controller.handle_input("c")

        assert connection.sent[-1] == ChatRequest(messages=[
            ChatMessage.user("a"), ChatMessage.assistant("b"), ChatMessage.user("c"),
        ])

    @settings(max_examples=25, deadline=None)
    @given(st.lists(st.text(min_size=1), min_size=1, max_size=8))
    def test_rendered_text_is_concatenated_deltas(self, deltas):
        """Property test: the finalized reply is every delta joined in order."""

        async def scenario():
            controller, _, view = make_controller()
            await controller.handle_input("go")
            for delta in deltas:
                await controller.handle_event(chunk(TextChunk(delta=delta, done=False)))
            await controller.handle_event(DONE)
            return controller, view

        controller, view = asyncio.run(scenario())
        assert view.calls[-1] == ("final", "".join(deltas))
        assert controller.history[-1] == ChatMessage.assistant("".join(deltas))

    @pytest.mark.asyncio
    async def test_chunks_outside_a_turn_are_ignored(self):
        controller, _, view = make_controller()
        await controller.handle_event(chunk(TextChunk(delta="stray", done=False)))
        await controller.handle_event(DONE)
        assert view.calls == []
        assert controller.history == []


class TestErrors:
    """Tests for server errors."""

    @pytest.mark.asyncio
    async def test_error_chunk_ends_the_turn(self):
        controller, _, view = make_controller()
        await controller.handle_input("hi")
        await controller.handle_event(chunk(TextChunk(delta="Part", done=False)))
        await controller.handle_event(chunk(ErrorChunk(message="Error: upstream failed")))

        assert ("interrupted", "error") in view.calls
        assert ("notice", "error") in view.calls
        assert not controller.busy
        assert controller.history == [ChatMessage.user("hi")]

    @pytest.mark.asyncio
    async def test_new_input_accepted_after_error(self):
        controller, connection, _ = make_controller()
        await controller.handle_input("hi")
        await controller.handle_event(chunk(ErrorChunk(message="Error: x")))
        await controller.handle_input("again")

        assert len(connection.sent) == 2


class TestReconnect:
    """Tests for connection loss and recovery."""

    @pytest.mark.asyncio
    async def test_disconnect_mid_stream_interrupts_and_replays(self):
        controller, connection, view = make_controller()
        await controller.handle_input("hi")
        await controller.handle_event(chunk(TextChunk(delta="Par", done=False)))

        connection.connected = False
        await controller.handle_event(status(ConnectionState.DISCONNECTED))

        assert ("interrupted", "connection lost") in view.calls
        assert controller.history == [ChatMessage.user("hi")]
        assert controller.busy

        # Late chunks from the dead connection are not rendered.
        await controller.handle_event(chunk(TextChunk(delta="tial", done=False)))
        assert view.text == "Par"

        connection.connected = True
        await controller.handle_event(status(ConnectionState.CONNECTING))
        await controller.handle_event(status(ConnectionState.CONNECTED))

        assert connection.sent == [
            ChatRequest(messages=[ChatMessage.user("hi")]),
            ChatRequest(messages=[ChatMessage.user("hi")]),
        ]

    @pytest.mark.asyncio
    async def test_reconnect_without_a_turn_sends_nothing(self):
        controller, connection, view = make_controller()

        for state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED,
                      ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            await controller.handle_event(status(state))

        assert connection.sent == []
        assert controller.status.state == ConnectionState.CONNECTED
        assert view.names() == ["status"] * 4

    @pytest.mark.asyncio
    async def test_send_is_deferred_while_not_connected(self):
        controller, connection, view = make_controller(connected=False)

        await controller.handle_input("queued")

        assert connection.sent == []
        assert ("notice", "warning") in view.calls
        assert controller.busy

        connection.connected = True
        await controller.handle_event(status(ConnectionState.CONNECTED))
        assert connection.sent == [ChatRequest(messages=[ChatMessage.user("queued")])]


class TestToolCalls:
    """Tests for local tool execution, driven through the event loop."""

    @pytest.mark.asyncio
    async def test_tool_result_echoes_call_id(self, workspace):
        controller, connection, view = make_controller(executor=ToolExecutor(base_path=workspace))
        runner = asyncio.create_task(controller.run())
        try:
            controller.submit("find TODOs in rust files")
            await wait_until(lambda: len(connection.sent) == 1)

            connection.push(chunk(ToolCallChunk(id="call_1", name="grep", arguments={"pattern": "TODO", "glob": "*.rs"})))
            connection.push(DONE)
            await wait_until(lambda: len(connection.sent) == 2)

            assert connection.sent[1] == ToolResult(id="call_1", content="src/util.rs:2: // TODO: remove")
            assert ("tool_started", "call_1") in view.calls
            assert ("tool_finished", "call_1") in view.calls
            assert controller.busy

            connection.push(chunk(TextChunk(delta="One TODO.", done=False)))
            connection.push(DONE)
            await wait_until(lambda: not controller.busy)
            assert controller.history == [
                ChatMessage.user("find TODOs in rust files"),
                ChatMessage.assistant("One TODO."),
            ]
        finally:
            controller.quit()
            await asyncio.wait_for(runner, timeout=5)
        assert connection.started
        assert connection.closed

    @pytest.mark.asyncio
    async def test_tool_failure_is_sent_as_text(self, workspace):
        controller, connection, _ = make_controller(executor=ToolExecutor(base_path=workspace))
        runner = asyncio.create_task(controller.run())
        try:
            controller.submit("read it")
            await wait_until(lambda: len(connection.sent) == 1)
            connection.push(chunk(ToolCallChunk(id="call_9", name="read_file", arguments={"path": "missing.txt"})))
            await wait_until(lambda: len(connection.sent) == 2)
            assert connection.sent[1] == ToolResult(id="call_9", content="Error [NotFound]: File not found: missing.txt")
        finally:
            controller.quit()
            await asyncio.wait_for(runner, timeout=5)

    @pytest.mark.asyncio
    async def test_result_of_abandoned_turn_is_not_sent(self, workspace):
        tool = GatedReadFile(workspace)
        controller, connection, view = make_controller(executor=ToolExecutor(tools=[tool]))
        runner = asyncio.create_task(controller.run())
        try:
            controller.submit("q")
            await wait_until(lambda: len(connection.sent) == 1)
            connection.push(chunk(ToolCallChunk(id="call_1", name="read_file", arguments={"path": "README.md"})))
            connection.push(chunk(ErrorChunk(message="Error: gone")))
            await wait_until(lambda: not controller.busy)

            tool.gate.set()
            await wait_until(lambda: ("tool_finished", "call_1") in view.calls)
            assert all(not isinstance(m, ToolResult) for m in connection.sent)
        finally:
            tool.gate.set()
            controller.quit()
            await asyncio.wait_for(runner, timeout=5)


class TestTranscript:
    """Tests for the transcript side log."""

    @pytest.mark.asyncio
    async def test_turn_is_logged(self, tmp_path):
        transcript = TranscriptLogger(log_dir=tmp_path)
        controller, _, _ = make_controller(transcript=transcript)

        await controller.handle_input("hi")
        await controller.handle_event(chunk(TextChunk(delta="hello", done=False)))
        await controller.handle_event(DONE)

        entries = transcript.read_entries()
        assert [(e.type, e.content) for e in entries] == [
            ("user_message", "hi"),
            ("assistant_message", "hello"),
        ]
