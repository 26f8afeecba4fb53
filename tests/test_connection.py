"""Integration tests for the WebSocket server and the reconnecting client."""
import asyncio

import httpx
import pytest
from websockets.asyncio.client import connect
from websockets.asyncio.server import serve
from websockets.exceptions import InvalidStatus

from conftest import RecordingView, ScriptedProvider, text_turn, tool_turn
from jean.client import (
    ChatController,
    ChunkEvent,
    ConnectionManager,
    ConnectionState,
    NotConnectedError,
    StatusEvent,
)
from jean.protocol import ChatMessage, ChatRequest, TextChunk, encode_chunk
from jean.server import JeanServer
from jean.tools import ToolExecutor

HOST = "127.0.0.1"


async def start_server(turns, port: int = 0, **kwargs) -> JeanServer:
    server = JeanServer(ScriptedProvider(turns), host=HOST, port=port, **kwargs)
    await server.start_background()
    return server


async def wait_for_status(manager: ConnectionManager, state: ConnectionState, timeout: float = 5.0):
    """Consume events until a status event with ``state`` arrives."""

    async def _wait():
        while True:
            event = await manager.next_event()
            if isinstance(event, StatusEvent) and event.status.state == state:
                return event.status

    return await asyncio.wait_for(_wait(), timeout)


async def collect_chunks(manager: ConnectionManager, timeout: float = 5.0) -> list:
    """Consume chunk events up to and including a done text chunk."""

    async def _collect():
        chunks = []
        while True:
            event = await manager.next_event()
            if isinstance(event, ChunkEvent):
                chunks.append(event.chunk)
                if isinstance(event.chunk, TextChunk) and event.chunk.done:
                    return chunks

    return await asyncio.wait_for(_collect(), timeout)


class TestHttpRoutes:
    """Tests for the plain HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_health(self):
        server = await start_server([])
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"http://{HOST}:{server.port}/health")
            assert response.status_code == 200
            assert response.text == "OK\n"
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_unknown_path_is_404(self):
        server = await start_server([])
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"http://{HOST}:{server.port}/nope")
            assert response.status_code == 404
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self):
        server = await start_server([], auth_token="s3cret")
        try:
            with pytest.raises(InvalidStatus) as exc_info:
                async with connect(server.url):
                    pass
            assert exc_info.value.response.status_code == 401

            async with connect(server.url, additional_headers={"Authorization": "Bearer s3cret"}):
                pass
        finally:
            await server.stop()


class TestConnectionManager:
    """Tests for ConnectionManager against a live server."""

    @pytest.mark.asyncio
    async def test_streams_a_reply(self):
        server = await start_server([text_turn("Hel", "lo")])
        manager = ConnectionManager(server.url, reconnect_delay=0.05)
        try:
            manager.start()
            await wait_for_status(manager, ConnectionState.CONNECTED)
            assert manager.connected

            await manager.send(ChatRequest(messages=[ChatMessage.user("hi")]))
            chunks = await collect_chunks(manager)

            assert chunks == [
                TextChunk(delta="Hel", done=False),
                TextChunk(delta="lo", done=False),
                TextChunk(delta="", done=True),
            ]
            assert server.active_connections == 1
        finally:
            await manager.close()
            await server.stop()

    @pytest.mark.asyncio
    async def test_send_without_connection_raises(self):
        manager = ConnectionManager(f"ws://{HOST}:1/ws/chat")
        with pytest.raises(NotConnectedError):
            await manager.send(ChatRequest(messages=[ChatMessage.user("hi")]))

    @pytest.mark.asyncio
    async def test_failed_connect_reports_error(self):
        manager = ConnectionManager(f"ws://{HOST}:1/ws/chat", reconnect_delay=0.05)
        try:
            manager.start()
            status = await wait_for_status(manager, ConnectionState.ERROR)
            assert status.message
            assert status.label.startswith("error: ")
            # It keeps retrying.
            await wait_for_status(manager, ConnectionState.CONNECTING)
        finally:
            await manager.close()

    @pytest.mark.asyncio
    async def test_reconnects_after_server_restart(self):
        server = await start_server([])
        port = server.port
        manager = ConnectionManager(server.url, reconnect_delay=0.05)
        try:
            manager.start()
            await wait_for_status(manager, ConnectionState.CONNECTED)

            await server.stop()
            await wait_for_status(manager, ConnectionState.DISCONNECTED)
            assert not manager.connected

            server = await start_server([text_turn("back")], port=port)
            await wait_for_status(manager, ConnectionState.CONNECTED)

            await manager.send(ChatRequest(messages=[ChatMessage.user("again")]))
            chunks = await collect_chunks(manager)
            assert chunks[0] == TextChunk(delta="back", done=False)
        finally:
            await manager.close()
            await server.stop()

    @pytest.mark.asyncio
    async def test_undecodable_frames_do_not_stop_reconnecting(self):
        async def handler(websocket):
            await websocket.send("[" * 100_000)
            await websocket.send(encode_chunk(TextChunk(delta="still here", done=True)))

        server = await serve(handler, HOST, 0)
        port = server.sockets[0].getsockname()[1]
        manager = ConnectionManager(f"ws://{HOST}:{port}/ws/chat", reconnect_delay=0.05)
        try:
            manager.start()
            for _ in range(2):
                await wait_for_status(manager, ConnectionState.CONNECTED)
                chunks = await collect_chunks(manager)
                assert chunks == [TextChunk(delta="still here", done=True)]
                await wait_for_status(manager, ConnectionState.DISCONNECTED)
        finally:
            await manager.close()
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_token_is_sent(self):
        server = await start_server([], auth_token="s3cret")
        manager = ConnectionManager(server.url, reconnect_delay=0.05, token="s3cret")
        try:
            manager.start()
            await wait_for_status(manager, ConnectionState.CONNECTED)
        finally:
            await manager.close()
            await server.stop()


class TestEndToEnd:
    """A full client and server exchange with a real tool call."""

    @pytest.mark.asyncio
    async def test_todo_search_round_trip(self, workspace):
        server = await start_server([
            tool_turn("call_1", "grep", '{"pattern": "TODO", "glob": "*.rs"}'),
            text_turn("There is one TODO ", "in src/util.rs."),
        ])
        manager = ConnectionManager(server.url, reconnect_delay=0.05)
        view = RecordingView()
        controller = ChatController(manager, view, executor=ToolExecutor(base_path=workspace))
        runner = asyncio.create_task(controller.run())
        try:
            controller.submit("Where are the TODOs in rust files?")

            async def finished():
                while len(controller.history) < 2:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(finished(), timeout=10)

            assert controller.history == [
                ChatMessage.user("Where are the TODOs in rust files?"),
                ChatMessage.assistant("There is one TODO in src/util.rs."),
            ]
            assert ("tool_started", "call_1") in view.calls
            assert ("tool_finished", "call_1") in view.calls
            assert not controller.busy
        finally:
            controller.quit()
            await asyncio.wait_for(runner, timeout=5)
            await server.stop()
