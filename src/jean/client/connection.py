"""Reconnecting WebSocket connection to the backend.

Hides the transport: callers see a single ordered stream of events (decoded
chunks and status changes) and a ``send`` that either delivers a message on
the live socket or raises NotConnectedError. Messages are never queued or
replayed across reconnects.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from ..config import PING_INTERVAL_SECONDS, PING_TIMEOUT_SECONDS, RECONNECT_DELAY_SECONDS
from ..protocol import ProtocolError, StreamChunk, decode_chunk, encode_client_message

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionStatus(BaseModel):
    """Connection state plus an optional error message."""

    model_config = ConfigDict(frozen=True)

    state: ConnectionState = ConnectionState.DISCONNECTED
    message: str | None = None

    @property
    def label(self) -> str:
        if self.state == ConnectionState.ERROR and self.message:
            return f"error: {self.message}"
        return self.state.value


class ChunkEvent(BaseModel):
    """A decoded frame from the server."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["chunk"] = "chunk"
    chunk: StreamChunk


class StatusEvent(BaseModel):
    """The connection status changed."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["status"] = "status"
    status: ConnectionStatus


ConnectionEvent = ChunkEvent | StatusEvent


class NotConnectedError(ConnectionError):
    """Raised by send() when there is no live connection."""


class ConnectionManager:
    """Maintains the connection, reconnecting forever after a fixed delay.

    Usage:
        manager = ConnectionManager("ws://127.0.0.1:3000/ws/chat")
        manager.start()
        event = await manager.next_event()
        await manager.send(ChatRequest(messages=history))
        await manager.close()
    """

    def __init__(
        self,
        url: str,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        token: str | None = None,
    ):
        """Initialize the manager.

        Args:
            url: WebSocket URL of the chat endpoint
            reconnect_delay: Seconds to wait between connection attempts
            token: Bearer token sent with the upgrade request
        """
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._token = token
        self._events: asyncio.Queue[ConnectionEvent] = asyncio.Queue()
        self._websocket: ClientConnection | None = None
        self._status = ConnectionStatus()
        self._task: asyncio.Task | None = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    def start(self) -> None:
        """Spawn the connection task (idempotent)."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def close(self) -> None:
        """Stop reconnecting and close the live socket, if any."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def next_event(self) -> ConnectionEvent:
        return await self._events.get()

    async def events(self) -> AsyncIterator[ConnectionEvent]:
        while True:
            yield await self._events.get()

    async def send(self, message: BaseModel) -> None:
        """Send one message on the live socket.

        Raises:
            NotConnectedError: If there is no live connection or the send fails
        """
        websocket = self._websocket
        if websocket is None:
            raise NotConnectedError("not connected to server")
        try:
            await websocket.send(encode_client_message(message))
        except ConnectionClosed as e:
            raise NotConnectedError(f"connection closed: {e}") from e

    def _set_status(self, state: ConnectionState, message: str | None = None) -> None:
        self._status = ConnectionStatus(state=state, message=message)
        logger.info("Connection status: %s", self._status.label)
        self._events.put_nowait(StatusEvent(status=self._status))

    def _headers(self) -> dict[str, Any]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def _run(self) -> None:
        while True:
            self._set_status(ConnectionState.CONNECTING)
            try:
                websocket = await connect(
                    self.url,
                    additional_headers=self._headers(),
                    ping_interval=PING_INTERVAL_SECONDS,
                    ping_timeout=PING_TIMEOUT_SECONDS,
                )
            except Exception as e:
                logger.warning("Failed to connect to %s: %s (retry in %.1fs)", self.url, e, self.reconnect_delay)
                self._set_status(ConnectionState.ERROR, str(e) or type(e).__name__)
            else:
                try:
                    await self._read(websocket)
                except Exception:
                    logger.exception("Connection to %s failed", self.url)
                self._set_status(ConnectionState.DISCONNECTED)
            await asyncio.sleep(self.reconnect_delay)

    async def _read(self, websocket: ClientConnection) -> None:
        self._websocket = websocket
        self._set_status(ConnectionState.CONNECTED)
        try:
            async for frame in websocket:
                try:
                    chunk = decode_chunk(frame)
                except ProtocolError as e:
                    logger.warning("Discarding malformed frame from server: %s", e)
                    continue
                except Exception:
                    logger.exception("Discarding undecodable frame from server")
                    continue
                self._events.put_nowait(ChunkEvent(chunk=chunk))
        except ConnectionClosed as e:
            logger.warning("Connection lost: %s", e)
        finally:
            self._websocket = None
            await websocket.close()
