"""WebSocket server hosting one StreamingSession per connection.

Routes:
    /ws/chat  WebSocket upgrade, streaming chat protocol
    /health   plain HTTP, 200 "OK"
    other     404
"""

import asyncio
import hmac
import itertools
import logging
from http import HTTPStatus
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from ..config import (
    CHAT_PATH,
    DEFAULT_HOST,
    DEFAULT_PORT,
    HEALTH_PATH,
    PING_INTERVAL_SECONDS,
    PING_TIMEOUT_SECONDS,
    SYSTEM_PROMPT,
)
from ..llm import LLMProvider
from ..protocol import encode_chunk
from ..tools import tool_definitions
from .session import StreamingSession

logger = logging.getLogger(__name__)


class JeanServer:
    """Serves the streaming chat endpoint.

    Connections are independent: each gets its own session and transcript,
    and a dropped connection discards its session without affecting others.
    """

    def __init__(
        self,
        provider: LLMProvider,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        auth_token: str | None = None,
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str = SYSTEM_PROMPT,
        model: str | None = None,
    ):
        """Initialize the server.

        Args:
            provider: Model provider shared by all sessions
            host: Interface to bind
            port: Port to bind (0 picks a free port)
            auth_token: When set, upgrades must carry ``Authorization: Bearer <token>``
            tools: Tool definitions offered to the model (defaults to read_file and grep)
            system_prompt: System prompt prepended on every model call
            model: Model override passed to the provider
        """
        self.host = host
        self.port = port
        self._provider = provider
        self._auth_token = auth_token
        self._tools = tools if tools is not None else tool_definitions()
        self._system_prompt = system_prompt
        self._model = model

        self._server: Server | None = None
        self._task: asyncio.Task | None = None
        self._ready = asyncio.Event()
        self._shutdown_event = asyncio.Event()
        self._connection_ids = itertools.count(1)
        self._active_connections = 0

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}{CHAT_PATH}"

    @property
    def active_connections(self) -> int:
        return self._active_connections

    async def start(self) -> None:
        """Start serving and block until stop() is called."""
        async with serve(
            self._handle_connection,
            self.host,
            self.port,
            process_request=self._process_request,
            ping_interval=PING_INTERVAL_SECONDS,
            ping_timeout=PING_TIMEOUT_SECONDS,
        ) as server:
            self._server = server
            sockets = list(server.sockets)
            if sockets:
                self.port = sockets[0].getsockname()[1]
            self._ready.set()
            logger.info("Listening on %s (health: http://%s:%d%s)", self.url, self.host, self.port, HEALTH_PATH)

            await self._shutdown_event.wait()

        self._server = None
        logger.info("Server stopped")

    async def start_background(self) -> None:
        """Start the server in a background task and return once it is listening."""
        self._task = asyncio.create_task(self.start())
        ready = asyncio.create_task(self._ready.wait())
        done, _ = await asyncio.wait({self._task, ready}, return_when=asyncio.FIRST_COMPLETED)
        if self._task in done:
            ready.cancel()
            # Startup failed (for example the port is taken); surface the error.
            self._task.result()

    async def stop(self) -> None:
        """Stop accepting connections and close the open ones."""
        self._shutdown_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    def _process_request(self, connection: ServerConnection, request: Request) -> Response | None:
        path = urlsplit(request.path).path
        if path == HEALTH_PATH:
            return connection.respond(HTTPStatus.OK, "OK\n")
        if path != CHAT_PATH:
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        if self._auth_token is not None:
            expected = f"Bearer {self._auth_token}"
            supplied = request.headers.get("Authorization", "")
            if not hmac.compare_digest(supplied.encode(), expected.encode()):
                logger.warning("Rejected unauthenticated connection from %s", connection.remote_address)
                return connection.respond(HTTPStatus.UNAUTHORIZED, "Unauthorized\n")
        return None

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        """Run one session for the lifetime of a connection."""
        connection_id = f"conn-{next(self._connection_ids)}"

        async def send(chunk: BaseModel) -> None:
            await websocket.send(encode_chunk(chunk))

        session = StreamingSession(
            self._provider,
            send,
            tools=self._tools,
            system_prompt=self._system_prompt,
            model=self._model,
            session_id=connection_id,
        )

        self._active_connections += 1
        logger.info("Client connected: %s from %s", connection_id, websocket.remote_address)
        try:
            async for frame in websocket:
                await session.handle_frame(frame)
        except ConnectionClosed:
            pass
        finally:
            self._active_connections -= 1
            logger.info(
                "Client disconnected: %s (session state: %s, transcript length: %d)",
                connection_id, session.state.value, len(session.conversation),
            )
