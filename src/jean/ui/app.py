"""Main Textual TUI application.

Owns the widgets and runs the ChatController as a background worker on the
app's event loop. The controller talks to the widgets only through
TextualChatView.
"""

import asyncio
import logging
import threading
from pathlib import Path

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header

from ..client import (
    ChatController,
    ChatView,
    ConnectionManager,
    ConnectionStatus,
    TranscriptLogger,
)
from ..config import RECONNECT_DELAY_SECONDS
from ..logging_setup import attach_callback, detach_callback
from ..protocol import ToolCallRequest
from ..tools import ToolCallResult, ToolExecutor
from .config import LogLevel
from .styles import APP_CSS
from .themes import JEAN_DARK
from .widgets import ChatHistoryWidget, ChatInputBar, ConnectionIndicator, LogPanel, ToolsLog

logger = logging.getLogger(__name__)


class TextualChatView(ChatView):
    """ChatView backed by the app's widgets."""

    def __init__(self, app: "JeanApp"):
        self._app = app

    @property
    def _chat(self) -> ChatHistoryWidget:
        return self._app.query_one("#chat-history", ChatHistoryWidget)

    @property
    def _tools(self) -> ToolsLog:
        return self._app.query_one("#tools-log", ToolsLog)

    def set_status(self, status: ConnectionStatus) -> None:
        self._app.query_one("#connection-indicator", ConnectionIndicator).set_status(status)

    def add_user_message(self, text: str) -> None:
        self._chat.add_message("user", text)

    def begin_assistant_message(self) -> None:
        self._chat.begin_streaming()

    def append_assistant_delta(self, delta: str) -> None:
        self._chat.append_delta(delta)

    def finalize_assistant_message(self) -> None:
        self._chat.finalize_streaming()

    def interrupt_assistant_message(self, reason: str) -> None:
        self._chat.interrupt_streaming(reason)

    def add_notice(self, text: str, level: str = "info") -> None:
        self._chat.add_notice(text, level)
        if level == "error":
            self._app.notify(text[:80], severity="error", timeout=5)

    def tool_started(self, call: ToolCallRequest) -> None:
        self._tools.tool_started(call)

    def tool_finished(self, result: ToolCallResult) -> None:
        self._tools.tool_finished(result)


class JeanApp(App):
    """Textual TUI for the chat client."""

    CSS = APP_CSS
    TITLE = "Jean"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+q", "quit", "Quit", show=False),
        Binding("ctrl+l", "clear_tools", "Clear Tools"),
        Binding("ctrl+d", "toggle_log", "Log"),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
    ]

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        base_path: Path | None = None,
        log_level: str | None = None,
        transcript_dir: Path | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            server_url: WebSocket URL of the chat endpoint
            token: Bearer token for the server, if it requires one
            reconnect_delay: Seconds between reconnect attempts
            base_path: Directory the tools operate on (defaults to the cwd)
            log_level: Show the log panel at this level (None keeps it hidden)
            transcript_dir: Directory for JSONL transcripts (None disables them)
        """
        super().__init__()
        self._server_url = server_url
        self._connection = ConnectionManager(server_url, reconnect_delay=reconnect_delay, token=token)
        self._controller = ChatController(
            self._connection,
            TextualChatView(self),
            executor=ToolExecutor(base_path=base_path),
            transcript=TranscriptLogger(transcript_dir) if transcript_dir is not None else None,
        )
        self._log_level = log_level
        self._log_handler: logging.Handler | None = None
        self._ui_thread: int | None = None

    @property
    def controller(self) -> ChatController:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ChatHistoryWidget(id="chat-history")
        with Vertical(id="right-panel"):
            yield ToolsLog(id="tools-log")
            yield LogPanel(id="log-panel")
        with Vertical(id="bottom-bar"):
            yield ConnectionIndicator(self._server_url, id="connection-indicator")
            yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.register_theme(JEAN_DARK)
        self.theme = "jean-dark"
        self.sub_title = self._server_url
        self._ui_thread = threading.get_ident()

        log_panel = self.query_one("#log-panel", LogPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.display = True
        self._log_handler = attach_callback(self._on_log_record)

        self.query_one("#chat-history", ChatHistoryWidget).add_notice(
            "Ask about the code in this directory. Ctrl+J sends, click a message to copy it."
        )
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()
        self._run_controller()

    def on_unmount(self) -> None:
        if self._log_handler is not None:
            detach_callback(self._log_handler)
            self._log_handler = None

    def _on_log_record(self, level: int, message: str) -> None:
        if threading.get_ident() == self._ui_thread:
            self._write_log(level, message)
        else:
            self.call_from_thread(self._write_log, level, message)

    def _write_log(self, level: int, message: str) -> None:
        self.query_one("#log-panel", LogPanel).add_record(level, message)

    @work(exclusive=True)
    async def _run_controller(self) -> None:
        try:
            await self._controller.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Chat controller failed")
            self.notify(f"Client error: {e} (press Ctrl+C to quit)", severity="error", timeout=10)
            return
        self.exit()

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        self._controller.submit(event.value)

    async def action_quit(self) -> None:
        # A running controller worker exits the app once it has closed the connection.
        if self._controller.running:
            self._controller.quit()
        else:
            self.exit()

    def action_clear_tools(self) -> None:
        self.query_one("#tools-log", ToolsLog).clear()
        self.notify("Tools panel cleared", timeout=2)

    def action_toggle_log(self) -> None:
        is_visible = self.query_one("#log-panel", LogPanel).toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_copy_last_response(self) -> None:
        response = self.query_one("#chat-history", ChatHistoryWidget).get_last_response()
        if response:
            self.copy_to_clipboard(response)
            self.notify("Response copied")
        else:
            self.notify("No response to copy", severity="warning")


async def run_textual_tui(
    server_url: str,
    token: str | None = None,
    reconnect_delay: float = RECONNECT_DELAY_SECONDS,
    base_path: Path | None = None,
    log_level: str | None = None,
    transcript_dir: Path | None = None,
) -> None:
    """Run the Textual TUI until the user quits."""
    app = JeanApp(
        server_url,
        token=token,
        reconnect_delay=reconnect_delay,
        base_path=base_path,
        log_level=log_level,
        transcript_dir=transcript_dir,
    )
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
