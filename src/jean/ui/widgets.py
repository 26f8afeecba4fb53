"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Streaming and interrupted message rendering
- Input history management
- Tool execution display
- Log rendering and level filtering
"""

from datetime import datetime

from rich.markdown import Markdown
from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message
from textual.widgets import Button, RichLog, Static, TextArea

from ..client import ConnectionState, ConnectionStatus
from ..protocol import ToolCallRequest
from ..tools import ToolCallResult
from .config import (
    INPUT_HISTORY_MAX_SIZE,
    INTERRUPTED_MARKER,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    MAX_TOOL_RESULT_PREVIEW,
    LogLevel,
)
from .models import DisplayMessage, MessageState


class MessageBlock(Vertical):
    """One chat entry; clicking it copies the text to the clipboard."""

    def __init__(self, message: DisplayMessage, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.message = message
        self._reason: str | None = None
        # Children exist before mounting so deltas can arrive at any time.
        self._header = Static(self._header_text(), classes="message-header")
        self._body = Static(self._body_renderable(), classes="message-content")

    def compose(self):
        yield self._header
        yield self._body

    def _header_text(self) -> Text:
        label = "You" if self.message.role == "user" else "Assistant"
        header = f"{label} [{self.message.timestamp:%H:%M:%S}]"
        if self.message.state == MessageState.STREAMING:
            header += " ..."
        elif self.message.state == MessageState.INTERRUPTED:
            header += f" {INTERRUPTED_MARKER}"
            if self._reason:
                header += f" ({self._reason})"
        return Text(header)

    def _body_renderable(self):
        if self.message.role == "assistant" and self.message.state == MessageState.COMPLETE:
            return Markdown(self.message.content)
        return Text(self.message.content)

    def append(self, delta: str) -> None:
        self.message.content += delta
        self._body.update(self._body_renderable())

    def set_state(self, state: MessageState, reason: str | None = None) -> None:
        """Re-render the block for its final state."""
        self.message.state = state
        self._reason = reason
        self.remove_class("streaming")
        if state == MessageState.INTERRUPTED:
            self.add_class("interrupted")
        self._header.update(self._header_text())
        self._body.update(self._body_renderable())

    def on_click(self, event: Click) -> None:
        event.stop()
        self.app.copy_to_clipboard(self.message.content)
        self.app.notify("Copied to clipboard", timeout=2)


class ChatHistoryWidget(VerticalScroll):
    """Scrollable chat history with a single in-progress assistant message."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._messages: list[DisplayMessage] = []
        self._streaming: MessageBlock | None = None

    def _mount_block(self, message: DisplayMessage, classes: str) -> MessageBlock:
        self._messages.append(message)
        block = MessageBlock(message, classes=classes)
        self.mount(block)
        self.border_subtitle = f"{sum(1 for m in self._messages if m.role != 'notice')} messages"
        self.scroll_end(animate=False)
        return block

    def add_message(self, role: str, content: str) -> None:
        self._mount_block(DisplayMessage(role=role, content=content), f"chat-message {role}-message")

    def begin_streaming(self) -> None:
        if self._streaming is not None:
            self.finalize_streaming()
        message = DisplayMessage(role="assistant", content="", state=MessageState.STREAMING)
        self._streaming = self._mount_block(message, "chat-message assistant-message streaming")

    def append_delta(self, delta: str) -> None:
        if self._streaming is None:
            self.begin_streaming()
        self._streaming.append(delta)
        self.scroll_end(animate=False)

    def finalize_streaming(self) -> None:
        block, self._streaming = self._streaming, None
        if block is not None:
            block.set_state(MessageState.COMPLETE)

    def interrupt_streaming(self, reason: str) -> None:
        block, self._streaming = self._streaming, None
        if block is not None:
            block.set_state(MessageState.INTERRUPTED, reason)

    def add_notice(self, text: str, level: str = "info") -> None:
        message = DisplayMessage(role="notice", content=text, level=level)
        self._messages.append(message)
        self.mount(Static(Text(text), classes=f"chat-message notice-message {level}"))
        self.scroll_end(animate=False)

    def get_last_response(self) -> str | None:
        """Last completed assistant response."""
        for msg in reversed(self._messages):
            if msg.role == "assistant" and msg.state == MessageState.COMPLETE:
                return msg.content
        return None


class ChatInputBar(Horizontal):
    """Multi-line input with a Send button and Up/Down history."""

    class Submitted(Message):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.highlight_cursor_line = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip("Submit message (Ctrl+J)")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        # Terminals do not report ctrl+enter, so ctrl+j submits.
        if event.key == "ctrl+j":
            self._submit()
        elif event.key == "up" and self._input.cursor_location == (0, 0):
            self._recall(-1)
        elif event.key == "down" and self._cursor_at_end():
            self._recall(1)
        else:
            return
        event.prevent_default()
        event.stop()

    @property
    def _input(self) -> TextArea:
        return self.query_one("#chat-input", TextArea)

    def _cursor_at_end(self) -> bool:
        lines = self._input.text.split("\n")
        return self._input.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _recall(self, direction: int) -> None:
        if not self._history:
            return
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        elif self._history_index == -1:
            return
        elif self._history_index < len(self._history) - 1:
            self._history_index += 1
        else:
            self._history_index = -1
            self._input.text = ""
            return
        self._input.text = self._history[self._history_index]

    def _submit(self) -> None:
        value = self._input.text.strip()
        if not value:
            return
        if not self._history or self._history[-1] != value:
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        self._input.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        self._input.focus()


class ToolsLog(RichLog):
    """Tool executions and their results."""

    BORDER_TITLE = "Tools"
    BORDER_SUBTITLE = "idle"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, markup=True, highlight=False, auto_scroll=True, wrap=True, **kwargs)
        self._running: set[str] = set()

    def tool_started(self, call: ToolCallRequest) -> None:
        self._running.add(call.id)
        self.write(Text.assemble(("> ", "bold yellow"), (call.name, "bold"), f" {call.arguments}"))
        self._update_subtitle()

    def tool_finished(self, result: ToolCallResult) -> None:
        self._running.discard(result.tool_call_id)
        content = result.content
        if len(content) > MAX_TOOL_RESULT_PREVIEW:
            content = content[:MAX_TOOL_RESULT_PREVIEW] + f"... ({len(result.content)} chars)"
        if not content:
            content = "(empty result)"
        style = "red" if result.error else "dim"
        self.write(Text(content, style=style))
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self._running:
            self.border_subtitle = f"{len(self._running)} running"
            self.add_class("running")
        else:
            self.border_subtitle = "idle"
            self.remove_class("running")

    def clear(self) -> "ToolsLog":
        super().clear()
        self._running.clear()
        self._update_subtitle()
        return self


class LogPanel(RichLog):
    """Mirror of the application log, filtered by level. Hidden by default."""

    BORDER_TITLE = "Log"

    _level_styles = {
        LogLevel.DEBUG: "dim white",
        LogLevel.INFO: "cyan",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    def __init__(self, *args, log_level: int = LogLevel.INFO, **kwargs) -> None:
        super().__init__(*args, markup=False, highlight=False, auto_scroll=True, wrap=False, **kwargs)
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self.border_subtitle = f"Level: {LogLevel.name(level)}"

    def on_mount(self) -> None:
        self.display = False
        self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"

    def add_record(self, level: int, message: str) -> None:
        if level < self._log_level:
            return
        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."
        style = self._level_styles.get(min(level, LogLevel.ERROR), "white")
        self.write(Text.assemble(
            (datetime.now().strftime(LOG_TIMESTAMP_FORMAT), "dim"),
            " ",
            (f"{LogLevel.name(level):<5}", style),
            " ",
            message,
        ))

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        self.display = not self.display
        return self.display


class ConnectionIndicator(Static):
    """Connection status line."""

    _labels = {
        ConnectionState.CONNECTED: "● connected",
        ConnectionState.CONNECTING: "◌ connecting...",
        ConnectionState.DISCONNECTED: "○ disconnected",
        ConnectionState.ERROR: "✕ error",
    }

    def __init__(self, url: str, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._url = url

    def on_mount(self) -> None:
        self.set_status(ConnectionStatus())

    def set_status(self, status: ConnectionStatus) -> None:
        for state in ConnectionState:
            self.remove_class(state.value)
        self.add_class(status.state.value)
        label = self._labels[status.state]
        if status.state == ConnectionState.ERROR and status.message:
            label += f": {status.message}"
        self.update(Text(f"{label}  {self._url}"))
