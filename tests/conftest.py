"""Pytest configuration and shared fixtures."""
from typing import Any

import pytest

from jean.client import ChatView
from jean.llm import LLMProvider, StreamFinished, StreamingResponse, TextDelta, ToolCallEvent
from jean.protocol import ChatMessage


class ScriptedProvider(LLMProvider):
    """LLM provider that replays scripted turns.

    Each script entry is one model call: a list of events to stream, or an
    exception to raise. Raising mid-stream is scripted by putting the
    exception inside the event list.
    """

    def __init__(self, turns: list[Any]):
        self._turns = list(turns)
        self.calls: list[list[ChatMessage]] = []
        self.tools_seen: list[list[dict[str, Any]] | None] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "scripted"

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.calls.append(list(messages))
        self.tools_seen.append(tools)
        if not self._turns:
            raise AssertionError("provider called more often than scripted")
        turn = self._turns.pop(0)
        if isinstance(turn, Exception):
            raise turn

        async def _events():
            for event in turn:
                if isinstance(event, Exception):
                    raise event
                yield event
            yield StreamFinished(reason="tool_calls" if any(isinstance(e, ToolCallEvent) for e in turn) else "stop")

        response = StreamingResponse(_events())
        response.set_usage({"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2})
        return response

    async def close(self) -> None:
        self.closed = True


class RecordingView(ChatView):
    """ChatView that records every call."""

    def __init__(self):
        self.calls = []
        self.text = ""

    def set_status(self, status):
        self.calls.append(("status", status.state))

    def add_user_message(self, text):
        self.calls.append(("user", text))

    def begin_assistant_message(self):
        self.text = ""
        self.calls.append(("begin",))

    def append_assistant_delta(self, delta):
        self.text += delta

    def finalize_assistant_message(self):
        self.calls.append(("final", self.text))

    def interrupt_assistant_message(self, reason):
        self.calls.append(("interrupted", reason))

    def add_notice(self, text, level="info"):
        self.calls.append(("notice", level))

    def tool_started(self, call):
        self.calls.append(("tool_started", call.id))

    def tool_finished(self, result):
        self.calls.append(("tool_finished", result.tool_call_id))

    def names(self):
        return [c[0] for c in self.calls]


def text_turn(*deltas: str) -> list[Any]:
    return [TextDelta(text=d) for d in deltas]


def tool_turn(call_id: str, name: str, arguments: str, *deltas: str) -> list[Any]:
    return [TextDelta(text=d) for d in deltas] + [ToolCallEvent(id=call_id, name=name, arguments=arguments)]


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def workspace(tmp_path):
    """A small source tree with ignored directories and a .gitignore."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text(
        "def main():\n"
        "    # TODO: parse arguments\n"
        "    run()\n"
        "\n"
        "def run():\n"
        "    pass  # TODO handle errors\n"
    )
    (tmp_path / "src" / "util.rs").write_text("fn helper() {}\n// TODO: remove\n")
    (tmp_path / "README.md").write_text("# Demo\nNothing to do here.\n")
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / "index.js").write_text("// TODO in a dependency\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main TODO\n")
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "out.txt").write_text("TODO generated\n")
    (tmp_path / "logs").mkdir()
    (tmp_path / "logs" / "app.log").write_text("TODO log line\n")
    (tmp_path / "logs" / "keep.log").write_text("TODO kept log\n")
    (tmp_path / "blob.bin").write_bytes(b"TODO\0\x01\x02")
    (tmp_path / ".gitignore").write_text("# build output\nbuild/\n*.log\n!keep.log\n")
    return tmp_path
