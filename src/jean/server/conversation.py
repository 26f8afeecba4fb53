"""Per-connection conversation transcript.

Hides how the server reconciles the client's message history with its own
authoritative transcript. The client only ever sees user messages and
assistant text, so the server keeps the tool machinery (assistant tool-call
messages and tool results) and matches the rest against what the client sends.
"""

from collections.abc import Iterator

from ..protocol import ChatMessage, Role, ToolCallRequest


class ConversationState:
    """Ordered, append-only transcript owned by one streaming session."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._seeded = False

    @property
    def messages(self) -> list[ChatMessage]:
        """Copy of the transcript in order."""
        return list(self._messages)

    @property
    def seeded(self) -> bool:
        """Whether the first request of the connection has been applied."""
        return self._seeded

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def projection(self) -> list[ChatMessage]:
        """The transcript as the client sees it (no tool exchange messages)."""
        return [msg for msg in self._messages if not msg.is_tool_exchange]

    def seed(self, messages: list[ChatMessage]) -> None:
        """Replace the transcript with the client's history."""
        self._messages = list(messages)
        self._seeded = True

    def synchronize(self, messages: list[ChatMessage]) -> int:
        """Reconcile the transcript with a later ChatRequest.

        When the client's history extends what the client can see of the
        transcript, only the new tail is appended and tool context is kept.
        Otherwise the client's history wins and the transcript is re-seeded.

        Returns:
            Number of messages appended (the full length after a re-seed)
        """
        if not self._seeded:
            self.seed(messages)
            return len(messages)

        visible = self.projection()
        if len(visible) <= len(messages) and messages[:len(visible)] == visible:
            tail = messages[len(visible):]
            self._messages.extend(tail)
            return len(tail)

        self.seed(messages)
        return len(messages)

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def append_assistant_text(self, text: str) -> ChatMessage:
        message = ChatMessage(role=Role.ASSISTANT, content=text)
        self._messages.append(message)
        return message

    def append_tool_calls(self, calls: list[ToolCallRequest]) -> ChatMessage:
        message = ChatMessage(role=Role.ASSISTANT, content="", tool_calls=list(calls))
        self._messages.append(message)
        return message

    def append_tool_result(self, tool_call_id: str, content: str) -> ChatMessage:
        message = ChatMessage.tool_result(tool_call_id, content)
        self._messages.append(message)
        return message
