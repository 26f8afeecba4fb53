"""Wire-level vocabulary shared by the client and the server.

Every frame on the connection is one of the tagged models below. The ``type``
field is the discriminator; anything else on the wire is rejected by the codec.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A tool invocation chosen by the model.

    Attributes:
        id: Identifier scoped to one model turn
        name: Tool name, matched exactly by the executor
        arguments: Tool-specific blob, validated only by the tool itself
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier of the call within one model turn")
    name: str = Field(description="Name of the tool to invoke")
    arguments: Any = Field(default_factory=dict, description="Tool arguments (normally a JSON object)")


class ChatMessage(BaseModel):
    """Represents a chat message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Role of the message sender")
    content: str = Field(default="", description="Content of the message")
    tool_call_id: str | None = Field(
        default=None,
        description="Originating tool call, set only on tool messages"
    )
    tool_calls: list[ToolCallRequest] | None = Field(
        default=None,
        description="Tool calls chosen by the model, set only on assistant messages"
    )

    @model_validator(mode="after")
    def _check_role_fields(self) -> "ChatMessage":
        if self.role == Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages must carry tool_call_id")
        if self.role != Role.TOOL and self.tool_call_id is not None:
            raise ValueError("tool_call_id is only allowed on tool messages")
        if self.tool_calls is not None:
            if self.role != Role.ASSISTANT:
                raise ValueError("tool_calls are only allowed on assistant messages")
            if self.content:
                raise ValueError("assistant messages with tool_calls must have empty content")
        return self

    @property
    def is_tool_exchange(self) -> bool:
        """True for messages that only exist to carry tool calls or their results."""
        return self.role == Role.TOOL or bool(self.tool_calls)

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


# Server -> client


class TextChunk(BaseModel):
    """Incremental assistant text; ``done=True`` terminates the turn."""

    type: Literal["text"] = "text"
    delta: str = ""
    done: bool = False


class ToolCallChunk(BaseModel):
    """The model asks the client to run a tool."""

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: Any = Field(default_factory=dict)

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(id=self.id, name=self.name, arguments=self.arguments)


class ToolResultChunk(BaseModel):
    """Echo of a tool result, relayed for transcript purposes."""

    type: Literal["tool_result"] = "tool_result"
    id: str
    content: str


class ErrorChunk(BaseModel):
    """Terminal error for the current turn (the model provider failed)."""

    type: Literal["error"] = "error"
    message: str


StreamChunk = Annotated[
    TextChunk | ToolCallChunk | ToolResultChunk | ErrorChunk,
    Field(discriminator="type"),
]


# Client -> server


class ChatRequest(BaseModel):
    """Full known message history, sent when the user submits input."""

    type: Literal["chat_request"] = "chat_request"
    messages: list[ChatMessage] = Field(default_factory=list)


class ToolResult(BaseModel):
    """Result of a tool call; ``id`` matches an outstanding ToolCallRequest.id."""

    type: Literal["tool_result"] = "tool_result"
    id: str
    content: str


ClientMessage = Annotated[
    ChatRequest | ToolResult,
    Field(discriminator="type"),
]
