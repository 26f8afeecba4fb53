from .codec import (
    ProtocolError,
    decode_chunk,
    decode_client_message,
    encode_chunk,
    encode_client_message,
)
from .models import (
    ChatMessage,
    ChatRequest,
    ClientMessage,
    ErrorChunk,
    Role,
    StreamChunk,
    TextChunk,
    ToolCallChunk,
    ToolCallRequest,
    ToolResult,
    ToolResultChunk,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ClientMessage",
    "ErrorChunk",
    "ProtocolError",
    "Role",
    "StreamChunk",
    "TextChunk",
    "ToolCallChunk",
    "ToolCallRequest",
    "ToolResult",
    "ToolResultChunk",
    "decode_chunk",
    "decode_client_message",
    "encode_chunk",
    "encode_client_message",
]
