"""
Jean: a streaming coding-assistant with a WebSocket backend and a terminal client.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision:
- protocol: wire vocabulary and JSON framing
- tools: local tool execution (read_file, grep)
- llm: model provider streaming with tool calls
- server: per-connection conversation state and streaming session
- client: reconnecting connection manager and the application event loop
- ui: Textual terminal interface
"""

__version__ = "0.1.0"

from .protocol import (
    ChatMessage,
    ChatRequest,
    ClientMessage,
    ProtocolError,
    Role,
    StreamChunk,
    ToolCallRequest,
    ToolResult,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ClientMessage",
    "ProtocolError",
    "Role",
    "StreamChunk",
    "ToolCallRequest",
    "ToolResult",
]
