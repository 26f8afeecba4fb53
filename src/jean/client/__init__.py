from .connection import (
    ChunkEvent,
    ConnectionEvent,
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    NotConnectedError,
    StatusEvent,
)
from .controller import ChatController, ChatView
from .transcript_log import TranscriptEntry, TranscriptLogger

__all__ = [
    "ChatController",
    "ChatView",
    "ChunkEvent",
    "ConnectionEvent",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "NotConnectedError",
    "StatusEvent",
    "TranscriptEntry",
    "TranscriptLogger",
]
