from .app import JeanServer
from .conversation import ConversationState
from .session import SessionState, StreamingSession, decode_tool_arguments

__all__ = [
    "JeanServer",
    "ConversationState",
    "SessionState",
    "StreamingSession",
    "decode_tool_arguments",
]
