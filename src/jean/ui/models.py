"""Data models for the TUI.

Hides the internal representation of displayed chat entries.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MessageState(str, Enum):
    STREAMING = "streaming"
    COMPLETE = "complete"
    INTERRUPTED = "interrupted"


@dataclass
class DisplayMessage:
    """A chat entry as shown in the history panel."""

    role: str  # "user", "assistant" or "notice"
    content: str
    state: MessageState = MessageState.COMPLETE
    level: str = "info"  # notices only
    timestamp: datetime = field(default_factory=datetime.now)
