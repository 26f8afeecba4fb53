"""Textual terminal interface for the chat client.

This module hides the terminal rendering; the client logic drives it only
through the ChatView interface.
"""

from .app import JeanApp, TextualChatView, run_textual_tui
from .config import LogLevel
from .themes import JEAN_DARK

__all__ = [
    "JEAN_DARK",
    "JeanApp",
    "LogLevel",
    "TextualChatView",
    "run_textual_tui",
]
