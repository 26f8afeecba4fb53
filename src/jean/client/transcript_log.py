"""JSONL log of a chat session.

One file per session under the log directory, named
``conversation_YYYYmmdd_HHMMSS.jsonl``. Each line is one entry with a
timestamp and a tagged payload. Write failures are logged and otherwise
ignored; the log never interrupts the conversation.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..config import TRANSCRIPT_LOG_DIR

logger = logging.getLogger(__name__)

EntryType = Literal["user_message", "assistant_message", "tool_call", "tool_result", "notice"]


class TranscriptEntry(BaseModel):
    """One line of the transcript log."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now().astimezone())
    type: EntryType
    content: str = ""
    id: str | None = None
    name: str | None = None
    arguments: Any = None


class TranscriptLogger:
    """Appends session events to a JSONL file."""

    def __init__(self, log_dir: Path | str = TRANSCRIPT_LOG_DIR, started_at: datetime | None = None):
        self.log_dir = Path(log_dir)
        started_at = started_at or datetime.now()
        self.path = self.log_dir / f"conversation_{started_at:%Y%m%d_%H%M%S}.jsonl"
        logger.debug("Transcript log: %s", self.path)

    def log(self, entry: TranscriptEntry) -> None:
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json(exclude_none=True) + "\n")
        except OSError as e:
            logger.error("Failed to write transcript entry to %s: %s", self.path, e)

    def log_user_message(self, content: str) -> None:
        self.log(TranscriptEntry(type="user_message", content=content))

    def log_assistant_message(self, content: str) -> None:
        self.log(TranscriptEntry(type="assistant_message", content=content))

    def log_tool_call(self, id: str, name: str, arguments: Any) -> None:
        self.log(TranscriptEntry(type="tool_call", id=id, name=name, arguments=arguments))

    def log_tool_result(self, id: str, content: str) -> None:
        self.log(TranscriptEntry(type="tool_result", id=id, content=content))

    def log_notice(self, content: str) -> None:
        self.log(TranscriptEntry(type="notice", content=content))

    def read_entries(self) -> list[TranscriptEntry]:
        """Load the entries written so far."""
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as f:
            return [TranscriptEntry.model_validate_json(line) for line in f if line.strip()]
