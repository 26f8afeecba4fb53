"""UI configuration constants.

Centralizes magic numbers and configuration values for the UI module.
"""

import logging


class LogLevel:
    """Log panel thresholds, aligned with the standard logging levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR

    _names = {
        DEBUG: "DEBUG",
        INFO: "INFO",
        WARNING: "WARN",
        ERROR: "ERROR",
    }

    _from_string = {
        "debug": DEBUG,
        "info": INFO,
        "warning": WARNING,
        "error": ERROR,
    }

    @classmethod
    def name(cls, level: int) -> str:
        if level >= cls.ERROR:
            return cls._names[cls.ERROR]
        return cls._names.get(level, logging.getLevelName(level))

    @classmethod
    def from_string(cls, level_str: str) -> int:
        """Convert string to log level. Returns INFO if invalid."""
        return cls._from_string.get(level_str.lower(), cls.INFO)


# Input history configuration
INPUT_HISTORY_MAX_SIZE = 100

# Tools panel
MAX_TOOL_RESULT_PREVIEW = 400  # Characters of a tool result shown in the tools panel

# Log panel configuration
LOG_TIMESTAMP_FORMAT = "%H:%M:%S"
LOG_MAX_MESSAGE_LENGTH = 500

# Chat display
INTERRUPTED_MARKER = "[interrupted]"
