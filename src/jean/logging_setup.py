"""Logging configuration for the server and the terminal client.

The server logs to the console through rich. The TUI owns the terminal, so
the client logs to a file and mirrors records into the UI log panel through
CallbackHandler.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import CLIENT_LOG_FORMAT, SERVER_LOG_FORMAT

# Third-party loggers that are noisy at DEBUG
QUIET_LOGGERS = ("websockets", "httpx", "httpcore", "openai", "anthropic", "asyncio")


class CallbackHandler(logging.Handler):
    """Forwards formatted records to a callback (for example a UI log panel)."""

    def __init__(self, callback: Callable[[int, str], None], level: int = logging.NOTSET):
        super().__init__(level)
        self._callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._callback(record.levelno, self.format(record))
        except Exception:
            self.handleError(record)


def configure_logging(
    level: int | str = logging.INFO,
    log_file: Path | str | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``jean`` logger hierarchy.

    Args:
        level: Level for jean's own loggers
        log_file: Write records to this file instead of the console
        console: Rich console for console output (defaults to stderr)

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        # getLevelName returns "Level <name>" for unknown names
        level = resolved if isinstance(resolved, int) else logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(CLIENT_LOG_FORMAT))
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter(SERVER_LOG_FORMAT))

    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    package_logger = logging.getLogger("jean")
    package_logger.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return package_logger


def attach_callback(callback: Callable[[int, str], None], level: int = logging.DEBUG) -> CallbackHandler:
    """Mirror jean's log records into ``callback``; returns the handler for detach."""
    handler = CallbackHandler(callback, level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logging.getLogger("jean").addHandler(handler)
    return handler


def detach_callback(handler: logging.Handler) -> None:
    logging.getLogger("jean").removeHandler(handler)
