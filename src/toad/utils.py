"""Logging setup and small formatting helpers."""

import logging
import time
from collections.abc import Callable

from rich.logging import RichHandler


def setup_logging(verbose: bool = False) -> None:
    """Setup logging with RichHandler for console output.

    Args:
        verbose: If True, sets logging to DEBUG level and shows file paths.
                If False, sets logging to INFO level and suppresses noisy loggers.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=verbose,  # Only show file path in verbose mode
    )

    formatter = logging.Formatter(
        "%(message)s",
        datefmt="[%X]",
    )
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,  # Override any existing config
    )

    # Suppress noisy loggers unless verbose
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def console_level(levelno: int) -> str:
    """Map a logging level to a console panel level: "log", "warn" or "error"."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    return "log"


class CallbackLogHandler(logging.Handler):
    """Forwards log records to a callback as (console level, message).

    Used while the full-screen dashboard owns the terminal, where writing to
    stderr would corrupt the frame.
    """

    def __init__(self, callback: Callable[[str, str], None], level: int = logging.WARNING):
        super().__init__(level)
        self.callback = callback
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(console_level(record.levelno), self.format(record))
        except Exception:
            self.handleError(record)


def install_dashboard_logging(
    callback: Callable[[str, str], None], level: int = logging.WARNING
) -> CallbackLogHandler:
    """Replace root handlers with a CallbackLogHandler. Returns the installed handler."""
    handler = CallbackLogHandler(callback, level)
    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return handler


def format_elapsed(seconds: float) -> str:
    """Format seconds as mm:ss (minutes keep counting past 59)."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def clock_time(epoch: float | None = None) -> str:
    """Local wall-clock time HH:MM:SS for console timestamps."""
    return time.strftime("%H:%M:%S", time.localtime(epoch if epoch is not None else time.time()))
