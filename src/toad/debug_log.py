"""File-based debug logging with an explicit open/close lifecycle."""

import logging
import re
from datetime import UTC, datetime
from enum import IntEnum
from pathlib import Path
from types import TracebackType
from typing import Self

from toad.config import DEFAULT_DEBUG_LOG_PATH

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")


class DebugLevel(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


def parse_debug_level(value: str) -> DebugLevel | None:
    """Parse "debug", "info", "warning" or "error" (case-insensitive); None otherwise."""
    try:
        return DebugLevel[value.strip().upper()]
    except KeyError:
        return None


def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DebugLogFormatter(logging.Formatter):
    """``[ISO-8601 timestamp] [LEVEL] message`` with ANSI escapes removed."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        stamp = created.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        message = strip_ansi(record.getMessage())
        if record.exc_info:
            message = f"{message}\n{strip_ansi(self.formatException(record.exc_info))}"
        return f"[{stamp}] [{record.levelname}] {message}"


class DebugLog:
    """Debug log file attached to the ``toad`` logger while open.

    Example:
        >>> with DebugLog(DebugLevel.INFO) as debug_log:
        ...     logging.getLogger("toad.engine").info("written to the file")
    """

    def __init__(
        self,
        level: DebugLevel = DebugLevel.WARNING,
        path: Path = DEFAULT_DEBUG_LOG_PATH,
        logger_name: str = "toad",
    ) -> None:
        self.level = level
        self.path = path
        self.logger = logging.getLogger(logger_name)
        self._handler: logging.FileHandler | None = None
        self._previous_logger_level: int | None = None

    @property
    def active(self) -> bool:
        return self._handler is not None

    def open(self) -> None:
        """Start writing to the log file. A second open() is a no-op.

        I/O errors leave the handle inactive instead of raising.
        """
        if self._handler is not None:
            return

        try:
            handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        except OSError:
            return

        handler.setLevel(self.level)
        handler.setFormatter(DebugLogFormatter())
        try:
            handler.stream.write(
                f"[{_timestamp()}] [INFO] --- Debug logging started "
                f"(level: {self.level.name.lower()}) ---\n"
            )
            handler.flush()
        except OSError:
            handler.close()
            return

        self._handler = handler
        self._previous_logger_level = self.logger.level
        if self.logger.getEffectiveLevel() > self.level:
            self.logger.setLevel(self.level)
        self.logger.addHandler(handler)

    def close(self) -> None:
        if self._handler is None:
            return

        handler, self._handler = self._handler, None
        self.logger.removeHandler(handler)
        if self._previous_logger_level is not None:
            self.logger.setLevel(self._previous_logger_level)
            self._previous_logger_level = None

        try:
            handler.stream.write(f"[{_timestamp()}] [INFO] --- Debug logging ended ---\n")
            handler.flush()
        except OSError:
            pass
        handler.close()

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
