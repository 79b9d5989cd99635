"""Raw terminal input for the dashboard.

Puts stdin in cbreak mode, optionally turns on SGR mouse reporting, and feeds
decoded input events into an asyncio.Queue from the event loop's reader
callback. Everything is restored on exit, including after errors.
"""

import asyncio
import logging
import os
import sys
import termios
import tty
from types import TracebackType
from typing import Self, TextIO

from toad.keys import InputEvent, decode_input

logger = logging.getLogger(__name__)

# Button press/release tracking plus SGR extended coordinates
MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1000l\x1b[?1006l"

READ_SIZE = 1024


class TerminalInput:
    """Async source of key presses and pointer events from a TTY.

    Example:
        >>> async with TerminalInput(mouse=True) as terminal:
        ...     event = await terminal.events.get()
    """

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        mouse: bool = True,
    ) -> None:
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.mouse = mouse
        self.events: asyncio.Queue[InputEvent] = asyncio.Queue()
        self._fd: int | None = None
        self._old_settings: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_tty(self) -> bool:
        try:
            return self.stdin.isatty()
        except (OSError, ValueError):
            return False

    def start(self) -> None:
        if not self.is_tty:
            logger.debug("stdin is not a TTY; keyboard input disabled")
            return

        self._fd = self.stdin.fileno()
        try:
            self._old_settings = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        except (termios.error, OSError) as e:
            logger.warning(f"Could not switch terminal to cbreak mode: {e}")
            self._fd = None
            return

        if self.mouse:
            self._write(MOUSE_ON)

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._fd, self._on_readable)

    def stop(self) -> None:
        if self._fd is None:
            return

        if self._loop is not None:
            self._loop.remove_reader(self._fd)
            self._loop = None

        if self.mouse:
            self._write(MOUSE_OFF)

        if self._old_settings is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
            except (termios.error, OSError) as e:
                logger.warning(f"Could not restore terminal settings: {e}")
        self._fd = None

    def feed(self, data: bytes) -> None:
        """Decode raw bytes and queue the resulting events."""
        for event in decode_input(data):
            self.events.put_nowait(event)

    def _on_readable(self) -> None:
        assert self._fd is not None
        try:
            data = os.read(self._fd, READ_SIZE)
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning(f"Terminal read failed: {e}")
            return
        if data:
            self.feed(data)

    def _write(self, sequence: str) -> None:
        try:
            self.stdout.write(sequence)
            self.stdout.flush()
        except (OSError, ValueError):
            pass

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
