"""Periodic transfer of buffered page records into display state."""

import asyncio
import logging
from collections.abc import Callable

from toad.models import PageRecord, PendingBuffer

logger = logging.getLogger(__name__)

FLUSH_INTERVAL_SECONDS = 0.2


class FlushCoordinator:
    """Drains a PendingBuffer into a sink on a fixed tick.

    Each tick takes the whole buffer in one step and hands the batch to the
    sink in one call, so display state only ever advances by complete batches.

    Example:
        >>> coordinator = FlushCoordinator(session.buffer, viewport.extend_rows)
        >>> coordinator.start()
        >>> ...
        >>> coordinator.final_flush()
    """

    def __init__(
        self,
        buffer: PendingBuffer,
        sink: Callable[[list[PageRecord]], None],
        interval: float = FLUSH_INTERVAL_SECONDS,
    ) -> None:
        self.buffer = buffer
        self.sink = sink
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from inside the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._tick(), name="toad-flush")

    def flush_once(self) -> int:
        """Move everything currently buffered to the sink.

        Returns:
            Number of records flushed
        """
        batch = self.buffer.take_all()
        if batch:
            self.sink(batch)
        return len(batch)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def final_flush(self) -> int:
        """Stop the timer, then flush whatever is left."""
        self.cancel()
        return self.flush_once()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.flush_once()
