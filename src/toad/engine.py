"""Crawl session engine.

Owns one crawl session: lifecycle state, pause accounting, statistics, and the
pending-result buffer the UI drains on its own tick. Page fetching is delegated
to a FetchScheduler; results come back through SchedulerHandlers and leave
through EngineCallbacks.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urldefrag, urljoin

from toad.config import CrawlOptions
from toad.exceptions import ContentTypeRejectedError
from toad.extractor import EMPTY_SIGNALS, extract_page_signals
from toad.indexability import NON_HTML, IndexabilitySignals, classify_indexability
from toad.models import CrawlStats, PageRecord, PendingBuffer, SessionState
from toad.scheduler import FetchedPage, PageScheduler, SchedulerCounters, SchedulerHandlers
from toad.urls import normalize_url

if TYPE_CHECKING:
    from toad.flush import FlushCoordinator

logger = logging.getLogger(__name__)

STATS_INTERVAL_SECONDS = 0.5


def _ignore(*args: Any) -> None:
    return None


@dataclass
class EngineCallbacks:
    """Receivers for session events. Every field defaults to a no-op.

    Attributes:
        on_page_crawled: Each new record as it is created (logging/telemetry, not display)
        on_stats_update: Full stats snapshot on every stats tick
        on_crawl_complete: Final pages and stats, at most once per session
        on_crawl_error: Fetch failure and the URL that failed
        on_log_message: Session messages as (level, text); level is "log", "warn" or "error"
    """

    on_page_crawled: Callable[[PageRecord], None] = _ignore
    on_stats_update: Callable[[CrawlStats], None] = _ignore
    on_crawl_complete: Callable[[list[PageRecord], CrawlStats], None] = _ignore
    on_crawl_error: Callable[[BaseException, str], None] = _ignore
    on_log_message: Callable[[str, str], None] = _ignore


class FetchScheduler(Protocol):
    """Page-fetching collaborator driven by a session."""

    async def run(self, seed_url: str, handlers: SchedulerHandlers) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def abort(self) -> None: ...

    async def teardown(self) -> None: ...

    def counters(self) -> SchedulerCounters: ...


def build_page_record(page: FetchedPage) -> PageRecord:
    """Turn a fetched page into a classified PageRecord.

    HTML pages go through signal extraction and the indexability rules;
    anything else is non-indexable with reason "non-HTML content".
    """
    if page.is_html:
        signals = extract_page_signals(page.body)
        verdict = classify_indexability(
            IndexabilitySignals(
                final_url=page.final_url,
                status_code=page.status_code,
                robots_meta=signals.robots_meta,
                x_robots_tag=page.x_robots_tag,
                canonical=signals.canonical,
            )
        )
    else:
        signals = EMPTY_SIGNALS
        verdict = NON_HTML

    canonical = ""
    if signals.canonical:
        try:
            canonical = urldefrag(urljoin(page.final_url, signals.canonical)).url
        except ValueError:
            canonical = signals.canonical

    return PageRecord(
        url=page.url,
        final_url=page.final_url,
        status_code=page.status_code,
        title=signals.title,
        h1=signals.h1,
        meta_description=signals.meta_description,
        word_count=signals.word_count,
        response_time_ms=page.response_time_ms,
        content_type=page.content_type,
        is_indexable=verdict.is_indexable,
        indexability_reason=verdict.reason,
        canonical=canonical,
    )


def rejected_page_record(error: ContentTypeRejectedError) -> PageRecord:
    return PageRecord(
        url=error.url,
        final_url=error.final_url,
        status_code=error.status_code,
        response_time_ms=error.response_time_ms,
        content_type=error.content_type,
        is_indexable=NON_HTML.is_indexable,
        indexability_reason=NON_HTML.reason,
    )


class CrawlSession:
    """One crawl run from start to finish or abort.

    Example:
        >>> session = CrawlSession(CrawlOptions(), callbacks=EngineCallbacks(...))
        >>> session.start("example.com")
        >>> await session.wait()
    """

    def __init__(
        self,
        options: CrawlOptions,
        scheduler: FetchScheduler | None = None,
        callbacks: EngineCallbacks | None = None,
        clock: Callable[[], float] = time.time,
        stats_interval: float = STATS_INTERVAL_SECONDS,
    ) -> None:
        """Initialize session.

        Args:
            options: Crawl options, fixed for the lifetime of the session
            scheduler: Page fetcher (defaults to a PageScheduler over httpx)
            callbacks: Event receivers
            clock: Wall clock in epoch seconds (injectable for tests)
            stats_interval: Seconds between queue-derived stats refreshes
        """
        self.options = options
        self.scheduler: FetchScheduler = scheduler or PageScheduler(options)
        self.callbacks = callbacks or EngineCallbacks()
        self.clock = clock
        self.stats_interval = stats_interval

        self.state = SessionState.IDLE
        self.target_url: str | None = None
        self.stats = CrawlStats()
        self.pages: list[PageRecord] = []
        self.buffer = PendingBuffer()

        self._lock = threading.Lock()
        self._paused_at: float | None = None
        self._stopping = False
        self._done = asyncio.Event()
        self._stats_task: asyncio.Task[None] | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._flush: FlushCoordinator | None = None

    # -- lifecycle ---------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.RUNNING, SessionState.PAUSED)

    def attach_flush_coordinator(self, coordinator: "FlushCoordinator") -> None:
        """Route the final flush on stop() through the UI's coordinator."""
        self._flush = coordinator

    def _transition(self, target: SessionState) -> bool:
        if not self.state.can_transition_to(target):
            logger.debug(f"Ignoring transition {self.state} -> {target}")
            return False
        self.state = target
        return True

    def start(self, target: str) -> str:
        """Normalize target and begin crawling.

        Must be called from inside the running event loop.

        Args:
            target: Domain or URL as typed by the user

        Returns:
            The normalized start URL

        Raises:
            InvalidURLError: If target is not a valid http(s) URL (no session is started)
            RuntimeError: If this session has already been started
        """
        if self.state not in (SessionState.IDLE, SessionState.PROMPTING):
            raise RuntimeError(f"Session already started (state: {self.state})")

        start_url = normalize_url(target)

        self.target_url = start_url
        self.stats = CrawlStats(start_time=self.clock())
        self._transition(SessionState.RUNNING)
        self._log("log", f"Starting crawl: {start_url}")

        self._stats_task = asyncio.create_task(self._stats_loop(), name="toad-stats")
        self._run_task = asyncio.create_task(self._drive(start_url), name="toad-session")
        return start_url

    def pause(self) -> None:
        if self.state is not SessionState.RUNNING:
            return
        self._paused_at = self.clock()
        self._transition(SessionState.PAUSED)
        self.scheduler.pause()
        self._log("log", "Crawl paused")

    def resume(self) -> None:
        if self.state is not SessionState.PAUSED:
            return
        self._close_pause_interval()
        self._transition(SessionState.RUNNING)
        self.scheduler.resume()
        self._log("log", "Crawl resumed")

    def toggle_pause(self) -> None:
        if self.state is SessionState.RUNNING:
            self.pause()
        elif self.state is SessionState.PAUSED:
            self.resume()

    def abort(self) -> None:
        """Tear down immediately without draining or completion callback.

        Never awaits, so it is safe from signal handlers and exit paths.
        """
        if not self.is_active:
            return

        self._close_pause_interval()
        self.scheduler.abort()

        if self._stats_task is not None:
            self._stats_task.cancel()
        if self._flush is not None:
            self._flush.cancel()
        if self._run_task is not None:
            self._run_task.cancel()

        self.stats.finished_at = self.clock()
        self._transition(SessionState.FINISHED)
        self._done.set()
        logger.debug("Session aborted")

    async def stop(self) -> None:
        """Drain gracefully and emit the completion callback once.

        Teardown failures are logged and never propagated.
        """
        if self._stopping or not self.is_active:
            return
        self._stopping = True

        self.resume()

        if self._stats_task is not None:
            self._stats_task.cancel()

        try:
            await self.scheduler.teardown()
        except Exception as e:
            logger.warning(f"Scheduler teardown failed: {e}")
            self._log("warn", f"Scheduler teardown failed: {e}")

        self._apply_counters()

        if self._flush is not None:
            self._flush.final_flush()
        else:
            self.buffer.take_all()

        self.stats.finished_at = self.clock()
        self._transition(SessionState.FINISHED)

        snapshot = self.snapshot()
        self._log(
            "log",
            f"Crawl finished: {snapshot.pages_crawled} pages, {snapshot.errors} errors",
        )
        self.callbacks.on_stats_update(snapshot)
        if self.pages:
            self.callbacks.on_crawl_complete(list(self.pages), snapshot)
        self._done.set()

    async def wait(self) -> None:
        """Wait until the session has finished or been aborted."""
        await self._done.wait()

    async def _drive(self, start_url: str) -> None:
        handlers = SchedulerHandlers(
            on_page_complete=self.handle_page,
            on_request_failed=self.handle_failure,
        )
        try:
            await self.scheduler.run(start_url, handlers)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Crawl aborted by scheduler error: {e}")
            self._log("error", f"Crawl failed: {e}")
        await self.stop()

    async def _stats_loop(self) -> None:
        while True:
            await asyncio.sleep(self.stats_interval)
            self.refresh_stats()

    # -- scheduler events --------------------------------------------------

    def handle_page(self, page: FetchedPage) -> None:
        """Classify a completed fetch and record it."""
        if not self.is_active:
            return
        self._accept(build_page_record(page))

    def handle_failure(self, error: BaseException, url: str) -> None:
        """Record a failed request; content-type rejections become non-HTML pages."""
        if not self.is_active:
            return

        if isinstance(error, ContentTypeRejectedError):
            self._accept(rejected_page_record(error))
            return

        with self._lock:
            self.stats.errors += 1
        self.callbacks.on_crawl_error(error, url)

    def _accept(self, record: PageRecord) -> None:
        with self._lock:
            self.pages.append(record)
            self.stats.record_page(record)
            self.buffer.push(record)
        self.callbacks.on_page_crawled(record)

    # -- statistics --------------------------------------------------------

    def _close_pause_interval(self) -> None:
        if self._paused_at is None:
            return
        self.stats.paused_duration += self.clock() - self._paused_at
        self._paused_at = None

    def _apply_counters(self) -> None:
        counters = self.scheduler.counters()
        with self._lock:
            self.stats.pages_in_queue = counters.pending
            self.stats.unique_urls_found = counters.finished + counters.failed + counters.pending

    def refresh_stats(self) -> CrawlStats:
        """Recompute queue-derived fields and publish a snapshot."""
        self._apply_counters()
        snapshot = self.snapshot()
        self.callbacks.on_stats_update(snapshot)
        return snapshot

    def snapshot(self) -> CrawlStats:
        """Deep copy of the current stats, with any ongoing pause included."""
        with self._lock:
            snapshot = self.stats.model_copy(deep=True)
        if self._paused_at is not None:
            snapshot.paused_duration += self.clock() - self._paused_at
        return snapshot

    def elapsed(self) -> float:
        return self.snapshot().elapsed(self.clock())

    def pages_per_second(self) -> float:
        return self.snapshot().pages_per_second(self.clock())

    def _log(self, level: str, message: str) -> None:
        logger.debug(message)
        self.callbacks.on_log_message(level, message)
