"""Crawl data model: page records, running statistics, session state, result buffer."""

import threading
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PageRecord(BaseModel):
    """One completed fetch attempt.

    Created once per page and never mutated. Serializes with camelCase keys
    (``model_dump(by_alias=True)``) for export.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    url: str
    final_url: str
    status_code: int
    title: str = ""
    h1: str = ""
    meta_description: str = ""
    word_count: int = 0
    response_time_ms: int = 0
    content_type: str = ""
    is_indexable: bool = False
    indexability_reason: str | None = None
    canonical: str = ""


def status_class(status_code: int) -> str:
    """Bucket a status code into its class ("2xx", "4xx", ...)."""
    return f"{status_code // 100}xx"


def mime_type(content_type: str) -> str:
    """Strip parameters from a Content-Type value: "text/html; charset=utf-8" -> "text/html"."""
    return content_type.split(";")[0].strip().lower()


class CrawlStats(BaseModel):
    """Running counters for one session.

    Times are epoch seconds. ``paused_duration`` accumulates completed pause
    intervals; snapshots taken while paused include the ongoing pause.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pages_crawled: int = 0
    pages_in_queue: int = 0
    errors: int = 0
    start_time: float = 0.0
    paused_duration: float = 0.0
    finished_at: float | None = None
    unique_urls_found: int = 0
    indexable_count: int = 0
    non_indexable_count: int = 0
    status_codes: dict[str, int] = Field(default_factory=dict)
    content_types: dict[str, int] = Field(default_factory=dict)
    total_response_time_ms: int = 0

    def record_page(self, page: PageRecord) -> None:
        self.pages_crawled += 1
        status_key = status_class(page.status_code)
        self.status_codes[status_key] = self.status_codes.get(status_key, 0) + 1
        mime = mime_type(page.content_type)
        if mime:
            self.content_types[mime] = self.content_types.get(mime, 0) + 1
        if page.is_indexable:
            self.indexable_count += 1
        else:
            self.non_indexable_count += 1
        self.total_response_time_ms += page.response_time_ms

    def elapsed(self, now: float) -> float:
        """Active crawl time in seconds, excluding pauses and frozen at finish."""
        if not self.start_time:
            return 0.0
        end = self.finished_at if self.finished_at is not None else now
        return max(0.0, end - self.start_time - self.paused_duration)

    def pages_per_second(self, now: float) -> float:
        elapsed = self.elapsed(now)
        if elapsed <= 0:
            return 0.0
        return self.pages_crawled / elapsed

    @property
    def average_response_time_ms(self) -> float:
        if not self.pages_crawled:
            return 0.0
        return self.total_response_time_ms / self.pages_crawled


class SessionState(StrEnum):
    IDLE = "idle"
    PROMPTING = "prompting"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"

    def can_transition_to(self, target: "SessionState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset(
        {SessionState.PROMPTING, SessionState.RUNNING, SessionState.FINISHED}
    ),
    SessionState.PROMPTING: frozenset({SessionState.RUNNING, SessionState.FINISHED}),
    SessionState.RUNNING: frozenset({SessionState.PAUSED, SessionState.FINISHED}),
    SessionState.PAUSED: frozenset({SessionState.RUNNING, SessionState.FINISHED}),
    SessionState.FINISHED: frozenset(),
}


class PendingBuffer:
    """Append-only list of page records awaiting display.

    ``take_all`` swaps the backing list for an empty one under the lock, so a
    reader gets either the whole batch or none of it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[PageRecord] = []

    def push(self, record: PageRecord) -> None:
        with self._lock:
            self._items.append(record)

    def take_all(self) -> list[PageRecord]:
        with self._lock:
            batch, self._items = self._items, []
        return batch

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0
