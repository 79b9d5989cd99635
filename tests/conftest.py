"""Pytest fixtures for Mumbling Toad tests."""

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from toad.config import CrawlOptions
from toad.models import PageRecord
from toad.scheduler import FetchedPage, SchedulerCounters, SchedulerHandlers


@pytest.fixture
def options() -> CrawlOptions:
    """Crawl options suitable for most tests.

    No request delay, small limits, and robots.txt disabled so tests do not
    have to mock it.
    """
    return CrawlOptions(
        max_concurrency=2,
        request_delay_ms=0,
        max_pages=50,
        max_depth=3,
        respect_robots_txt=False,
        max_retries=0,
    )


@pytest.fixture
def sample_html() -> str:
    """A small HTML page with every SEO signal present."""
    return """
    <html>
    <head>
        <title>  Example Page  </title>
        <meta name="description" content="An example page for tests">
        <meta name="robots" content="index, follow">
        <link rel="canonical" href="https://example.com/page">
    </head>
    <body>
        <h1>Welcome to Example</h1>
        <p>Some body text here.</p>
        <a href="/about">About</a>
        <a href="https://example.com/contact#form">Contact</a>
        <a href="https://other.com/">External</a>
        <a href="mailto:hello@example.com">Mail</a>
    </body>
    </html>
    """


def make_record(index: int = 0, **overrides: Any) -> PageRecord:
    """Build a PageRecord with sensible defaults."""
    values: dict[str, Any] = {
        "url": f"https://example.com/page-{index}",
        "final_url": f"https://example.com/page-{index}",
        "status_code": 200,
        "title": f"Page {index}",
        "h1": f"Heading {index}",
        "meta_description": "",
        "word_count": 100,
        "response_time_ms": 50,
        "content_type": "text/html; charset=utf-8",
        "is_indexable": True,
        "indexability_reason": None,
    }
    values.update(overrides)
    return PageRecord(**values)


@pytest.fixture
def record_factory() -> Callable[..., PageRecord]:
    return make_record


def make_fetched_page(
    url: str = "https://example.com/",
    body: str = "<html><head><title>Home</title></head><body><h1>Hi</h1></body></html>",
    status_code: int = 200,
    content_type: str | None = "text/html",
    headers: dict[str, str] | list[tuple[str, str]] | None = None,
    final_url: str | None = None,
    response_time_ms: int = 42,
) -> FetchedPage:
    header_items = list(headers.items()) if isinstance(headers, dict) else list(headers or [])
    if content_type is not None:
        header_items.append(("content-type", content_type))
    return FetchedPage(
        url=url,
        final_url=final_url or url,
        status_code=status_code,
        headers=httpx.Headers(header_items),
        body=body,
        response_time_ms=response_time_ms,
    )


@pytest.fixture
def page_factory() -> Callable[..., FetchedPage]:
    return make_fetched_page


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeScheduler:
    """Scheduler double driven by the test.

    ``run`` blocks until ``finish()`` is called; tests push results through
    ``complete()`` and ``fail()`` in between.
    """

    def __init__(self) -> None:
        self.handlers: SchedulerHandlers | None = None
        self.seed_url: str | None = None
        self.started = asyncio.Event()
        self._finished = asyncio.Event()
        self.paused = False
        self.aborted = False
        self.teardown_calls = 0
        self.teardown_error: Exception | None = None
        self.finished_count = 0
        self.failed_count = 0
        self.pending = 0

    async def run(self, seed_url: str, handlers: SchedulerHandlers) -> None:
        self.seed_url = seed_url
        self.handlers = handlers
        self.started.set()
        await self._finished.wait()

    def finish(self) -> None:
        self._finished.set()

    def complete(self, page: FetchedPage) -> None:
        assert self.handlers is not None
        self.finished_count += 1
        self.handlers.on_page_complete(page)

    def fail(self, error: BaseException, url: str) -> None:
        assert self.handlers is not None
        self.failed_count += 1
        self.handlers.on_request_failed(error, url)

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def abort(self) -> None:
        self.aborted = True

    async def teardown(self) -> None:
        self.teardown_calls += 1
        if self.teardown_error is not None:
            raise self.teardown_error

    def counters(self) -> SchedulerCounters:
        return SchedulerCounters(
            finished=self.finished_count,
            failed=self.failed_count,
            pending=self.pending,
        )


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()
