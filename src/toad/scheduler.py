"""Async page-fetching scheduler.

Queue-based crawling over httpx with a worker pool sized by max_concurrency, token
bucket rate limiting derived from the request delay, robots.txt compliance, and
same-host link following up to a depth limit. Results are pushed to the caller
through SchedulerHandlers instead of being yielded.
"""

import asyncio
import logging
import time
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from httpx_retries import Retry, RetryTransport
from robotexclusionrulesparser import RobotFileParserLookalike

from toad.config import CrawlOptions
from toad.exceptions import ContentTypeRejectedError
from toad.models import mime_type
from toad.rules import CrawlScope, extract_links
from toad.urls import comparison_url

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = frozenset({"text/html", "application/xhtml+xml"})
DATA_CONTENT_TYPES = frozenset({"application/xml", "text/xml", "application/json"})
ACCEPTED_CONTENT_TYPES = HTML_CONTENT_TYPES | DATA_CONTENT_TYPES

RETRY_STATUS_CODES = [429, 500, 502, 503, 504]


@dataclass(frozen=True, slots=True)
class FetchedPage:
    """A completed HTTP response handed to the session engine.

    Attributes:
        url: URL as requested (normalized queue key)
        final_url: URL after redirects
        status_code: HTTP status of the final response
        headers: Response headers (multi-valued headers preserved)
        body: Decoded body for HTML/XML/JSON responses
        response_time_ms: Time from dispatch to full response
        depth: Link depth from the seed
    """

    url: str
    final_url: str
    status_code: int
    headers: httpx.Headers
    body: str
    response_time_ms: int
    depth: int = 0

    @property
    def content_type(self) -> str:
        """Raw Content-Type header; a missing header is treated as text/html."""
        return self.headers.get("content-type") or "text/html"

    @property
    def is_html(self) -> bool:
        return mime_type(self.content_type) in HTML_CONTENT_TYPES

    @property
    def x_robots_tag(self) -> list[str]:
        return self.headers.get_list("x-robots-tag")


@dataclass(frozen=True, slots=True)
class SchedulerHandlers:
    """Callbacks invoked by the scheduler for every settled request."""

    on_page_complete: Callable[[FetchedPage], None]
    on_request_failed: Callable[[BaseException, str], None]


@dataclass(frozen=True, slots=True)
class SchedulerCounters:
    """Live request counters: settled successes, settled failures, still queued."""

    finished: int = 0
    failed: int = 0
    pending: int = 0


class RateLimiter:
    """Token bucket rate limiter.

    Tokens are added to the bucket at a constant rate and each request consumes
    one token. With burst=1 this enforces a fixed gap between dispatches.

    Example:
        >>> limiter = RateLimiter(rate=5.0, burst=1)
        >>> await limiter.acquire()  # Consumes 1 token
    """

    def __init__(self, rate: float, burst: int = 1) -> None:
        """Initialize rate limiter.

        Args:
            rate: Requests per second (e.g., 5.0 = one request every 200ms)
            burst: Maximum burst size (tokens in bucket)
        """
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)
        self.last_update = time.time()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Acquire a token, waiting if necessary.

        1. Calculate tokens added since last update (time_passed * rate)
        2. Add tokens (cap at burst size)
        3. If tokens >= 1, consume token and return
        4. Otherwise, sleep until next token available
        """
        async with self._lock:
            while True:
                now = time.time()
                time_passed = now - self.last_update
                self.last_update = now

                self.tokens = min(self.burst, self.tokens + time_passed * self.rate)

                if self.tokens >= 1.0:
                    self.tokens -= 1.0
                    return

                sleep_time = (1.0 - self.tokens) / self.rate
                await asyncio.sleep(sleep_time)


class RobotsTxtChecker:
    """Checks robots.txt files to determine if URLs can be crawled.

    Caches robots.txt files per origin to avoid re-fetching. On fetch errors,
    defaults to allowing the URL.

    Example:
        >>> checker = RobotsTxtChecker(client, user_agent="MyBot/1.0")
        >>> allowed = await checker.is_allowed("https://example.com/page")
    """

    def __init__(self, client: httpx.AsyncClient, user_agent: str) -> None:
        self.client = client
        self.user_agent = user_agent
        self._cache: dict[str, RobotFileParserLookalike] = {}  # origin -> parser

    async def is_allowed(self, url: str) -> bool:
        """Check if URL is allowed by robots.txt.

        Returns:
            True if allowed (or on fetch error), False if disallowed
        """
        parsed = urllib.parse.urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        if origin not in self._cache:
            parser = RobotFileParserLookalike()
            robots_url = f"{origin}/robots.txt"
            try:
                response = await self.client.get(robots_url, timeout=10.0)
            except httpx.HTTPError as e:
                logger.warning(
                    f"Failed to fetch robots.txt for {origin}: {e}. Proceeding without it."
                )
                parser.parse([])
            else:
                if response.status_code == 200:
                    parser.parse(response.text.splitlines())
                    logger.debug(f"Loaded robots.txt for {origin}")
                else:
                    parser.parse([])
                    logger.debug(f"No robots.txt for {origin} (status {response.status_code})")
            self._cache[origin] = parser

        return bool(self._cache[origin].is_allowed(self.user_agent, url))


def create_http_client(options: CrawlOptions) -> httpx.AsyncClient:
    """Create the httpx client used for crawling.

    Retries 429/5xx responses with exponential backoff, follows redirects and
    identifies with the configured user agent.
    """
    retry_policy = Retry(
        total=options.max_retries,
        backoff_factor=0.5,
        status_forcelist=RETRY_STATUS_CODES,
        respect_retry_after_header=True,
    )

    base_transport = httpx.AsyncHTTPTransport(
        limits=httpx.Limits(
            max_connections=max(10, options.max_concurrency * 2),
            max_keepalive_connections=options.max_concurrency,
        ),
        retries=0,
    )

    return httpx.AsyncClient(
        transport=RetryTransport(transport=base_transport, retry=retry_policy),
        timeout=httpx.Timeout(options.request_timeout_seconds, connect=10.0),
        follow_redirects=True,
        headers={"User-Agent": options.user_agent},
    )


class PageScheduler:
    """Worker-pool crawler driven by a session engine.

    Features:
    - max_concurrency worker tasks pulling from one asyncio.Queue
    - Token bucket rate limiting (1000 / request_delay_ms requests per second)
    - Dispatch gate for pause/resume (in-flight requests complete normally)
    - Page cap, depth cap and same-host scope
    - Dependency injection of the HTTP client for testability

    Example:
        >>> scheduler = PageScheduler(CrawlOptions())
        >>> await scheduler.run("https://example.com/", handlers)
        >>> await scheduler.teardown()
    """

    def __init__(self, options: CrawlOptions, client: httpx.AsyncClient | None = None) -> None:
        """Initialize scheduler.

        Args:
            options: Crawl options for this session
            client: Optional HTTP client (for testing with mocks); not closed by teardown
        """
        self.options = options
        self.client = client
        self._owns_client = client is None

        self.visited: set[str] = set()
        self.queue: asyncio.Queue[tuple[str, str | None]] = asyncio.Queue()  # (url, parent_url)

        rate = options.requests_per_second
        self.rate_limiter = RateLimiter(rate=rate, burst=1) if rate else None
        self.robots_checker: RobotsTxtChecker | None = None
        self.scope: CrawlScope | None = None

        self._handlers: SchedulerHandlers | None = None
        self._dispatch_gate = asyncio.Event()
        self._dispatch_gate.set()
        self._workers: list[asyncio.Task[None]] = []
        self._dispatched = 0
        self._finished = 0
        self._failed = 0
        self._closed = False

    def counters(self) -> SchedulerCounters:
        return SchedulerCounters(
            finished=self._finished,
            failed=self._failed,
            pending=self.queue.qsize(),
        )

    @property
    def is_paused(self) -> bool:
        return not self._dispatch_gate.is_set()

    async def run(self, seed_url: str, handlers: SchedulerHandlers) -> None:
        """Crawl from seed_url until the queue drains or the page cap is reached.

        Args:
            seed_url: Normalized absolute start URL
            handlers: Receivers for completed pages and failed requests
        """
        if self._closed:
            raise RuntimeError("Scheduler has been torn down")

        self._handlers = handlers

        if self.client is None:
            self.client = create_http_client(self.options)

        if self.options.respect_robots_txt and self.robots_checker is None:
            self.robots_checker = RobotsTxtChecker(self.client, user_agent=self.options.user_agent)

        start_url = comparison_url(seed_url)
        self.scope = CrawlScope(start_url, self.options.max_depth)
        self.scope.depth_of(start_url, None)
        self.visited.add(start_url)
        self.queue.put_nowait((start_url, None))

        self._workers = [
            asyncio.create_task(self._worker(), name=f"toad-worker-{i}")
            for i in range(self.options.max_concurrency)
        ]

        await self.queue.join()
        logger.debug(
            f"Queue drained: {self._finished} finished, {self._failed} failed, "
            f"{self._dispatched} dispatched"
        )
        await self._stop_workers()

    def pause(self) -> None:
        """Stop dispatching new requests; in-flight requests complete normally."""
        self._dispatch_gate.clear()

    def resume(self) -> None:
        self._dispatch_gate.set()

    def abort(self) -> None:
        """Cancel every worker without waiting. Safe to call from a signal handler."""
        self._closed = True
        self._dispatch_gate.set()
        for worker in self._workers:
            worker.cancel()

    async def teardown(self) -> None:
        """Stop workers, release queued work and close the owned client. Idempotent."""
        if self._closed and not self._workers and self.client is None:
            return
        self._closed = True
        self._dispatch_gate.set()

        await self._stop_workers()

        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()

        if self.client is not None and self._owns_client:
            await self.client.aclose()
        self.client = None

    async def _stop_workers(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(self) -> None:
        while True:
            url, parent_url = await self.queue.get()
            try:
                await self._dispatch_gate.wait()

                if self._dispatched >= self.options.max_pages:
                    continue

                if self.robots_checker is not None:
                    if not await self.robots_checker.is_allowed(url):
                        logger.info(f"URL disallowed by robots.txt: {url}")
                        continue

                # Check and claim the slot without awaiting in between
                if self._dispatched >= self.options.max_pages:
                    continue
                self._dispatched += 1

                if self.rate_limiter is not None:
                    await self.rate_limiter.acquire()

                # Pausing while waiting on the rate limiter still holds the request back
                await self._dispatch_gate.wait()
                await self._fetch_page(url, parent_url)
            finally:
                self.queue.task_done()

    async def _fetch_page(self, url: str, parent_url: str | None) -> None:
        """Fetch a single page, report it, and enqueue its in-scope links.

        Every HTTP response counts as a completed page whatever its status;
        transport errors and unsupported content types count as failures.
        """
        assert self.client is not None
        assert self._handlers is not None

        depth = self.scope.depth_of(url, parent_url) if self.scope else 0
        start = time.perf_counter()

        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._failed += 1
            logger.debug(f"Request failed for {url}: {type(e).__name__}: {e}")
            self._notify_failure(e, url)
            return

        response_time_ms = int((time.perf_counter() - start) * 1000)
        final_url = str(response.url)
        raw_content_type = response.headers.get("content-type") or "text/html"

        if mime_type(raw_content_type) not in ACCEPTED_CONTENT_TYPES:
            self._failed += 1
            self._notify_failure(
                ContentTypeRejectedError(
                    url,
                    raw_content_type,
                    status_code=response.status_code,
                    response_time_ms=response_time_ms,
                    final_url=final_url,
                ),
                url,
            )
            return

        page = FetchedPage(
            url=url,
            final_url=final_url,
            status_code=response.status_code,
            headers=response.headers,
            body=response.text,
            response_time_ms=response_time_ms,
            depth=depth,
        )

        if page.is_html and depth < self.options.max_depth:
            self._enqueue_links(page)

        self._finished += 1
        try:
            self._handlers.on_page_complete(page)
        except Exception:
            logger.exception(f"Page handler failed for {url}")

    def _enqueue_links(self, page: FetchedPage) -> None:
        if self.scope is None:
            return
        for link in extract_links(page.body, page.final_url):
            if link in self.visited:
                continue
            if self._dispatched + self.queue.qsize() >= self.options.max_pages:
                break
            if not self.scope.should_follow(link, page.url):
                continue
            self.visited.add(link)
            self.queue.put_nowait((link, page.url))

    def _notify_failure(self, error: BaseException, url: str) -> None:
        assert self._handlers is not None
        try:
            self._handlers.on_request_failed(error, url)
        except Exception:
            logger.exception(f"Failure handler failed for {url}")
