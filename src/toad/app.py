"""Full-screen dashboard application.

Ties the crawl session, the flush coordinator, keyboard and mouse input and
the rich renderables together on a single asyncio loop.
"""

import asyncio
import logging
import signal
import time
from collections import deque
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from rich.console import Console, RenderableType
from rich.live import Live

from toad.config import CrawlOptions, ToadConfig
from toad.dashboard import (
    ConsoleMessage,
    main_area_height,
    render_console,
    render_dashboard,
    render_options,
    render_page_detail,
    render_prompt,
    render_status_bar,
    render_too_narrow,
    table_width,
    visible_rows_for,
)
from toad.engine import CrawlSession, EngineCallbacks, FetchScheduler
from toad.exceptions import ExportError, InvalidURLError
from toad.export import ExportPaths, export_results
from toad.flush import FlushCoordinator
from toad.forms import OptionsEditor, PromptInput
from toad.keys import InputEvent, KeyPress
from toad.models import CrawlStats, PageRecord, SessionState
from toad.mouse import PointerEvent
from toad.table import TableViewport
from toad.terminal import TerminalInput
from toad.utils import install_dashboard_logging

logger = logging.getLogger(__name__)

SchedulerFactory = Callable[[CrawlOptions], FetchScheduler]


@dataclass
class TransientMessage:
    """Status bar message that disappears after a fixed lifetime."""

    text: str
    expires_at: float

    def current(self, now: float) -> str | None:
        return self.text if now < self.expires_at else None


class DashboardApp:
    """Interactive crawl dashboard.

    Example:
        >>> app = DashboardApp(load_config(path), initial_url="example.com")
        >>> asyncio.run(app.run())
    """

    def __init__(
        self,
        config: ToadConfig | None = None,
        initial_url: str | None = None,
        console: Console | None = None,
        scheduler_factory: SchedulerFactory | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize app.

        Args:
            config: Crawl, display and export settings
            initial_url: Start crawling this target right away instead of prompting
            console: Rich console to draw on
            scheduler_factory: Builds the page fetcher for each session (defaults to PageScheduler)
            clock: Wall clock in epoch seconds (injectable for tests)
        """
        self.config = config or ToadConfig()
        self.options = self.config.crawl
        self.display = self.config.display
        self.initial_url = initial_url
        self.console = console or Console()
        self.scheduler_factory = scheduler_factory
        self.clock = clock

        self.prompt = PromptInput(initial_url or "")
        self.viewport = TableViewport()
        self.messages: deque[ConsoleMessage] = deque(maxlen=self.display.console_history)
        self.stats = CrawlStats()

        self.session: CrawlSession | None = None
        self.flush: FlushCoordinator | None = None
        self.options_editor: OptionsEditor | None = None
        self.detail: PageRecord | None = None
        self.console_open = False

        self.error_message: TransientMessage | None = None
        self.export_message: TransientMessage | None = None
        self.exported: ExportPaths | None = None

        self._quit = asyncio.Event()
        self._shutting_down = False
        self._tasks: set[asyncio.Task[Any]] = set()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self.session is None:
            return SessionState.PROMPTING
        return self.session.state

    @property
    def should_exit(self) -> bool:
        return self._quit.is_set()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def add_message(self, level: str, message: str) -> None:
        self.messages.append(ConsoleMessage(self.clock(), level, message))

    def show_error(self, message: str) -> None:
        self.error_message = TransientMessage(message, self.clock() + self.display.error_message_ms / 1000)

    def show_export(self, message: str) -> None:
        self.export_message = TransientMessage(message, self.clock() + self.display.export_message_ms / 1000)

    # -- session -----------------------------------------------------------

    def start_crawl(self, target: str) -> bool:
        """Start a session for target. Returns False (and stays on the prompt) if invalid."""
        scheduler = self.scheduler_factory(self.options) if self.scheduler_factory else None
        session = CrawlSession(
            self.options,
            scheduler=scheduler,
            callbacks=EngineCallbacks(
                on_stats_update=self._on_stats_update,
                on_crawl_complete=self._on_crawl_complete,
                on_crawl_error=self._on_crawl_error,
                on_log_message=self.add_message,
            ),
            clock=self.clock,
            stats_interval=self.display.stats_interval_ms / 1000,
        )
        flush = FlushCoordinator(
            session.buffer, self.viewport.extend_rows, self.display.flush_interval_ms / 1000
        )
        session.attach_flush_coordinator(flush)

        try:
            start_url = session.start(target)
        except InvalidURLError as e:
            self.prompt.error = str(e)
            return False

        self.viewport.clear()
        self.session = session
        self.flush = flush
        self.stats = session.snapshot()
        self.exported = None
        flush.start()
        logger.info(f"Crawling {start_url}")
        return True

    def _on_stats_update(self, stats: CrawlStats) -> None:
        self.stats = stats

    def _on_crawl_error(self, error: BaseException, url: str) -> None:
        message = f"Failed to crawl {url}: {error}"
        self.add_message("error", message)
        self.show_error(message)

    def _on_crawl_complete(self, pages: list[PageRecord], stats: CrawlStats) -> None:
        self.stats = stats
        if self.config.export.auto_export:
            self._spawn(self.export(pages, stats, auto=True))

    async def export(
        self,
        pages: list[PageRecord] | None = None,
        stats: CrawlStats | None = None,
        auto: bool = False,
    ) -> ExportPaths | None:
        """Export the current session's results and report the outcome in the status bar."""
        if self.session is None or self.session.target_url is None:
            return None
        pages = pages if pages is not None else list(self.session.pages)
        if not pages:
            self.show_error("Nothing to export yet")
            return None
        stats = stats or self.session.snapshot()

        try:
            paths = await export_results(
                pages, stats, self.session.target_url, self.config.export.directory
            )
        except ExportError as e:
            logger.error(str(e))
            self.show_error(str(e))
            return None

        self.exported = paths
        prefix = "Auto-exported" if auto else "Exported"
        self.show_export(f"{prefix} to {paths.csv_path.name}")
        self.add_message("log", f"{prefix} to {paths.csv_path.name} and {paths.json_path.name}")
        return paths

    async def shutdown(self) -> None:
        """Abort any running crawl, export what was collected, and exit."""
        if self._shutting_down:
            return
        self._shutting_down = True

        session = self.session
        if session is not None:
            was_active = session.is_active
            session.abort()
            if self.flush is not None:
                self.flush.flush_once()
            # request_quit() runs this coroutine as one of the tracked tasks
            current = asyncio.current_task()
            pending = [task for task in self._tasks if task is not current]
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            if session.pages and self.exported is None:
                await self.export(list(session.pages), session.snapshot(), auto=was_active)
            try:
                await session.scheduler.teardown()
            except Exception as e:
                logger.warning(f"Scheduler teardown failed: {e}")

        self._quit.set()

    def request_quit(self) -> None:
        self._spawn(self.shutdown())

    # -- input -------------------------------------------------------------

    def handle_event(self, event: InputEvent) -> None:
        if isinstance(event, PointerEvent):
            if self.session is not None and self.options_editor is None and self.detail is None:
                self.viewport.handle_pointer(event)
            return

        if event.ctrl and event.key == "c":
            self.request_quit()
            return

        if self.session is None:
            self._handle_prompt_key(event)
        elif self.options_editor is not None:
            self._handle_options_key(event)
        elif self.detail is not None:
            if event.matches("escape", "enter"):
                self.detail = None
        else:
            self._handle_dashboard_key(event)

    def _handle_prompt_key(self, key: KeyPress) -> None:
        if key.key == "escape":
            self.request_quit()
            return
        target = self.prompt.handle_key(key)
        if target is not None:
            self.start_crawl(target)

    def _handle_options_key(self, key: KeyPress) -> None:
        assert self.options_editor is not None
        if not self.options_editor.handle_key(key):
            return
        options, error = self.options_editor.result()
        self.options_editor = None
        if error is not None:
            self.show_error(error)
            self.add_message("warn", error)
            return
        if options != self.options:
            self.options = options
            self.add_message("log", "Options saved; they apply to the next crawl")

    def _handle_dashboard_key(self, key: KeyPress) -> None:
        assert self.session is not None
        match key.key:
            case "q":
                self.request_quit()
            case "e":
                self._spawn(self.export())
            case "o":
                self.options_editor = OptionsEditor(self.options)
            case "c":
                self.console_open = not self.console_open
            case " " | "p":
                self.session.toggle_pause()
            case "enter":
                self.detail = self.viewport.selected_record()
            case _:
                self.viewport.handle_key(key)

    # -- rendering ---------------------------------------------------------

    def render(self, width: int, height: int) -> RenderableType:
        now = self.clock()
        if self.session is None:
            return render_prompt(self.prompt, height)
        if width < self.display.min_width:
            return render_too_narrow(width, self.display.min_width)
        if self.options_editor is not None:
            return render_options(self.options_editor)
        if self.detail is not None:
            return render_page_detail(self.detail)

        self.viewport.resize(
            table_width(width),
            visible_rows_for(main_area_height(height, self.console_open)),
        )
        state = self.session.state
        status_bar = render_status_bar(
            paused=state is SessionState.PAUSED,
            finished=state is SessionState.FINISHED,
            export_message=self.export_message.current(now) if self.export_message else None,
            error_message=self.error_message.current(now) if self.error_message else None,
            message_count=len(self.messages),
            console_open=self.console_open,
            has_errors=any(m.level == "error" for m in self.messages),
        )
        console = render_console(self.messages, width) if self.console_open else None
        return render_dashboard(
            self.viewport,
            self.stats,
            self.session.elapsed(),
            width,
            status_bar,
            console,
        )

    def _frame(self) -> RenderableType:
        size = self.console.size
        return self.render(size.width, size.height)

    # -- main loop ---------------------------------------------------------

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list[signal.Signals]:
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_quit)
            except (NotImplementedError, RuntimeError):
                continue
            installed.append(sig)
        return installed

    async def run(self) -> ExportPaths | None:
        """Run until the user quits.

        Returns:
            Paths of the last export, if any
        """
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)
        install_dashboard_logging(self.add_message)
        interval = 1 / self.display.refresh_per_second

        try:
            async with TerminalInput(mouse=self.display.mouse) as terminal:
                with Live(
                    self._frame(),
                    console=self.console,
                    screen=True,
                    auto_refresh=False,
                ) as live:
                    if self.initial_url:
                        self.start_crawl(self.initial_url)

                    while not self._quit.is_set():
                        try:
                            event = await asyncio.wait_for(terminal.events.get(), timeout=interval)
                        except TimeoutError:
                            pass
                        else:
                            self.handle_event(event)
                            while not terminal.events.empty():
                                self.handle_event(terminal.events.get_nowait())
                        live.update(self._frame(), refresh=True)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            if self.session is not None:
                self.session.abort()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

        return self.exported
