"""Non-interactive crawl runner with a rich progress bar and final summary."""

import asyncio
import logging
import signal
from collections import Counter
from dataclasses import dataclass, field

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from toad.config import ToadConfig
from toad.engine import CrawlSession, EngineCallbacks, FetchScheduler
from toad.exceptions import ExportError
from toad.export import ExportPaths, export_results
from toad.models import CrawlStats, PageRecord

logger = logging.getLogger(__name__)


@dataclass
class HeadlessResult:
    """Outcome of a headless crawl."""

    target_url: str
    stats: CrawlStats
    pages: list[PageRecord] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)
    exported: ExportPaths | None = None
    interrupted: bool = False


def _print_header(console: Console, target_url: str, config: ToadConfig) -> None:
    options = config.crawl
    console.print()
    console.print(f"[bold cyan]Target:[/] {target_url}")
    console.print(
        f"[dim]Concurrency {options.max_concurrency} • delay {options.request_delay_ms}ms • "
        f"max pages {options.max_pages} • depth {options.max_depth} • "
        f"robots.txt {'on' if options.respect_robots_txt else 'off'}[/]"
    )
    console.print("[bold green]Starting crawl...[/]\n")


def build_summary_table(stats: CrawlStats) -> Table:
    """Final statistics as a two-column table.

    Args:
        stats: Final stats snapshot (finished_at set)

    Returns:
        Rich Table with summary statistics
    """
    elapsed = stats.elapsed(stats.finished_at or stats.start_time)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green bold")

    table.add_row("Pages crawled", str(stats.pages_crawled))
    table.add_row("Errors", f"[red]{stats.errors}[/red]" if stats.errors else "0")
    table.add_row("Unique URLs", str(stats.unique_urls_found))
    table.add_row("Indexable", str(stats.indexable_count))
    table.add_row("Non-indexable", f"[yellow]{stats.non_indexable_count}[/yellow]")
    table.add_row("Avg response", f"{round(stats.average_response_time_ms)}ms")

    if elapsed < 60:
        time_str = f"{elapsed:.2f}s"
    else:
        minutes = int(elapsed // 60)
        seconds = elapsed % 60
        time_str = f"{minutes}m {seconds:.1f}s"
    table.add_row("Elapsed", time_str)

    if stats.pages_crawled > 0 and elapsed > 0:
        table.add_row("Speed", f"{stats.pages_crawled / elapsed:.2f} pages/sec")

    if stats.status_codes:
        table.add_row(
            "Status codes",
            ", ".join(f"{code}: {count}" for code, count in sorted(stats.status_codes.items())),
        )
    return table


def build_reason_table(pages: list[PageRecord]) -> Table | None:
    """Count non-indexable pages by reason, or None when every page is indexable."""
    reasons = Counter(p.indexability_reason for p in pages if not p.is_indexable)
    if not reasons:
        return None

    table = Table(show_header=True, box=None)
    table.add_column("Reason", style="yellow", no_wrap=True)
    table.add_column("Pages", style="red", justify="right")
    for reason, count in reasons.most_common():
        table.add_row(reason or "unknown", str(count))
    return table


def _print_summary(console: Console, result: HeadlessResult) -> None:
    console.print()
    console.print("=" * 70)
    title = "Crawl Interrupted" if result.interrupted else "Crawl Complete!"
    console.print(f"[bold green]{title}[/]\n")
    console.print(build_summary_table(result.stats))

    reason_table = build_reason_table(result.pages)
    if reason_table is not None:
        console.print()
        console.print("[bold yellow]Non-indexable pages:[/]")
        console.print(reason_table)

    console.print()
    if result.exported is not None:
        console.print("[bold]Results saved to:[/]")
        console.print(f"  • {result.exported.csv_path}")
        console.print(f"  • {result.exported.json_path}")
    elif not result.pages:
        console.print("[dim]No pages crawled - nothing exported[/]")


async def run_headless(
    target: str,
    config: ToadConfig,
    console: Console | None = None,
    scheduler: FetchScheduler | None = None,
    export: bool | None = None,
) -> HeadlessResult:
    """Crawl target to completion without the dashboard.

    Args:
        target: Domain or URL to crawl
        config: Crawl and export settings
        console: Rich console for progress and summary output
        scheduler: Page fetcher (defaults to PageScheduler)
        export: Write CSV/JSON results when pages were crawled (defaults to
            config.export.auto_export)

    Returns:
        HeadlessResult with final stats, pages and export paths

    Raises:
        InvalidURLError: If target is not a valid URL
        ExportError: If results cannot be written
    """
    console = console or Console()
    if export is None:
        export = config.export.auto_export
    failures: list[tuple[str, str]] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        console=console,
        expand=True,
    ) as progress:
        pages_task = progress.add_task("[cyan]Crawling pages", total=1)

        def on_stats_update(stats: CrawlStats) -> None:
            total = min(config.crawl.max_pages, max(stats.unique_urls_found, 1))
            progress.update(pages_task, completed=stats.pages_crawled + stats.errors, total=total)

        def on_crawl_error(error: BaseException, url: str) -> None:
            failures.append((url, str(error)))
            progress.console.print(f"[red][FAIL][/] {url}: {error}")

        def on_log_message(level: str, message: str) -> None:
            if level != "log":
                progress.console.print(f"[yellow][{level.upper()}][/] {message}")

        session = CrawlSession(
            config.crawl,
            scheduler=scheduler,
            callbacks=EngineCallbacks(
                on_stats_update=on_stats_update,
                on_crawl_error=on_crawl_error,
                on_log_message=on_log_message,
            ),
            stats_interval=config.display.stats_interval_ms / 1000,
        )

        target_url = session.start(target)
        _print_header(progress.console, target_url, config)

        interrupted = False

        def interrupt() -> None:
            nonlocal interrupted
            interrupted = True
            progress.console.print("\n[yellow]Interrupted - stopping crawl[/]")
            session.abort()

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, interrupt)
            except (NotImplementedError, RuntimeError):
                continue
            installed.append(sig)

        try:
            await session.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

        if interrupted:
            try:
                await session.scheduler.teardown()
            except Exception as e:
                logger.warning(f"Scheduler teardown failed: {e}")

        stats = session.snapshot()
        progress.update(
            pages_task,
            completed=stats.pages_crawled + stats.errors,
            total=max(stats.pages_crawled + stats.errors, 1),
        )

    result = HeadlessResult(
        target_url=target_url,
        stats=stats,
        pages=list(session.pages),
        failures=failures,
        interrupted=interrupted,
    )

    if export and result.pages:
        try:
            result.exported = await export_results(
                result.pages, result.stats, target_url, config.export.directory
            )
        except ExportError:
            _print_summary(console, result)
            raise

    _print_summary(console, result)
    return result

