"""Command line interface.

CLI module using Typer with Rich-formatted output for the crawl and validate
commands. Interactive crawls run the full-screen dashboard; --headless prints
a progress bar and a summary instead.
"""

# ruff: noqa: B008

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from toad import __version__
from toad.app import DashboardApp
from toad.config import CrawlOptions, ToadConfig, load_config
from toad.debug_log import DebugLog, parse_debug_level
from toad.exceptions import ConfigError, ToadError
from toad.headless import run_headless
from toad.utils import setup_logging

install_rich_traceback(show_locals=True)

console = Console()

app = typer.Typer(
    name="mumbling-toad",
    help="Mumbling Toad - terminal SEO crawler",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Mumbling Toad version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Mumbling Toad - terminal SEO crawler."""
    pass


def _resolve_config(config: Path | None, max_pages: int | None) -> ToadConfig:
    toad_config = load_config(config) if config else ToadConfig()
    if max_pages:
        crawl = CrawlOptions.model_validate(
            {**toad_config.crawl.model_dump(), "max_pages": max_pages}
        )
        toad_config = toad_config.model_copy(update={"crawl": crawl})
    return toad_config


@app.command()
def crawl(
    url: str | None = typer.Argument(
        None,
        help="Domain or URL to crawl (prompted for in the dashboard when omitted)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    max_pages: int | None = typer.Option(
        None,
        "--max-pages",
        help="Override the maximum number of pages to crawl",
        min=1,
    ),
    headless: bool = typer.Option(
        False,
        "--headless",
        help="Run without the dashboard (requires URL)",
    ),
    debug: str | None = typer.Option(
        None,
        "--debug",
        help="Write a debug log file at LEVEL (debug, info, warning, error)",
        metavar="LEVEL",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging (headless mode)",
    ),
) -> None:
    """Crawl a site and report SEO signals for every page.

    Opens the interactive dashboard unless --headless is given. Results are
    exported to CSV and JSON when the crawl finishes or is quit.
    """
    debug_level = None
    if debug is not None:
        debug_level = parse_debug_level(debug)
        if debug_level is None:
            console.print(f"[red]Error:[/red] Unknown debug level: {debug}")
            console.print("[dim]Use one of: debug, info, warning, error[/dim]")
            raise typer.Exit(code=1)

    if headless and not url:
        console.print("[red]Error:[/red] --headless requires a URL")
        raise typer.Exit(code=1)

    debug_log = DebugLog(debug_level) if debug_level is not None else None

    try:
        if config:
            console.print(f"[cyan]Loading configuration from:[/cyan] {config}")
        toad_config = _resolve_config(config, max_pages)

        if debug_log is not None:
            debug_log.open()
            if not debug_log.active:
                console.print(f"[yellow]Could not open debug log:[/yellow] {debug_log.path}")

        if headless:
            assert url is not None
            setup_logging(verbose=verbose)
            asyncio.run(run_headless(url, toad_config, console=console))
        else:
            exported = asyncio.run(DashboardApp(toad_config, initial_url=url, console=console).run())
            if exported is not None:
                console.print(f"[green]Results exported to:[/green] {exported.csv_path}")
                console.print(f"[green]Results exported to:[/green] {exported.json_path}")

    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None

    except ToadError as e:
        console.print(f"[red]Crawl failed:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None

    except KeyboardInterrupt:
        console.print("\n[yellow]Crawl interrupted by user[/yellow]")
        raise typer.Exit(code=130) from None

    finally:
        if debug_log is not None:
            debug_log.close()


@app.command()
def validate(
    config_path: Path = typer.Argument(
        ...,
        help="Path to YAML config file to validate",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Validate a Mumbling Toad configuration file.

    Checks YAML syntax and validates all configuration fields against
    the schema. Displays detailed error messages if validation fails.
    """
    try:
        console.print(f"[cyan]Validating configuration:[/cyan] {config_path}")

        toad_config = load_config(config_path)

        console.print("[green][OK] Configuration is valid![/green]\n")

        options = toad_config.crawl
        table = Table(title="Configuration Summary")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Concurrency", str(options.max_concurrency))
        table.add_row("Request Delay", f"{options.request_delay_ms}ms")
        table.add_row("Max Pages", str(options.max_pages))
        table.add_row("Crawl Depth", str(options.max_depth))
        table.add_row("Respect robots.txt", "Yes" if options.respect_robots_txt else "No")
        table.add_row("User-Agent", options.user_agent)
        table.add_row("Export Directory", str(toad_config.export.directory))
        table.add_row("Auto Export", "Yes" if toad_config.export.auto_export else "No")

        console.print(table)

    except ConfigError as e:
        console.print("[red][FAIL] Configuration validation failed:[/red]\n")
        console.print(str(e))
        raise typer.Exit(code=1) from None


if __name__ == "__main__":
    app()
