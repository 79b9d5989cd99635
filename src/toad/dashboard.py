"""Rich renderables for the dashboard screens.

Pure functions from application state to rich renderables; the app loop
decides what to show and hands the result to rich.live.Live.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from rich import box
from rich.align import Align
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from toad.forms import FieldType, OptionsEditor, PromptInput
from toad.models import CrawlStats, PageRecord
from toad.table import TableViewport, format_cell, status_style, truncate
from toad.utils import clock_time, format_elapsed

TABLE_WIDTH_RATIO = 0.7
TABLE_CHROME_ROWS = 5  # title, header, rule, spacer, footer
CONSOLE_HEIGHT = 8
STATUS_BAR_HEIGHT = 2
SPLASH_MIN_HEIGHT = 26

THUMB_CHAR = "█"
TRACK_CHAR = "░"

KEY_HINTS = "↑↓ Scroll | ←→ Columns | Enter Details | Space Pause | o Options | e Export | c Console | q Quit"

SPLASH_ART = (
    "                     \\  |  /                     ",
    "                      \\ | /                      ",
    "                     _ \\|/ _                     ",
    "                q   (       )   p                ",
    "                 \\  / .   . \\  /                 ",
    "                  \\/    v    \\/                  ",
    "                   \\  _____  /                   ",
    "                    \\/     \\/                    ",
)

TITLE_ART = "Mumbling Toad"


@dataclass(frozen=True, slots=True)
class ConsoleMessage:
    timestamp: float
    level: str  # "log", "warn" or "error"
    message: str


def table_width(terminal_width: int) -> int:
    return int(terminal_width * TABLE_WIDTH_RATIO)


def visible_rows_for(table_height: int) -> int:
    return max(1, table_height - TABLE_CHROME_ROWS)


def main_area_height(terminal_height: int, console_open: bool) -> int:
    height = terminal_height - STATUS_BAR_HEIGHT
    if console_open:
        height -= CONSOLE_HEIGHT + 2
    return max(TABLE_CHROME_ROWS + 1, height)


def render_results_table(viewport: TableViewport, focused: bool = True) -> RenderableType:
    """Header, visible rows with scrollbar gutter, and the position footer."""
    layout = viewport.layout()
    scrollbar = viewport.scrollbar()
    window = viewport.visible_window()

    title = Text("Crawled Pages", style="bold underline" if focused else "bold", justify="center")

    header = Text(no_wrap=True, overflow="crop")
    for column, width in layout.columns:
        header.append(f" {truncate(column.label, max(1, width - 2))}".ljust(width), style="bold")
    rule_width = sum(width for _, width in layout.columns)
    rule = Text("─" * rule_width, style="cyan" if focused else "grey50")

    lines: list[Text] = [title, header, rule]
    for offset, record in enumerate(window):
        index = viewport.scroll_offset + offset
        selected = index == viewport.selected_index
        row = Text(no_wrap=True, overflow="crop")
        for column, width in layout.columns:
            row.append_text(format_cell(column, record, width, selected))
        if layout.show_scrollbar:
            char = THUMB_CHAR if scrollbar.is_thumb(offset) else TRACK_CHAR
            row.append(char, style="grey50")
        lines.append(row)

    for _ in range(viewport.visible_rows - len(window)):
        lines.append(Text(""))

    position = Text(style="dim")
    position.append("◄ " if layout.hidden_left else "  ")
    position.append(viewport.range_label())
    position.append(" ►" if layout.hidden_right else "  ")

    follow = (
        Text("⬇ Following", style="cyan") if viewport.auto_follow else Text("f Follow", style="dim")
    )

    footer = Table.grid(expand=True)
    footer.add_column()
    footer.add_column(justify="right")
    footer.add_row(position, follow)

    return Group(*lines, Text(""), footer)


def _stat_row(grid: Table, label: str, value: str, style: str = "") -> None:
    grid.add_row(label, Text(value, style=style))


def render_sidebar(stats: CrawlStats, elapsed: float) -> Panel:
    """Crawl statistics panel.

    Args:
        stats: Latest stats snapshot
        elapsed: Active crawl seconds (pauses excluded)
    """
    pages_per_second = stats.pages_crawled / elapsed if elapsed > 0 else 0.0
    grid = Table.grid(expand=True, padding=(0, 1))
    grid.add_column()
    grid.add_column(justify="right")

    _stat_row(grid, "Pages Crawled:", str(stats.pages_crawled), "bold green")
    _stat_row(grid, "Pages in Queue:", str(stats.pages_in_queue), "bold yellow")
    _stat_row(grid, "Errors:", str(stats.errors), "bold red" if stats.errors else "bold green")
    grid.add_row("", "")
    _stat_row(grid, "Elapsed Time:", format_elapsed(elapsed))
    _stat_row(grid, "Pages/Second:", f"{pages_per_second:.1f}")
    _stat_row(grid, "Avg Response:", f"{round(stats.average_response_time_ms)}ms")
    grid.add_row("", "")
    _stat_row(grid, "Unique URLs:", str(stats.unique_urls_found))
    _stat_row(grid, "Indexable:", str(stats.indexable_count), "green")
    _stat_row(grid, "Non-Indexable:", str(stats.non_indexable_count), "yellow")

    status_codes = ", ".join(f"{code}: {count}" for code, count in sorted(stats.status_codes.items()))
    content_types = Table.grid(expand=True)
    content_types.add_column()
    content_types.add_column(justify="right")
    for mime, count in sorted(stats.content_types.items(), key=lambda item: item[1], reverse=True):
        content_types.add_row(mime, Text(str(count), style="cyan"))

    body = Group(
        grid,
        Text(""),
        Text("Status Codes:", style="dim"),
        Text(status_codes or "None", style="blue"),
        Text(""),
        Text("Content Types:", style="dim"),
        content_types,
    )
    return Panel(body, title="Crawl Statistics", border_style="white", box=box.SQUARE)


def _level_style(level: str) -> str:
    if level == "error":
        return "red"
    if level == "warn":
        return "yellow"
    return "white"


def render_console(messages: Sequence[ConsoleMessage], width: int, height: int = CONSOLE_HEIGHT) -> Panel:
    """Most recent log messages, newest last."""
    message_width = max(10, width - 4 - 8 - 6 - 2)
    lines: list[Text] = []
    for message in list(messages)[-max(1, height) :]:
        line = Text(no_wrap=True, overflow="ellipsis")
        line.append(clock_time(message.timestamp), style="dim")
        line.append(" ")
        line.append(message.level.ljust(5), style=_level_style(message.level))
        line.append(" ")
        line.append(truncate(message.message, message_width))
        lines.append(line)

    return Panel(
        Group(*lines),
        title="Console",
        title_align="left",
        subtitle=str(len(messages)),
        subtitle_align="right",
        border_style="grey50",
        box=box.SQUARE,
    )


def render_status_bar(
    *,
    paused: bool,
    finished: bool,
    export_message: str | None,
    error_message: str | None,
    message_count: int,
    console_open: bool,
    has_errors: bool,
) -> Text:
    """Key hints plus transient messages and console indicator."""
    bar = Text(no_wrap=True, overflow="ellipsis")
    if paused:
        bar.append(" PAUSED ", style="bold black on yellow")
        bar.append(" ")
    elif finished:
        bar.append(" DONE ", style="bold black on green")
        bar.append(" ")
    bar.append(KEY_HINTS, style="dim")

    if export_message:
        bar.append("  ")
        bar.append(export_message, style="green")
    if error_message:
        bar.append("  ")
        bar.append(error_message, style="red")

    if message_count:
        bar.append("  ")
        label = f"Console ({message_count})" if not console_open else f"Console open ({message_count})"
        bar.append(label, style="bold red" if has_errors else "dim")
    return bar


def render_prompt(prompt: PromptInput, terminal_height: int) -> RenderableType:
    """Splash art and URL entry box, centered."""
    parts: list[RenderableType] = []
    if terminal_height >= SPLASH_MIN_HEIGHT:
        parts.extend(Text(line, style="dim green") for line in SPLASH_ART)
        parts.append(Text(TITLE_ART, style="bold green", justify="center"))
        parts.append(Text(""))

    entry = Text()
    entry.append("URL: ", style="bold")
    entry.append(prompt.value)
    entry.append("_", style="blink")

    parts.append(Panel(entry, title="Enter a domain or URL to crawl", border_style="green", width=60))
    if prompt.error:
        parts.append(Text(prompt.error, style="red"))
    parts.append(Text("Press Enter to start", style="dim"))

    return Align.center(Group(*(Align.center(part) for part in parts)), vertical="middle")


def render_options(editor: OptionsEditor) -> Panel:
    grid = Table.grid(padding=(1, 1))
    grid.add_column(width=2, justify="right")
    grid.add_column(width=25)
    grid.add_column()

    for index, field in enumerate(editor.fields):
        selected = index == editor.selected_index
        marker = Text(">", style="cyan") if selected else Text("")
        label = Text(f"{field.label}:", style="bold cyan" if selected else "")
        if selected and editor.editing:
            value = Text(f"{editor.edit_buffer}_", style="white on blue")
        else:
            value = Text(
                editor.display_value(field),
                style="grey50" if field.type is FieldType.DISABLED else "white",
            )
        grid.add_row(marker, label, value)

    help_text = Text("↑↓ Select | Enter Edit/Toggle | Esc Save & Close", style="dim")
    return Panel(
        Group(grid, Text(""), help_text),
        title="Crawl Options",
        border_style="green",
        padding=(1, 2),
    )


def render_page_detail(record: PageRecord) -> Panel:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(width=20, style="bold")
    grid.add_column(overflow="fold")

    grid.add_row("URL", record.url)
    grid.add_row("Final URL", record.final_url)
    grid.add_row("Status", Text(str(record.status_code), style=status_style(record.status_code)))
    grid.add_row("Title", record.title or "(empty)")
    grid.add_row("H1", record.h1 or "(empty)")
    grid.add_row("Meta Description", record.meta_description or "(empty)")
    grid.add_row("Canonical", record.canonical or "(none)")
    grid.add_row(
        "Indexable",
        Text("Yes" if record.is_indexable else "No", style="green" if record.is_indexable else "red"),
    )
    if record.indexability_reason:
        grid.add_row("Reason", Text(record.indexability_reason, style="yellow"))
    grid.add_row("Word Count", str(record.word_count))
    grid.add_row("Response Time", f"{record.response_time_ms}ms")
    grid.add_row("Content Type", record.content_type)

    return Panel(
        Group(grid, Text(""), Text("Esc/Enter Close", style="dim")),
        title="Page Details",
        border_style="cyan",
        padding=(1, 2),
    )


def render_too_narrow(width: int, min_width: int) -> RenderableType:
    return Panel(
        Text(
            f"Terminal too narrow ({width} columns). "
            f"Please resize to at least {min_width} columns.",
            style="yellow",
        ),
        box=box.SIMPLE,
    )


def render_dashboard(
    viewport: TableViewport,
    stats: CrawlStats,
    elapsed: float,
    terminal_width: int,
    status_bar: Text,
    console: Panel | None = None,
) -> Layout:
    """Table and sidebar side by side, optional console, status bar at the bottom."""
    layout = Layout()
    sections = [Layout(name="main", ratio=1)]
    if console is not None:
        sections.append(Layout(console, name="console", size=CONSOLE_HEIGHT + 2))
    sections.append(Layout(status_bar, name="status", size=STATUS_BAR_HEIGHT))
    layout.split_column(*sections)

    layout["main"].split_row(
        Layout(render_results_table(viewport), name="table", size=table_width(terminal_width)),
        Layout(render_sidebar(stats, elapsed), name="sidebar"),
    )
    return layout
