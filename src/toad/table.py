"""Adaptive results table: column layout, selection, scrolling and cell formatting.

TableViewport holds all navigation state for the results grid. It does not
draw anything itself; the dashboard asks it for the column layout, the visible
window of rows and the scrollbar geometry, and renders cells with format_cell().
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto

from rich.text import Text

from toad.keys import KeyPress
from toad.models import PageRecord
from toad.mouse import PointerEvent
from toad.scrollbar import ScrollbarGeometry, compute_scrollbar
from toad.urls import display_path

ELLIPSIS = "…"
CELL_PADDING = 2  # one space each side


class ColumnKind(Enum):
    TEXT = auto()
    STATUS = auto()
    INDEXABLE = auto()
    URL = auto()


@dataclass(frozen=True, slots=True)
class ColumnDefinition:
    """A table column.

    Attributes:
        key: PageRecord field shown in the column
        label: Header text
        min_width: Minimum width in cells, padding included
        priority: Lower is shown first; the lowest-priority column is mandatory
        kind: Formatting rule for the cells
    """

    key: str
    label: str
    min_width: int
    priority: int
    kind: ColumnKind = ColumnKind.TEXT


COLUMN_DEFINITIONS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition("url", "URL", 35, 1, ColumnKind.URL),
    ColumnDefinition("status_code", "Status", 8, 2, ColumnKind.STATUS),
    ColumnDefinition("title", "Title", 25, 3),
    ColumnDefinition("is_indexable", "Indexable", 11, 4, ColumnKind.INDEXABLE),
    ColumnDefinition("canonical", "Canonical", 20, 5),
    ColumnDefinition("response_time_ms", "Time (ms)", 11, 6),
    ColumnDefinition("h1", "H1", 20, 7),
    ColumnDefinition("word_count", "Words", 9, 8),
    ColumnDefinition("meta_description", "Meta Desc", 20, 9),
    ColumnDefinition("content_type", "Content Type", 14, 10),
)


@dataclass(frozen=True, slots=True)
class ColumnLayout:
    """Columns that fit the current width.

    Attributes:
        columns: (column, width) pairs left to right; the first is the primary column
        hidden_left: Columns are scrolled off to the left
        hidden_right: At least one column did not fit on the right
        show_scrollbar: Rows overflow the visible window
    """

    columns: tuple[tuple[ColumnDefinition, int], ...]
    hidden_left: bool
    hidden_right: bool
    show_scrollbar: bool


def truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    return value[: width - 1] + ELLIPSIS


def status_style(status_code: int) -> str:
    if 200 <= status_code < 300:
        return "green"
    if 300 <= status_code < 400:
        return "yellow"
    if status_code >= 400:
        return "red"
    return "white"


def format_cell(column: ColumnDefinition, record: PageRecord, width: int, selected: bool) -> Text:
    """Render one cell according to its column kind.

    Args:
        column: Column being rendered
        record: Row data
        width: Column width in cells, padding included
        selected: Whether the row is selected (selection colors override kind colors)
    """
    inner = max(1, width - CELL_PADDING)
    value = getattr(record, column.key)
    style = ""

    match column.kind:
        case ColumnKind.URL:
            content = truncate(display_path(str(value)), inner)
        case ColumnKind.STATUS:
            content = truncate(str(value), inner)
            style = status_style(int(value))
        case ColumnKind.INDEXABLE:
            content = "Yes" if value else "No"
            style = "green" if value else "red"
        case ColumnKind.TEXT:
            content = truncate("" if value is None else str(value), inner)

    if selected:
        style = "white on blue"

    return Text(f" {content}".ljust(width), style=style, no_wrap=True, overflow="crop")


class TableViewport:
    """Selection, scrolling, auto-follow and column visibility for the results grid.

    Example:
        >>> viewport = TableViewport()
        >>> viewport.resize(width=84, visible_rows=20)
        >>> viewport.extend_rows(batch)
        >>> viewport.layout().hidden_right
        True
    """

    def __init__(
        self,
        columns: Sequence[ColumnDefinition] = COLUMN_DEFINITIONS,
        scrollbar_width: int = 1,
        width: int = 70,
        visible_rows: int = 10,
    ) -> None:
        if not columns:
            raise ValueError("At least one column is required")
        ordered = sorted(columns, key=lambda c: c.priority)
        self.primary = ordered[0]
        self.secondary = tuple(ordered[1:])
        self.scrollbar_width = scrollbar_width
        self.width = width
        self.visible_rows = max(1, visible_rows)

        self.rows: list[PageRecord] = []
        self.selected_index = 0
        self.scroll_offset = 0
        self.column_offset = 0
        self.auto_follow = True

    # -- geometry ----------------------------------------------------------

    def resize(self, width: int, visible_rows: int) -> None:
        self.width = width
        self.visible_rows = max(1, visible_rows)
        self._track_selection()

    def layout(self) -> ColumnLayout:
        """Fit columns into the current width.

        The primary column always shows and absorbs leftover width. Other
        columns are added in priority order, starting at column_offset, until
        the next one would overflow; it and everything after it are hidden.
        """
        show_scrollbar = len(self.rows) > self.visible_rows
        content_width = self.width - (self.scrollbar_width if show_scrollbar else 0)
        available = max(0, content_width - self.primary.min_width)

        used = 0
        fitted: list[tuple[ColumnDefinition, int]] = []
        hidden_right = False
        for column in self.secondary[self.column_offset :]:
            if used + column.min_width <= available:
                fitted.append((column, column.min_width))
                used += column.min_width
            else:
                hidden_right = True
                break

        primary_width = max(self.primary.min_width, content_width - used)
        return ColumnLayout(
            columns=((self.primary, primary_width), *fitted),
            hidden_left=self.column_offset > 0,
            hidden_right=hidden_right,
            show_scrollbar=show_scrollbar,
        )

    def scrollbar(self) -> ScrollbarGeometry:
        return compute_scrollbar(
            len(self.rows), self.visible_rows, self.scroll_offset, self.visible_rows
        )

    def visible_window(self) -> list[PageRecord]:
        return self.rows[self.scroll_offset : self.scroll_offset + self.visible_rows]

    def range_label(self) -> str:
        total = len(self.rows)
        if not self.visible_window():
            return "No pages"
        last = min(total, self.scroll_offset + self.visible_rows)
        return f"{self.scroll_offset + 1}-{last} of {total}"

    def selected_record(self) -> PageRecord | None:
        if not self.rows:
            return None
        return self.rows[self.selected_index]

    # -- data --------------------------------------------------------------

    def extend_rows(self, batch: Sequence[PageRecord]) -> None:
        """Append a flushed batch in one step; follows the newest row when enabled."""
        if not batch:
            return
        self.rows = [*self.rows, *batch]
        if self.auto_follow:
            self.selected_index = len(self.rows) - 1
        self._track_selection()

    def clear(self) -> None:
        self.rows = []
        self.selected_index = 0
        self.scroll_offset = 0
        self.column_offset = 0
        self.auto_follow = True

    # -- navigation --------------------------------------------------------

    def _track_selection(self) -> None:
        if self.selected_index < self.scroll_offset:
            self.scroll_offset = self.selected_index
        elif self.selected_index >= self.scroll_offset + self.visible_rows:
            self.scroll_offset = self.selected_index - self.visible_rows + 1
        self.scroll_offset = max(0, self.scroll_offset)

    def move_up(self) -> None:
        self.auto_follow = False
        self.selected_index = max(0, self.selected_index - 1)
        self._track_selection()

    def move_down(self) -> None:
        if not self.rows:
            return
        self.selected_index = min(len(self.rows) - 1, self.selected_index + 1)
        if self.selected_index >= len(self.rows) - 1:
            self.auto_follow = True
        self._track_selection()

    def move_left(self) -> None:
        self.column_offset = max(0, self.column_offset - 1)

    def move_right(self) -> None:
        if self.layout().hidden_right:
            self.column_offset += 1

    def jump_top(self) -> None:
        self.auto_follow = False
        self.selected_index = 0
        self._track_selection()

    def jump_bottom(self) -> None:
        self.auto_follow = True
        self.selected_index = max(0, len(self.rows) - 1)
        self._track_selection()

    def follow(self) -> None:
        self.jump_bottom()

    def scroll_by(self, delta: int) -> None:
        """Move the selection by delta rows (mouse wheel)."""
        if delta < 0:
            self.auto_follow = False
        if not self.rows:
            return
        self.selected_index = max(0, min(len(self.rows) - 1, self.selected_index + delta))
        if self.selected_index >= len(self.rows) - 1:
            self.auto_follow = True
        self._track_selection()

    def handle_key(self, key: KeyPress) -> bool:
        """Apply a navigation key. Returns True if the key was consumed."""
        match key.key:
            case "up":
                self.move_up()
            case "down":
                self.move_down()
            case "left":
                self.move_left()
            case "right":
                self.move_right()
            case "g":
                self.jump_top()
            case "G":
                self.jump_bottom()
            case "f":
                self.follow()
            case _:
                return False
        return True

    def handle_pointer(self, event: PointerEvent) -> bool:
        if not event.is_wheel:
            return False
        self.scroll_by(event.wheel_delta)
        return True
