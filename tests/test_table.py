"""Tests for the adaptive results table viewport."""

from collections.abc import Callable

import pytest

from toad.keys import KeyPress
from toad.models import PageRecord
from toad.mouse import WHEEL_DOWN, WHEEL_UP, PointerEvent
from toad.table import (
    COLUMN_DEFINITIONS,
    ColumnKind,
    TableViewport,
    format_cell,
    status_style,
    truncate,
)

NINE_COLUMNS = COLUMN_DEFINITIONS[:9]


def make_viewport(
    record_factory: Callable[..., PageRecord],
    rows: int = 0,
    width: int = 200,
    visible_rows: int = 10,
) -> TableViewport:
    viewport = TableViewport(width=width, visible_rows=visible_rows)
    if rows:
        viewport.extend_rows([record_factory(i) for i in range(rows)])
    return viewport


def wheel(button: int) -> PointerEvent:
    return PointerEvent(button=button, x=1, y=1, type="wheel")


# ============================================================================
# Column layout
# ============================================================================


class TestColumnLayout:
    def test_wide_terminal_shows_everything(self) -> None:
        layout = TableViewport(width=500).layout()

        assert len(layout.columns) == len(COLUMN_DEFINITIONS)
        assert not layout.hidden_left
        assert not layout.hidden_right

    def test_primary_column_absorbs_leftover(self) -> None:
        layout = TableViewport(width=100).layout()

        assert layout.columns[0][0].key == "url"
        assert sum(width for _, width in layout.columns) == 100

    def test_primary_always_shown_when_too_narrow(self) -> None:
        layout = TableViewport(width=20).layout()

        assert [column.key for column, _ in layout.columns] == ["url"]
        assert layout.columns[0][1] == 35
        assert layout.hidden_right

    def test_nine_columns_narrow_terminal(self) -> None:
        viewport = TableViewport(columns=NINE_COLUMNS, width=84)

        layout = viewport.layout()

        assert [c.key for c, _ in layout.columns] == ["url", "status_code", "title", "is_indexable"]
        assert layout.hidden_right
        assert not layout.hidden_left

    def test_right_arrow_advances_only_while_hidden(self) -> None:
        viewport = TableViewport(columns=NINE_COLUMNS, width=84)
        right = KeyPress("right")

        offsets = []
        for _ in range(8):
            viewport.handle_key(right)
            offsets.append(viewport.column_offset)

        assert offsets == [1, 2, 3, 4, 5, 5, 5, 5]
        layout = viewport.layout()
        assert not layout.hidden_right
        assert layout.hidden_left
        assert [c.key for c, _ in layout.columns] == ["url", "h1", "word_count", "meta_description"]

    def test_left_arrow_clamps_at_zero(self) -> None:
        viewport = TableViewport(columns=NINE_COLUMNS, width=84)
        viewport.handle_key(KeyPress("right"))

        viewport.handle_key(KeyPress("left"))
        viewport.handle_key(KeyPress("left"))

        assert viewport.column_offset == 0

    def test_scrollbar_gutter_reserved_when_rows_overflow(
        self, record_factory: Callable[..., PageRecord]
    ) -> None:
        viewport = make_viewport(record_factory, rows=30, width=100, visible_rows=10)

        layout = viewport.layout()

        assert layout.show_scrollbar
        assert sum(width for _, width in layout.columns) == 99


# ============================================================================
# Navigation and auto-follow
# ============================================================================


class TestNavigation:
    def test_auto_follow_selects_newest(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=25)

        assert viewport.selected_index == 24
        assert viewport.scroll_offset == 15
        assert viewport.auto_follow

    def test_moving_up_disables_follow(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=5)

        viewport.handle_key(KeyPress("up"))
        viewport.extend_rows([record_factory(99)])

        assert not viewport.auto_follow
        assert viewport.selected_index == 3

    def test_reaching_bottom_re_enables_follow(
        self, record_factory: Callable[..., PageRecord]
    ) -> None:
        viewport = make_viewport(record_factory, rows=5)
        viewport.handle_key(KeyPress("up"))

        viewport.handle_key(KeyPress("down"))

        assert viewport.auto_follow

    def test_up_down_clamped(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=3)

        viewport.handle_key(KeyPress("down"))
        assert viewport.selected_index == 2
        for _ in range(5):
            viewport.handle_key(KeyPress("up"))
        assert viewport.selected_index == 0

    def test_jump_top_and_bottom(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=40)

        viewport.handle_key(KeyPress("g"))
        assert (viewport.selected_index, viewport.scroll_offset) == (0, 0)
        assert not viewport.auto_follow

        viewport.handle_key(KeyPress("G"))
        assert viewport.selected_index == 39
        assert viewport.scroll_offset == 30
        assert viewport.auto_follow

    def test_follow_key(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=20)
        viewport.handle_key(KeyPress("g"))

        assert viewport.handle_key(KeyPress("f"))
        assert viewport.auto_follow
        assert viewport.selected_index == 19

    def test_window_tracks_selection(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=30, visible_rows=5)
        viewport.handle_key(KeyPress("g"))

        for _ in range(7):
            viewport.handle_key(KeyPress("down"))

        assert viewport.selected_index == 7
        assert viewport.scroll_offset == 3
        assert viewport.visible_window()[-1].url == "https://example.com/page-7"

    def test_unknown_key_not_consumed(self) -> None:
        assert not TableViewport().handle_key(KeyPress("x"))

    def test_empty_table(self) -> None:
        viewport = TableViewport()
        viewport.handle_key(KeyPress("down"))
        viewport.handle_key(KeyPress("G"))

        assert viewport.selected_index == 0
        assert viewport.selected_record() is None
        assert viewport.range_label() == "No pages"

    def test_range_label(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=25, visible_rows=10)

        assert viewport.range_label() == "16-25 of 25"

    def test_clear_resets(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=25)
        viewport.handle_key(KeyPress("g"))

        viewport.clear()

        assert viewport.rows == []
        assert viewport.auto_follow
        assert viewport.scroll_offset == 0


class TestWheel:
    def test_wheel_moves_selection(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=10)

        assert viewport.handle_pointer(wheel(WHEEL_UP))
        assert viewport.selected_index == 8
        assert not viewport.auto_follow

        viewport.handle_pointer(wheel(WHEEL_DOWN))
        assert viewport.selected_index == 9
        assert viewport.auto_follow

    def test_clicks_ignored(self, record_factory: Callable[..., PageRecord]) -> None:
        viewport = make_viewport(record_factory, rows=10)

        assert not viewport.handle_pointer(PointerEvent(button=0, x=3, y=3, type="press"))
        assert viewport.selected_index == 9


# ============================================================================
# Cell formatting
# ============================================================================


class TestFormatting:
    def test_truncate(self) -> None:
        assert truncate("hello", 10) == "hello"
        assert truncate("hello world", 6) == "hello…"
        assert truncate("hello", 0) == ""

    @pytest.mark.parametrize(
        ("code", "style"), [(200, "green"), (301, "yellow"), (404, "red"), (500, "red"), (100, "white")]
    )
    def test_status_style(self, code: int, style: str) -> None:
        assert status_style(code) == style

    def test_status_cell_colored(self, record_factory: Callable[..., PageRecord]) -> None:
        column = next(c for c in COLUMN_DEFINITIONS if c.kind is ColumnKind.STATUS)

        cell = format_cell(column, record_factory(status_code=404), 8, selected=False)

        assert cell.plain == " 404    "
        assert str(cell.style) == "red"

    def test_indexable_cell(self, record_factory: Callable[..., PageRecord]) -> None:
        column = next(c for c in COLUMN_DEFINITIONS if c.kind is ColumnKind.INDEXABLE)

        yes = format_cell(column, record_factory(is_indexable=True), 11, selected=False)
        no = format_cell(column, record_factory(is_indexable=False), 11, selected=False)

        assert yes.plain.strip() == "Yes"
        assert no.plain.strip() == "No"
        assert str(no.style) == "red"

    def test_url_cell_shows_path(self, record_factory: Callable[..., PageRecord]) -> None:
        column = COLUMN_DEFINITIONS[0]
        record = record_factory(url="https://example.com/docs/intro?x=1")

        cell = format_cell(column, record, 35, selected=False)

        assert cell.plain.strip() == "/docs/intro?x=1"
        assert len(cell.plain) == 35

    def test_text_cell_truncated(self, record_factory: Callable[..., PageRecord]) -> None:
        column = next(c for c in COLUMN_DEFINITIONS if c.key == "title")
        record = record_factory(title="A" * 100)

        cell = format_cell(column, record, 25, selected=False)

        assert cell.plain == " " + "A" * 22 + "… "

    def test_selected_row_highlighted(self, record_factory: Callable[..., PageRecord]) -> None:
        column = next(c for c in COLUMN_DEFINITIONS if c.kind is ColumnKind.STATUS)

        cell = format_cell(column, record_factory(), 8, selected=True)

        assert str(cell.style) == "white on blue"
