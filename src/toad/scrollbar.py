"""Scrollbar thumb geometry."""

from typing import NamedTuple


class ScrollbarGeometry(NamedTuple):
    """Thumb position within a scrollbar track.

    The thumb covers the half-open range [thumb_start, thumb_end) of track cells.
    """

    thumb_start: int
    thumb_end: int
    track_height: int

    def is_thumb(self, index: int) -> bool:
        return self.thumb_start <= index < self.thumb_end


def _round_half_up(value: float) -> int:
    # Python's round() uses banker's rounding; thumb placement rounds .5 upward
    return int(value + 0.5)


def compute_scrollbar(
    total_rows: int,
    visible_rows: int,
    scroll_offset: int,
    track_height: int,
) -> ScrollbarGeometry:
    """Compute thumb position and size for a vertical scrollbar.

    Args:
        total_rows: Number of rows in the data set
        visible_rows: Number of rows shown at once
        scroll_offset: Index of the first visible row
        track_height: Number of cells in the scrollbar track (>= 1)

    Returns:
        ScrollbarGeometry; the thumb spans the whole track when everything fits
    """
    if total_rows <= visible_rows:
        return ScrollbarGeometry(0, track_height, track_height)

    thumb_size = max(1, _round_half_up(visible_rows / total_rows * track_height))
    max_scroll = max(1, total_rows - visible_rows)
    thumb_start = _round_half_up(scroll_offset / max_scroll * (track_height - thumb_size))
    return ScrollbarGeometry(thumb_start, thumb_start + thumb_size, track_height)
