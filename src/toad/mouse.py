"""SGR mouse protocol decoding.

Terminals in SGR mouse mode (``CSI ? 1006 h``) report pointer activity as
``ESC [ < B ; X ; Y M`` for presses and ``... m`` for releases. This module
turns those byte sequences into PointerEvent values and back.

Button code bit layout:
- Bits 0-1: base button (0=left, 1=middle, 2=right)
- Bit 2 (4): shift
- Bit 3 (8): alt
- Bit 4 (16): ctrl
- Bit 6 (64): wheel (64=up, 65=down); the raw code is kept for wheel events
"""

import re
from dataclasses import dataclass, field
from typing import Literal

POINTER_PREFIX = b"\x1b[<"

SHIFT_BIT = 4
ALT_BIT = 8
CTRL_BIT = 16
WHEEL_BIT = 64

WHEEL_UP = 64
WHEEL_DOWN = 65

PointerEventType = Literal["press", "release", "wheel"]

_SGR_PATTERN = re.compile(rb"\x1b\[<(\d+);(\d+);(\d+)([Mm])")


@dataclass(frozen=True, slots=True)
class Modifiers:
    """Keyboard modifiers held during a pointer event."""

    shift: bool = False
    alt: bool = False
    ctrl: bool = False

    @classmethod
    def from_code(cls, code: int) -> "Modifiers":
        return cls(
            shift=bool(code & SHIFT_BIT),
            alt=bool(code & ALT_BIT),
            ctrl=bool(code & CTRL_BIT),
        )

    def to_code(self) -> int:
        code = 0
        if self.shift:
            code |= SHIFT_BIT
        if self.alt:
            code |= ALT_BIT
        if self.ctrl:
            code |= CTRL_BIT
        return code


@dataclass(frozen=True, slots=True)
class PointerEvent:
    """A decoded pointer event.

    Attributes:
        button: Base button id (0/1/2) for press/release, raw code for wheel events
        x: 1-based column
        y: 1-based row
        type: "press", "release" or "wheel"
        modifiers: Modifier keys held during the event
    """

    button: int
    x: int
    y: int
    type: PointerEventType
    modifiers: Modifiers = field(default_factory=Modifiers)

    @property
    def is_wheel(self) -> bool:
        return self.type == "wheel"

    @property
    def wheel_delta(self) -> int:
        """Scroll direction of a wheel notch: -1 up, +1 down, 0 for non-wheel events."""
        if not self.is_wheel:
            return 0
        return 1 if self.button & 1 else -1


def is_pointer_sequence(data: bytes) -> bool:
    """Check whether data starts with the SGR pointer prefix (ESC [ <)."""
    return len(data) >= 3 and data[:3] == POINTER_PREFIX


def decode_pointer_event(data: bytes) -> PointerEvent | None:
    """Parse the first SGR pointer sequence found in data.

    Args:
        data: Raw bytes read from the terminal

    Returns:
        PointerEvent, or None when no well-formed sequence is present
    """
    match = _SGR_PATTERN.search(data)
    if match is None:
        return None

    try:
        code = int(match.group(1))
        x = int(match.group(2))
        y = int(match.group(3))
    except (TypeError, ValueError):
        return None

    modifiers = Modifiers.from_code(code)

    if code & WHEEL_BIT:
        return PointerEvent(button=code, x=x, y=y, type="wheel", modifiers=modifiers)

    event_type: PointerEventType = "press" if match.group(4) == b"M" else "release"
    return PointerEvent(button=code & 3, x=x, y=y, type=event_type, modifiers=modifiers)


def encode_pointer_event(event: PointerEvent) -> bytes:
    """Encode a PointerEvent back into an SGR sequence.

    Wheel events keep their raw button code and are encoded as presses.
    """
    if event.is_wheel:
        code = event.button
    else:
        code = (event.button & 3) | event.modifiers.to_code()

    terminator = b"m" if event.type == "release" else b"M"
    return POINTER_PREFIX + f"{code};{event.x};{event.y}".encode("ascii") + terminator
