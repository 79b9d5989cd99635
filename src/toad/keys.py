"""Keyboard input decoding.

Splits a chunk of raw terminal input into key presses and SGR pointer events.
A single read can carry several events (fast typing, wheel bursts, pastes).
"""

from dataclasses import dataclass

from toad.mouse import POINTER_PREFIX, PointerEvent, decode_pointer_event

ESC = 0x1B

# CSI / SS3 final bytes for cursor keys
_ARROWS = {
    ord("A"): "up",
    ord("B"): "down",
    ord("C"): "right",
    ord("D"): "left",
    ord("H"): "home",
    ord("F"): "end",
}

# CSI <n> ~ sequences
_TILDE_KEYS = {
    b"1": "home",
    b"3": "delete",
    b"4": "end",
    b"5": "pageup",
    b"6": "pagedown",
    b"7": "home",
    b"8": "end",
}

_CONTROL_KEYS = {
    0x09: "tab",
    0x0A: "enter",
    0x0D: "enter",
    0x7F: "backspace",
    0x08: "backspace",
}


@dataclass(frozen=True, slots=True)
class KeyPress:
    """A decoded key.

    ``key`` is a name for special keys ("up", "enter", "escape", "backspace", ...)
    and the character itself for printable input. Ctrl+letter arrives as the
    lowercase letter with ``ctrl=True``.
    """

    key: str
    ctrl: bool = False

    @property
    def is_printable(self) -> bool:
        return len(self.key) == 1 and not self.ctrl

    def matches(self, *keys: str) -> bool:
        return not self.ctrl and self.key in keys


InputEvent = KeyPress | PointerEvent


def _csi_end(data: bytes, start: int) -> int:
    """Index just past the final byte of a CSI sequence starting at ``start`` (after ESC [)."""
    i = start
    while i < len(data):
        if 0x40 <= data[i] <= 0x7E:
            return i + 1
        i += 1
    return len(data)


def _decode_escape(data: bytes, i: int) -> tuple[InputEvent | None, int]:
    """Decode an escape sequence at data[i] (which is ESC). Returns (event, next index)."""
    if data.startswith(POINTER_PREFIX, i):
        end = i + len(POINTER_PREFIX)
        while end < len(data) and data[end] not in b"Mm":
            end += 1
        end = min(end + 1, len(data))
        return decode_pointer_event(data[i:end]), end

    if i + 1 >= len(data):
        return KeyPress("escape"), i + 1

    introducer = data[i + 1]
    if introducer == ord("["):
        end = _csi_end(data, i + 2)
        final = data[end - 1]
        params = data[i + 2 : end - 1]
        if final in _ARROWS:
            return KeyPress(_ARROWS[final]), end
        if final == ord("~"):
            name = _TILDE_KEYS.get(params.split(b";")[0])
            return (KeyPress(name) if name else None), end
        return None, end

    if introducer == ord("O") and i + 2 < len(data):
        final = data[i + 2]
        name = _ARROWS.get(final)
        return (KeyPress(name) if name else None), i + 3

    if introducer == ESC:
        return KeyPress("escape"), i + 1

    # Alt+key arrives as ESC followed by the key; treat as a bare escape then the key
    return KeyPress("escape"), i + 1


def decode_input(data: bytes) -> list[InputEvent]:
    """Decode raw terminal bytes into key presses and pointer events.

    Unrecognized sequences are skipped; malformed input never raises.

    Examples:
        >>> decode_input(b"q")
        [KeyPress(key='q', ctrl=False)]
        >>> decode_input(b"\\x1b[A")
        [KeyPress(key='up', ctrl=False)]
    """
    events: list[InputEvent] = []
    text_start: int | None = None
    i = 0

    def flush_text(end: int) -> None:
        nonlocal text_start
        if text_start is None:
            return
        for char in data[text_start:end].decode("utf-8", errors="ignore"):
            events.append(KeyPress(char))
        text_start = None

    while i < len(data):
        byte = data[i]

        if byte == ESC:
            flush_text(i)
            event, i = _decode_escape(data, i)
            if event is not None:
                events.append(event)
            continue

        if byte in _CONTROL_KEYS:
            flush_text(i)
            events.append(KeyPress(_CONTROL_KEYS[byte]))
            i += 1
            continue

        if byte < 0x20:
            flush_text(i)
            events.append(KeyPress(chr(byte + 0x60), ctrl=True))
            i += 1
            continue

        if text_start is None:
            text_start = i
        i += 1

    flush_text(len(data))
    return events
