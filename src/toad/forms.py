"""Interactive forms: start URL prompt and crawl options editor."""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from pydantic import ValidationError

from toad.config import CrawlOptions
from toad.keys import KeyPress
from toad.urls import normalize_url, validate_url

EMPTY_URL_MESSAGE = "Please enter a URL"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class PromptInput:
    """Single-line URL entry with validation on submit."""

    def __init__(self, value: str = "") -> None:
        self.value = value
        self.error: str | None = None

    def handle_key(self, key: KeyPress) -> str | None:
        """Apply a key press.

        Returns:
            The normalized URL when Enter submits valid input, otherwise None
        """
        if key.key == "enter":
            return self.submit()

        if key.key in ("backspace", "delete"):
            self.value = self.value[:-1]
            self.error = None
            return None

        if key.is_printable:
            self.value += key.key
            self.error = None
        return None

    def submit(self) -> str | None:
        if not self.value.strip():
            self.error = EMPTY_URL_MESSAGE
            return None

        valid, message = validate_url(self.value)
        if not valid:
            self.error = message
            return None

        return normalize_url(self.value)


class FieldType(Enum):
    NUMBER = auto()
    BOOLEAN = auto()
    TEXT = auto()
    DISABLED = auto()


@dataclass(frozen=True, slots=True)
class OptionField:
    key: str
    label: str
    type: FieldType
    suffix: str = ""


OPTION_FIELDS: tuple[OptionField, ...] = (
    OptionField("max_concurrency", "Concurrency Limit", FieldType.NUMBER),
    OptionField("request_delay_ms", "Request Delay (ms)", FieldType.NUMBER),
    OptionField("max_pages", "Max Pages", FieldType.NUMBER),
    OptionField("max_depth", "Crawl Depth", FieldType.NUMBER),
    OptionField("respect_robots_txt", "Respect robots.txt", FieldType.BOOLEAN),
    OptionField("render_js", "JS Rendering", FieldType.DISABLED, " (coming soon)"),
    OptionField("user_agent", "User-Agent", FieldType.TEXT),
)


def parse_number(text: str) -> int:
    """Parse the leading integer of text; anything unparseable becomes 0."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class OptionsEditor:
    """Field-by-field editor over a copy of CrawlOptions.

    Up/Down move between fields (wrapping), Enter toggles booleans or starts
    editing, Enter/Escape while editing commits/cancels, and Escape outside an
    edit closes the editor.
    """

    def __init__(self, options: CrawlOptions, fields: tuple[OptionField, ...] = OPTION_FIELDS):
        self.original = options
        self.fields = fields
        self.values: dict[str, Any] = options.model_dump()
        self.selected_index = 0
        self.editing = False
        self.edit_buffer = ""
        self.closed = False

    @property
    def selected_field(self) -> OptionField:
        return self.fields[self.selected_index]

    def display_value(self, field: OptionField) -> str:
        value = self.values[field.key]
        if field.type is FieldType.BOOLEAN:
            return "Yes" if value else "No"
        if field.type is FieldType.DISABLED:
            return "No" + field.suffix
        return str(value)

    def handle_key(self, key: KeyPress) -> bool:
        """Apply a key press. Returns True once the editor has been closed."""
        if self.editing:
            self._handle_edit_key(key)
            return False

        match key.key:
            case "escape":
                self.closed = True
            case "up":
                self.selected_index = (self.selected_index - 1) % len(self.fields)
            case "down":
                self.selected_index = (self.selected_index + 1) % len(self.fields)
            case "enter":
                self._activate(self.selected_field)
        return self.closed

    def _activate(self, field: OptionField) -> None:
        if field.type is FieldType.DISABLED:
            return
        if field.type is FieldType.BOOLEAN:
            self.values[field.key] = not self.values[field.key]
            return
        self.editing = True
        self.edit_buffer = str(self.values[field.key])

    def _handle_edit_key(self, key: KeyPress) -> None:
        if key.key in ("enter", "escape"):
            if key.key == "enter":
                field = self.selected_field
                if field.type is FieldType.NUMBER:
                    self.values[field.key] = parse_number(self.edit_buffer)
                else:
                    self.values[field.key] = self.edit_buffer
            self.editing = False
            self.edit_buffer = ""
            return

        if key.key in ("backspace", "delete"):
            self.edit_buffer = self.edit_buffer[:-1]
            return

        if key.is_printable:
            self.edit_buffer += key.key

    def build(self) -> CrawlOptions:
        """Validate the edited values into new options.

        Raises:
            ValidationError: If any edited value is out of range
        """
        return CrawlOptions.model_validate(self.values)

    def result(self) -> tuple[CrawlOptions, str | None]:
        """Edited options, or the original options plus an error message if invalid."""
        try:
            return self.build(), None
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            return self.original, f"Invalid options: {problems}"
