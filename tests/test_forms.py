"""Tests for the URL prompt and the crawl options editor."""

import pytest

from toad.config import CrawlOptions
from toad.forms import (
    EMPTY_URL_MESSAGE,
    OPTION_FIELDS,
    FieldType,
    OptionsEditor,
    PromptInput,
    parse_number,
)
from toad.keys import KeyPress
from toad.urls import INVALID_URL_MESSAGE


def type_text(target: PromptInput | OptionsEditor, text: str) -> None:
    for char in text:
        target.handle_key(KeyPress(char))


# ============================================================================
# PromptInput
# ============================================================================


class TestPromptInput:
    def test_valid_submit_returns_normalized(self) -> None:
        prompt = PromptInput()
        type_text(prompt, "example.com/docs/")

        assert prompt.handle_key(KeyPress("enter")) == "https://example.com/docs"
        assert prompt.error is None

    def test_empty_submit(self) -> None:
        prompt = PromptInput()

        assert prompt.handle_key(KeyPress("enter")) is None
        assert prompt.error == EMPTY_URL_MESSAGE

    def test_invalid_submit(self) -> None:
        prompt = PromptInput("bad host!")

        assert prompt.submit() is None
        assert prompt.error == INVALID_URL_MESSAGE

    def test_typing_clears_error(self) -> None:
        prompt = PromptInput()
        prompt.submit()

        prompt.handle_key(KeyPress("a"))

        assert prompt.error is None
        assert prompt.value == "a"

    def test_backspace(self) -> None:
        prompt = PromptInput("abc")

        prompt.handle_key(KeyPress("backspace"))
        prompt.handle_key(KeyPress("backspace"))

        assert prompt.value == "a"

    def test_control_keys_not_inserted(self) -> None:
        prompt = PromptInput()

        prompt.handle_key(KeyPress("up"))
        prompt.handle_key(KeyPress("u", ctrl=True))

        assert prompt.value == ""


# ============================================================================
# OptionsEditor
# ============================================================================


def select(editor: OptionsEditor, key: str) -> None:
    while editor.selected_field.key != key:
        editor.handle_key(KeyPress("down"))


class TestOptionsEditor:
    def test_fields(self) -> None:
        labels = [field.label for field in OPTION_FIELDS]

        assert labels == [
            "Concurrency Limit",
            "Request Delay (ms)",
            "Max Pages",
            "Crawl Depth",
            "Respect robots.txt",
            "JS Rendering",
            "User-Agent",
        ]

    def test_navigation_wraps(self) -> None:
        editor = OptionsEditor(CrawlOptions())

        editor.handle_key(KeyPress("up"))

        assert editor.selected_field.key == "user_agent"

    def test_edit_number(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        select(editor, "max_pages")

        editor.handle_key(KeyPress("enter"))
        assert editor.editing
        assert editor.edit_buffer == "10000"
        for _ in range(5):
            editor.handle_key(KeyPress("backspace"))
        type_text(editor, "250")
        editor.handle_key(KeyPress("enter"))
        closed = editor.handle_key(KeyPress("escape"))

        options, error = editor.result()
        assert closed
        assert error is None
        assert options.max_pages == 250

    def test_escape_while_editing_cancels(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        editor.handle_key(KeyPress("enter"))
        type_text(editor, "9")

        editor.handle_key(KeyPress("escape"))

        assert not editor.editing
        assert not editor.closed
        assert editor.values["max_concurrency"] == 5

    def test_toggle_boolean(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        select(editor, "respect_robots_txt")

        editor.handle_key(KeyPress("enter"))

        assert editor.display_value(editor.selected_field) == "No"
        assert editor.result()[0].respect_robots_txt is False

    def test_js_rendering_disabled(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        select(editor, "render_js")

        editor.handle_key(KeyPress("enter"))

        assert not editor.editing
        assert editor.values["render_js"] is False
        assert editor.selected_field.type is FieldType.DISABLED
        assert editor.display_value(editor.selected_field) == "No (coming soon)"

    def test_edit_text(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        select(editor, "user_agent")
        editor.handle_key(KeyPress("enter"))
        editor.edit_buffer = ""
        type_text(editor, "TestBot/2.0")
        editor.handle_key(KeyPress("enter"))

        assert editor.result()[0].user_agent == "TestBot/2.0"

    def test_unparseable_number_becomes_zero_then_invalid(self) -> None:
        original = CrawlOptions()
        editor = OptionsEditor(original)
        editor.handle_key(KeyPress("enter"))
        editor.edit_buffer = "lots"
        editor.handle_key(KeyPress("enter"))

        assert editor.values["max_concurrency"] == 0
        options, error = editor.result()
        assert options is original
        assert error is not None
        assert error.startswith("Invalid options")

    def test_zero_delay_is_valid(self) -> None:
        editor = OptionsEditor(CrawlOptions())
        select(editor, "request_delay_ms")
        editor.handle_key(KeyPress("enter"))
        editor.edit_buffer = "abc"
        editor.handle_key(KeyPress("enter"))

        options, error = editor.result()
        assert error is None
        assert options.request_delay_ms == 0


@pytest.mark.parametrize(
    ("text", "expected"),
    [("42", 42), ("  7 ", 7), ("12abc", 12), ("-3", -3), ("abc", 0), ("", 0)],
)
def test_parse_number(text: str, expected: int) -> None:
    assert parse_number(text) == expected
