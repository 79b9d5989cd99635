"""Tests for HTML SEO signal extraction."""

from toad.extractor import EMPTY_SIGNALS, count_words, extract_page_signals


def test_extracts_all_signals(sample_html: str) -> None:
    signals = extract_page_signals(sample_html)

    assert signals.title == "Example Page"
    assert signals.h1 == "Welcome to Example"
    assert signals.meta_description == "An example page for tests"
    assert signals.robots_meta == "index, follow"
    assert signals.canonical == "https://example.com/page"
    assert signals.word_count > 0


def test_missing_elements() -> None:
    signals = extract_page_signals("<html><body><p>just text</p></body></html>")

    assert signals.title == ""
    assert signals.h1 == ""
    assert signals.meta_description == ""
    assert signals.robots_meta is None
    assert signals.canonical is None
    assert signals.word_count == 2


def test_first_h1_wins() -> None:
    signals = extract_page_signals("<body><h1>First <em>one</em></h1><h1>Second</h1></body>")

    assert signals.h1 == "First one"


def test_meta_name_case_insensitive() -> None:
    html = '<head><meta name="Description" content="Hi"><meta name="ROBOTS" content="noindex"></head>'
    signals = extract_page_signals(html)

    assert signals.meta_description == "Hi"
    assert signals.robots_meta == "noindex"


def test_canonical_rel_token_list() -> None:
    html = '<head><link rel="alternate canonical" href=" /canon "></head><body></body>'

    assert extract_page_signals(html).canonical == "/canon"


def test_canonical_ignores_other_links() -> None:
    html = '<head><link rel="stylesheet" href="/style.css"></head><body></body>'

    assert extract_page_signals(html).canonical is None


def test_empty_canonical_href_is_absent() -> None:
    html = '<head><link rel="canonical" href=""></head><body></body>'

    assert extract_page_signals(html).canonical is None


def test_word_count_uses_body_only() -> None:
    html = "<html><head><title>one two three</title></head><body>four five</body></html>"

    assert extract_page_signals(html).word_count == 2


def test_bytes_input() -> None:
    signals = extract_page_signals(b"<html><head><title>Bytes</title></head><body>x</body></html>")

    assert signals.title == "Bytes"


XHTML_NOINDEX = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<html xmlns="http://www.w3.org/1999/xhtml"><head><title>Strict</title>'
    '<meta name="robots" content="noindex"/>'
    '<link rel="canonical" href="https://example.com/x"/></head>'
    "<body><h1>Hello</h1></body></html>"
)


def test_xhtml_with_xml_declaration_text() -> None:
    signals = extract_page_signals(XHTML_NOINDEX)

    assert signals.title == "Strict"
    assert signals.h1 == "Hello"
    assert signals.robots_meta == "noindex"
    assert signals.canonical == "https://example.com/x"


def test_xhtml_with_xml_declaration_bytes() -> None:
    signals = extract_page_signals(XHTML_NOINDEX.encode("utf-8"))

    assert signals.title == "Strict"
    assert signals.robots_meta == "noindex"


def test_xml_declaration_after_byte_order_mark() -> None:
    signals = extract_page_signals("\ufeff" + XHTML_NOINDEX)

    assert signals.robots_meta == "noindex"


def test_empty_document() -> None:
    assert extract_page_signals("") is EMPTY_SIGNALS
    assert extract_page_signals("   \n ") is EMPTY_SIGNALS


def test_count_words() -> None:
    assert count_words("") == 0
    assert count_words("  one\ttwo\nthree  ") == 3
