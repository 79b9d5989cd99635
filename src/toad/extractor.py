"""SEO signal extraction from HTML documents."""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from lxml import etree
from lxml import html as lxml_html

if TYPE_CHECKING:
    from toad.types import LxmlDocument, LxmlElement

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageSignals:
    """On-page SEO fields of one HTML document.

    Missing elements yield empty strings; robots_meta and canonical are None
    when the page does not declare them.
    """

    title: str = ""
    h1: str = ""
    meta_description: str = ""
    word_count: int = 0
    robots_meta: str | None = None
    canonical: str | None = None


EMPTY_SIGNALS = PageSignals()

# lxml refuses str input that carries an encoding declaration
_XML_DECLARATION = re.compile(r"^[\s\ufeff]*<\?xml[^>]*\?>", re.IGNORECASE)


def parse_html(html: str | bytes) -> "LxmlDocument":
    """Parse an HTML or XHTML document into an lxml tree.

    A leading ``<?xml ...?>`` declaration is dropped from decoded text.

    Raises:
        etree.ParserError: If the document is empty after parsing
        ValueError: If lxml cannot parse the input
    """
    if isinstance(html, str):
        html = _XML_DECLARATION.sub("", html, count=1)
    return cast("LxmlDocument", lxml_html.document_fromstring(html))


def _first_text(doc: "LxmlDocument", xpath: str) -> str:
    for item in doc.xpath(xpath):
        if hasattr(item, "text_content"):
            return cast("LxmlElement", item).text_content().strip()
    return ""


def _meta_content(doc: "LxmlDocument", name: str) -> str | None:
    for item in doc.xpath("//meta[@name]"):
        element = cast("LxmlElement", item)
        if (element.get("name") or "").strip().lower() == name:
            return (element.get("content") or "").strip()
    return None


def _canonical_href(doc: "LxmlDocument") -> str | None:
    for item in doc.xpath("//link[@rel][@href]"):
        element = cast("LxmlElement", item)
        rel_tokens = (element.get("rel") or "").lower().split()
        if "canonical" in rel_tokens:
            href = (element.get("href") or "").strip()
            return href or None
    return None


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def extract_page_signals(html: str | bytes) -> PageSignals:
    """Extract title, first H1, meta description, word count, robots meta and canonical.

    Args:
        html: Raw HTML document (text or bytes)

    Returns:
        PageSignals; unparseable documents yield empty signals

    Examples:
        >>> signals = extract_page_signals("<title>Hi</title><body><h1>A b</h1></body>")
        >>> (signals.title, signals.h1, signals.word_count)
        ('Hi', 'A b', 2)
    """
    if not html or not html.strip():
        return EMPTY_SIGNALS

    try:
        doc = parse_html(html)
    except (etree.ParserError, ValueError) as e:
        logger.debug(f"Failed to parse HTML: {e}")
        return EMPTY_SIGNALS

    body = doc.xpath("//body")
    body_text = cast("LxmlElement", body[0]).text_content() if body else ""

    meta_description = _meta_content(doc, "description")

    return PageSignals(
        title=_first_text(doc, "//title"),
        h1=_first_text(doc, "//h1"),
        meta_description=meta_description or "",
        word_count=count_words(body_text),
        robots_meta=_meta_content(doc, "robots"),
        canonical=_canonical_href(doc),
    )
