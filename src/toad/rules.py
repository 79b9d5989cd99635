"""Link discovery and crawl scope rules.

Same-host and depth scoping from the seed (CrawlScope) and anchor extraction
from HTML (extract_links).
"""

import logging
from typing import TYPE_CHECKING, cast
from urllib.parse import urlparse

from lxml import etree

from toad.extractor import parse_html
from toad.urls import canonical_link

if TYPE_CHECKING:
    from toad.types import LxmlElement

logger = logging.getLogger(__name__)


class CrawlScope:
    """Decides which discovered URLs are followed.

    Only URLs on the seed's hostname are followed, and only up to max_depth
    link hops away from the seed (the seed itself is depth 0).
    """

    def __init__(self, seed_url: str, max_depth: int):
        self.hostname = (urlparse(seed_url).hostname or "").lower()
        self.max_depth = max_depth
        self.depth_tracker: dict[str, int] = {}

    def should_follow(self, url: str, parent_url: str | None = None) -> bool:
        """Determine if URL should be crawled.

        Args:
            url: Canonical URL to evaluate
            parent_url: Page that linked to this URL (None for the seed)

        Returns:
            True if URL is on the seed host and within the depth limit

        Examples:
            >>> scope = CrawlScope("https://example.com/", max_depth=1)
            >>> scope.should_follow("https://example.com/", None)
            True
            >>> scope.should_follow("https://other.com/", "https://example.com/")
            False
        """
        if not self.is_same_host(url):
            return False
        return self.depth_of(url, parent_url) <= self.max_depth

    def is_same_host(self, url: str) -> bool:
        try:
            hostname = urlparse(url).hostname
        except ValueError:
            return False
        return bool(hostname) and hostname.lower() == self.hostname

    def depth_of(self, url: str, parent_url: str | None) -> int:
        """Calculate and track depth from the seed.

        The first recorded depth for a URL wins, so a page reached by a longer
        path later does not get pushed deeper.
        """
        if url in self.depth_tracker:
            return self.depth_tracker[url]

        if parent_url is None:
            depth = 0
        else:
            depth = self.depth_tracker.get(parent_url, 0) + 1

        self.depth_tracker[url] = depth
        return depth


def extract_links(html: str | bytes, base_url: str) -> set[str]:
    """Collect the http(s) targets of every ``<a href>`` in a document.

    Args:
        html: HTML or XHTML document
        base_url: Final URL of the page, used to resolve relative links

    Returns:
        Canonical absolute URLs (see ``toad.urls.canonical_link``)

    Examples:
        >>> html_content = '''
        ... <html>
        ...   <a href="/page1/">Page 1</a>
        ...   <a href="mailto:user@example.com">Email</a>
        ... </html>
        ... '''
        >>> sorted(extract_links(html_content, "http://example.com/"))
        ['http://example.com/page1']
    """
    if not html or not html.strip():
        return set()

    try:
        doc = parse_html(html)
    except (etree.ParserError, ValueError) as e:
        logger.debug(f"Failed to parse links from {base_url}: {e}")
        return set()

    links: set[str] = set()
    for item in doc.xpath("//a[@href]"):
        href = cast("LxmlElement", item).get("href")
        if not href or not href.strip():
            continue
        link = canonical_link(href, base_url)
        if link is not None:
            links.add(link)
    return links
