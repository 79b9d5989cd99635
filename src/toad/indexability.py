"""SEO indexability classification.

Rules are evaluated in a fixed order and the first match wins:

1. robots meta content contains "noindex"
2. X-Robots-Tag header contains "noindex"
3. declared canonical differs from the page's own final URL
4. HTTP status >= 400
5. otherwise indexable
"""

from collections.abc import Sequence
from dataclasses import dataclass

from toad.urls import comparison_url

REASON_NOINDEX_META = "noindex meta tag"
REASON_NOINDEX_HEADER = "X-Robots-Tag noindex"
REASON_CANONICAL_MISMATCH = "canonical mismatch"
REASON_NON_HTML = "non-HTML content"


def http_status_reason(status_code: int) -> str:
    return f"HTTP {status_code}"


@dataclass(frozen=True, slots=True)
class IndexabilitySignals:
    """Per-page inputs to the classifier.

    Attributes:
        final_url: URL after redirects
        status_code: HTTP status of the final response
        robots_meta: content of ``<meta name="robots">`` (None if absent)
        x_robots_tag: X-Robots-Tag header, a single value or all values of a repeated header
        canonical: href of ``<link rel="canonical">`` as declared (None if absent)
    """

    final_url: str
    status_code: int
    robots_meta: str | None = None
    x_robots_tag: str | Sequence[str] | None = None
    canonical: str | None = None


@dataclass(frozen=True, slots=True)
class Indexability:
    is_indexable: bool
    reason: str | None = None


INDEXABLE = Indexability(True, None)
NON_HTML = Indexability(False, REASON_NON_HTML)


def _join_header(value: str | Sequence[str] | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return ",".join(value)


def classify_indexability(signals: IndexabilitySignals) -> Indexability:
    """Derive indexability and a single reason from page signals.

    Args:
        signals: Extracted robots/canonical/status signals for one page

    Returns:
        Indexability with reason None when the page is indexable

    Examples:
        >>> classify_indexability(IndexabilitySignals(
        ...     final_url="https://example.com/a", status_code=404, robots_meta="noindex"))
        Indexability(is_indexable=False, reason='noindex meta tag')
    """
    if signals.robots_meta and "noindex" in signals.robots_meta.lower():
        return Indexability(False, REASON_NOINDEX_META)

    if "noindex" in _join_header(signals.x_robots_tag).lower():
        return Indexability(False, REASON_NOINDEX_HEADER)

    if signals.canonical:
        declared = comparison_url(signals.canonical, signals.final_url)
        if declared != comparison_url(signals.final_url):
            return Indexability(False, REASON_CANONICAL_MISMATCH)

    if signals.status_code >= 400:
        return Indexability(False, http_status_reason(signals.status_code))

    return INDEXABLE
