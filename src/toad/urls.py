"""Crawl target normalization and URL comparison helpers."""

import re
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from toad.exceptions import InvalidURLError

INVALID_URL_MESSAGE = "Please enter a valid domain or URL"

DEFAULT_PORTS = {"http": 80, "https": 443}

_HTTP_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_ANY_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_VALID_HOSTNAME = re.compile(r"^[a-zA-Z0-9.-]+$")

# Characters left untouched when re-quoting a path (already-encoded %XX included)
_PATH_SAFE = "/%:@!$&'()*+,;=~-._"


def _build_netloc(scheme: str, hostname: str, port: int | None, userinfo: str) -> str:
    netloc = hostname
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    return netloc


def normalize_url(raw: str) -> str:
    """Normalize user input into an absolute http(s) crawl target.

    Rules:
    - ``https://`` is prepended when the input has no scheme
    - inputs with an explicit non-http(s) scheme (``ftp://``, ``file://``) are rejected
    - the hostname must be non-empty and contain only ``[a-zA-Z0-9.-]``
    - a single trailing slash is stripped from non-root paths
    - query strings, ports and fragments are preserved

    Args:
        raw: Domain or URL as typed by the user

    Returns:
        Canonical absolute URL

    Raises:
        InvalidURLError: If the input cannot be turned into a valid http(s) URL

    Examples:
        >>> normalize_url("example.com/path/")
        'https://example.com/path'
        >>> normalize_url("example.com/")
        'https://example.com/'
    """
    url = raw.strip()
    if not url:
        raise InvalidURLError("Invalid URL format")

    if not _HTTP_SCHEME.match(url):
        if _ANY_SCHEME.match(url):
            raise InvalidURLError(f"Invalid URL format: unsupported scheme in {raw!r}")
        url = f"https://{url}"

    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL format: {raw!r}") from e

    hostname = parts.hostname or ""
    if not hostname.strip() or not _VALID_HOSTNAME.match(hostname):
        raise InvalidURLError(f"Invalid URL format: bad hostname in {raw!r}")

    scheme = parts.scheme.lower()
    userinfo = parts.netloc.rpartition("@")[0] if "@" in parts.netloc else ""

    path = quote(parts.path, safe=_PATH_SAFE) or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]

    netloc = _build_netloc(scheme, hostname.lower(), port, userinfo)
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def validate_url(raw: str) -> tuple[bool, str | None]:
    """Check whether raw input is an acceptable crawl target.

    Returns:
        (True, None) when valid, otherwise (False, user-facing error message)
    """
    try:
        normalize_url(raw)
    except InvalidURLError:
        return False, INVALID_URL_MESSAGE
    return True, None


def comparison_url(url: str, base: str | None = None) -> str:
    """Normalize a URL for equality comparison.

    Resolves against base, drops the fragment, lowercases scheme and host,
    removes default ports and strips a trailing slash unless the path is root.
    Unparseable input is returned unchanged.
    """
    try:
        return _canonical(urljoin(base, url) if base else url)
    except ValueError:
        return url


def canonical_link(href: str, base: str) -> str | None:
    """Resolve a discovered link into the form used for the visited set.

    Uses the same canonical form as comparison_url. Links that are not
    http(s) (``mailto:``, ``javascript:``, ``tel:``, ...) or cannot be parsed
    yield None.

    Examples:
        >>> canonical_link("../Up/#top", "https://Example.com/docs/page")
        'https://example.com/Up'
        >>> canonical_link("mailto:me@example.com", "https://example.com/") is None
        True
    """
    try:
        absolute = urljoin(base, href.strip())
        parts = urlsplit(absolute)
        if parts.scheme.lower() not in DEFAULT_PORTS or not parts.hostname:
            return None
        return _canonical(absolute)
    except ValueError:
        return None


def _canonical(url: str) -> str:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    hostname = (parts.hostname or "").lower()
    netloc = _build_netloc(scheme, hostname, parts.port, "") if hostname else parts.netloc

    path = parts.path or ("/" if netloc else "")
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def display_path(url: str) -> str:
    """Return the path, query and fragment portion of a URL for compact display."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    result = parts.path or "/"
    if parts.query:
        result += f"?{parts.query}"
    if parts.fragment:
        result += f"#{parts.fragment}"
    return result
