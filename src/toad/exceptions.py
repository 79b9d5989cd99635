"""Custom exceptions for Mumbling Toad."""


class ToadError(Exception):
    """Base exception for all Mumbling Toad errors."""


class ConfigError(ToadError):
    """Raised when configuration is invalid or cannot be loaded."""


class InvalidURLError(ToadError, ValueError):
    """Raised when a crawl target cannot be normalized into an http(s) URL."""


class CrawlError(ToadError):
    """Raised when fetching a page fails."""


class ContentTypeRejectedError(CrawlError):
    """Raised when a response carries a content type the crawler does not accept.

    This reflects page content rather than a crawl defect, so the session engine
    turns it into a non-indexable page record instead of counting an error.
    """

    def __init__(
        self,
        url: str,
        content_type: str,
        status_code: int = 200,
        response_time_ms: int = 0,
        final_url: str | None = None,
    ) -> None:
        self.url = url
        self.content_type = content_type
        self.status_code = status_code
        self.response_time_ms = response_time_ms
        self.final_url = final_url or url
        super().__init__(f"Content-Type {content_type!r} is not allowed for {url}")


class ExportError(ToadError):
    """Raised when crawl results cannot be written to disk."""
