"""Type definitions and protocols for toad.

Protocols for lxml types which have incomplete type stubs.
"""

from typing import Any, Protocol


# Protocols for lxml type safety (lxml has incomplete type stubs)
class LxmlElement(Protocol):
    """Protocol for lxml Element objects."""

    def get(self, key: str) -> str | None:
        """Get attribute value."""
        ...

    def text_content(self) -> str:
        """Text of the element and all descendants."""
        ...


class LxmlDocument(Protocol):
    """Protocol for lxml document objects (HtmlElement)."""

    def xpath(self, expr: str) -> list[Any]:
        """Execute XPath query."""
        ...

