"""Custom exception types for the Product Hunt scraper."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from producthunt_scraper.crawler import CrawlResult


class _ContextError(Exception):
    """Base class carrying the URL and page number a failure relates to."""

    default_message = "Scraper error."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        url: Optional[str] = None,
        page: Optional[int] = None,
    ) -> None:
        self.message = message or self.default_message
        self.url = url
        self.page = page
        super().__init__(self.message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.url:
            context_parts.append(f"url={self.url}")
        if self.page is not None:
            context_parts.append(f"page={self.page}")
        context = ", ".join(context_parts)
        return f"{self.message} ({context})" if context else self.message


class PageLoadError(_ContextError):
    """Raised when a listing page cannot be fetched."""

    default_message = "Failed to load page."
    retryable = True
    possibly_blocked = False

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        url: Optional[str] = None,
        page: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, url=url, page=page)

    def __str__(self) -> str:
        text = super().__str__()
        if self.status_code is not None:
            return f"{text} [status={self.status_code}]"
        return text


class BlockedPageError(PageLoadError):
    """Raised when a page body is too short to be a real listing."""

    default_message = "Page content too short - possible block."
    possibly_blocked = True


class EndOfPagination(_ContextError):
    """Raised by a fetcher when the requested page does not exist."""

    default_message = "No more pages."


class CrawlFailedError(Exception):
    """Raised when a crawl run is aborted by an unrecoverable fetch failure.

    ``result`` holds whatever was collected before the failure so callers can
    still keep the partial output.
    """

    def __init__(self, cause: PageLoadError, result: "CrawlResult") -> None:
        self.cause = cause
        self.result = result
        super().__init__(f"Crawl aborted: {cause}")


__all__ = [
    "BlockedPageError",
    "CrawlFailedError",
    "EndOfPagination",
    "PageLoadError",
]
