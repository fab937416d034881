"""Remote collaborator boundary and the errors raised across it."""

from __future__ import annotations

from typing import Optional, Protocol

from .models import FetchedPage


class PageSource(Protocol):
    """Anything able to serve one page of records."""

    async def fetch_page(self, page_number: int, page_size: int) -> FetchedPage:
        """Return page ``page_number`` (1-based) holding up to ``page_size`` records."""
        ...


class PageSourceError(RuntimeError):
    """Raised by sources when a response cannot be turned into a page."""

    def __init__(self, message: str, *, page_number: int | None = None) -> None:
        super().__init__(message)
        self.page_number = page_number


class LoadFailed(RuntimeError):
    """A page load did not produce a window; the previous window stays installed."""

    def __init__(self, cause: BaseException, *, page_index: Optional[int] = None) -> None:
        where = f"page {page_index}" if page_index is not None else "page"
        super().__init__(f"Failed to load {where}: {cause}")
        self.cause = cause
        self.page_index = page_index


__all__ = ["LoadFailed", "PageSource", "PageSourceError"]
