"""Page load protocol: fetch one page and wrap it in a fresh window."""

from __future__ import annotations

from gallery_engine.runtime import telemetry

from .models import PageWindow
from .source import LoadFailed, PageSource


async def load_window(source: PageSource, page_index: int, page_size: int) -> PageWindow:
    """Fetch ``page_index`` (0-based) from ``source`` and return a new window.

    Nothing is installed anywhere by this function, so a failure leaves the
    caller's current window exactly as it was.
    """

    if page_index < 0:
        raise ValueError(f"page_index must be >= 0, got {page_index}")
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    page_number = page_index + 1
    telemetry.record_event(
        "paging.fetch", level="debug", data={"page": page_number, "page_size": page_size}
    )
    # Loads may overlap, so no logger context is pushed for this span.
    with telemetry.span(name="paging::load_window", component="paging"):
        try:
            fetched = await source.fetch_page(page_number, page_size)
            records = tuple(fetched.records)
            total_count = int(fetched.total_count)
        except Exception as exc:
            raise LoadFailed(exc, page_index=page_index) from exc

        if len(records) > page_size:
            telemetry.record_event(
                "paging.truncated",
                level="warning",
                data={"page": page_number, "received": len(records)},
            )
            records = records[:page_size]

        try:
            return PageWindow(
                records=records,
                page_index=page_index,
                page_size=page_size,
                total_count=total_count,
            )
        except ValueError as exc:
            raise LoadFailed(exc, page_index=page_index) from exc


__all__ = ["load_window"]
