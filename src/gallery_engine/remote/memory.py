"""In-memory page source used by the offline demo and the tests."""

from __future__ import annotations

import asyncio
from typing import Iterable, Sequence

from gallery_engine.paging import FetchedPage, PageSourceError, Record


class StaticPageSource:
    def __init__(
        self,
        records: Iterable[Record],
        *,
        delay: float = 0.0,
        fail_pages: Iterable[int] = (),
    ) -> None:
        self.records: Sequence[Record] = tuple(records)
        self.delay = delay
        self.fail_pages = set(fail_pages)
        self.calls: list[tuple[int, int]] = []

    async def fetch_page(self, page_number: int, page_size: int) -> FetchedPage:
        self.calls.append((page_number, page_size))
        if self.delay:
            await asyncio.sleep(self.delay)
        if page_number in self.fail_pages:
            raise PageSourceError("simulated failure", page_number=page_number)
        start = (page_number - 1) * page_size
        chunk = tuple(self.records[start : start + page_size])
        return FetchedPage(records=chunk, total_count=len(self.records))


def sample_records(count: int) -> tuple[Record, ...]:
    """Deterministic placeholder artworks with ids ``1..count``."""

    return tuple(
        Record(
            id=index,
            title=f"Untitled #{index}",
            place_of_origin="Chicago",
            artist_display=f"Artist {index % 7 + 1}",
            inscriptions=None,
            date_start=1800 + index,
            date_end=1805 + index,
        )
        for index in range(1, count + 1)
    )


__all__ = ["StaticPageSource", "sample_records"]
