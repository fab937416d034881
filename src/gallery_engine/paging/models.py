"""Record and page-window snapshots."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class Record:
    """One remotely sourced artwork.

    Identity is the integer ``id``; the display attributes are snapshots of
    whatever the remote returned and take no part in equality or hashing.
    """

    id: int
    title: Optional[str] = field(default=None, compare=False)
    place_of_origin: Optional[str] = field(default=None, compare=False)
    artist_display: Optional[str] = field(default=None, compare=False)
    inscriptions: Optional[str] = field(default=None, compare=False)
    date_start: Optional[int] = field(default=None, compare=False)
    date_end: Optional[int] = field(default=None, compare=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Record":
        raw_id = payload.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise ValueError(f"Record payload has no integer id: {raw_id!r}")
        return cls(
            id=raw_id,
            title=_optional_text(payload.get("title")),
            place_of_origin=_optional_text(payload.get("place_of_origin")),
            artist_display=_optional_text(payload.get("artist_display")),
            inscriptions=_optional_text(payload.get("inscriptions")),
            date_start=_optional_int(payload.get("date_start")),
            date_end=_optional_int(payload.get("date_end")),
        )


@dataclass(frozen=True, slots=True)
class FetchedPage:
    """Raw result of a single ``PageSource.fetch_page`` call."""

    records: tuple[Record, ...]
    total_count: int


@dataclass(frozen=True, slots=True)
class PageWindow:
    """The currently materialized page.

    Windows are never edited in place; every page transition builds a new one.
    """

    records: tuple[Record, ...]
    page_index: int
    page_size: int
    total_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))
        if self.page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {self.page_index}")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.total_count < 0:
            raise ValueError(f"total_count must be >= 0, got {self.total_count}")
        if len(self.records) > self.page_size:
            raise ValueError(
                f"window holds {len(self.records)} records, page_size is {self.page_size}"
            )

    @classmethod
    def empty(cls, page_size: int) -> "PageWindow":
        return cls(records=(), page_index=0, page_size=page_size, total_count=0)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Record],
        *,
        page_index: int,
        page_size: int,
        total_count: int,
    ) -> "PageWindow":
        return cls(
            records=tuple(records),
            page_index=page_index,
            page_size=page_size,
            total_count=total_count,
        )

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(record.id for record in self.records)

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def first_row(self) -> int:
        return self.page_index * self.page_size

    @property
    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)


__all__ = ["FetchedPage", "PageWindow", "Record"]
