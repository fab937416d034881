"""Session-scoped set of selected record identifiers."""

from __future__ import annotations

from typing import Iterable, Iterator, Set


class SelectionSet:
    """Selected record ids, independent of whichever page is on screen.

    Membership only changes through ``add``/``remove``/``clear``; loading a
    page never touches it.
    """

    def __init__(self, ids: Iterable[int] = ()) -> None:
        self._ids: Set[int] = set(ids)

    def add(self, record_id: int) -> None:
        self._ids.add(record_id)

    def remove(self, record_id: int) -> None:
        self._ids.discard(record_id)

    def contains(self, record_id: int) -> bool:
        return record_id in self._ids

    def size(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()

    def snapshot(self) -> frozenset[int]:
        return frozenset(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ids))

    def __repr__(self) -> str:
        return f"SelectionSet({sorted(self._ids)!r})"


__all__ = ["SelectionSet"]
