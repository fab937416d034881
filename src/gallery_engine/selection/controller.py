"""Controller keeping the cross-page selection in sync with the page window."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from gallery_engine.paging import LoadFailed, PageSource, PageWindow, Record, load_window
from gallery_engine.runtime import telemetry

from .store import SelectionSet


class ControllerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class SelectionBus:
    """Tiny publish/subscribe hub used to notify the display layer."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, list[Callable[[object], None]]] = {}

    def subscribe(self, event: str, callback: Callable[[object], None]) -> None:
        self._subscribers.setdefault(event, []).append(callback)

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in self._subscribers.get(event, []):
            callback(payload)


@dataclass(slots=True)
class PendingLoad:
    page_index: int
    generation: int


class SelectionController:
    """Owns the page window, the load state machine, and selection edits.

    The visible selection is never stored: every read intersects the current
    window with the selection set, which is what restores checkmarks when a
    page is revisited.
    """

    def __init__(
        self,
        source: PageSource,
        *,
        page_size: int,
        selection: SelectionSet | None = None,
        bus: SelectionBus | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.source = source
        self.selection = selection if selection is not None else SelectionSet()
        self.bus = bus or SelectionBus()
        self._window = PageWindow.empty(page_size)
        self._state = ControllerState.IDLE
        self._pending: Optional[PendingLoad] = None
        self._generation = 0
        self._last_error: Optional[LoadFailed] = None
        self._has_loaded = False

    # -- accessors ---------------------------------------------------------

    @property
    def page_size(self) -> int:
        return self._window.page_size

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def pending_page(self) -> Optional[int]:
        return self._pending.page_index if self._pending else None

    @property
    def visible_selection(self) -> tuple[Record, ...]:
        return tuple(
            record for record in self._window.records if self.selection.contains(record.id)
        )

    def get_visible_selection(self) -> tuple[Record, ...]:
        return self.visible_selection

    def get_page_window(self) -> PageWindow:
        return self._window

    def get_loading_flag(self) -> bool:
        return self._state is ControllerState.LOADING

    def get_last_error(self) -> Optional[LoadFailed]:
        return self._last_error

    # -- page loading ------------------------------------------------------

    async def request_page(self, page_index: int) -> bool:
        """Load ``page_index`` and reconcile; return ``True`` if it was installed.

        The latest request wins: a response that arrives after a newer request
        has started is dropped, whether it succeeded or failed.
        """

        if page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {page_index}")
        if self._pending is not None and self._pending.page_index == page_index:
            telemetry.record_event(
                "page.duplicate", level="debug", data={"page_index": page_index}
            )
            return False

        self._generation += 1
        pending = PendingLoad(page_index=page_index, generation=self._generation)
        self._pending = pending
        self._set_state(ControllerState.LOADING)
        telemetry.record_event(
            "page.request",
            data={"page_index": page_index, "generation": pending.generation},
        )
        self.bus.emit("page.requested", page_index)

        try:
            window = await load_window(self.source, page_index, self.page_size)
        except LoadFailed as exc:
            if self._is_stale(pending):
                self._discard(pending)
                return False
            self._fail(exc)
            return False
        except BaseException:
            # Cancelled workers must not leave the controller stuck in LOADING.
            if not self._is_stale(pending):
                self._abandon(pending)
            raise

        if self._is_stale(pending):
            self._discard(pending)
            return False
        self._install(window)
        return True

    async def reload(self) -> bool:
        """Request the installed page again; ignored while a load is in flight."""

        if self._pending is not None:
            return False
        return await self.request_page(self._window.page_index)

    def _is_stale(self, pending: PendingLoad) -> bool:
        return pending.generation != self._generation

    def _discard(self, pending: PendingLoad) -> None:
        telemetry.record_event(
            "page.discarded",
            level="debug",
            data={
                "page_index": pending.page_index,
                "generation": pending.generation,
                "current": self._generation,
            },
        )
        self.bus.emit("page.discarded", pending.page_index)

    def _install(self, window: PageWindow) -> None:
        self._pending = None
        self._window = window
        self._has_loaded = True
        self._last_error = None
        self._set_state(ControllerState.READY)
        telemetry.record_event(
            "page.loaded",
            data={
                "page_index": window.page_index,
                "records": len(window),
                "total": window.total_count,
            },
        )
        self.bus.emit("page.loaded", window)
        self._publish()

    def _fail(self, error: LoadFailed) -> None:
        self._pending = None
        self._last_error = error
        self._set_state(ControllerState.READY if self._has_loaded else ControllerState.IDLE)
        telemetry.record_event(
            "page.failed",
            level="error",
            data={"page_index": error.page_index, "cause": repr(error.cause)},
        )
        self.bus.emit("page.failed", error)
        self._publish()

    def _abandon(self, pending: PendingLoad) -> None:
        self._pending = None
        self._set_state(ControllerState.READY if self._has_loaded else ControllerState.IDLE)
        telemetry.record_event(
            "page.abandoned",
            level="warning",
            data={"page_index": pending.page_index, "generation": pending.generation},
        )
        self._publish()

    def _set_state(self, state: ControllerState) -> None:
        was_loading = self.get_loading_flag()
        self._state = state
        if was_loading != self.get_loading_flag():
            self.bus.emit("loading.changed", self.get_loading_flag())

    # -- selection edits ---------------------------------------------------

    def apply_selection_edit(self, new_visible_selection: Iterable[Record]) -> tuple[Record, ...]:
        """Make ``new_visible_selection`` the checked rows of the current page.

        Current-page ids missing from the input are removed first, then the
        input ids are added. Ids that are not on the current page are left
        alone in both phases, so selections made on other pages survive.
        """

        wanted = tuple(new_visible_selection)
        wanted_ids = {record.id for record in wanted}
        page_ids = self._window.ids
        with telemetry.span(
            name="selection::edit",
            component="selection",
            metadata={"page_index": self._window.page_index, "wanted": len(wanted)},
        ):
            for record_id in page_ids:
                if record_id not in wanted_ids:
                    self.selection.remove(record_id)
            on_page = set(page_ids)
            for record in wanted:
                if record.id in on_page:
                    self.selection.add(record.id)
        telemetry.record_event(
            "selection.edit",
            data={"page_index": self._window.page_index, "selected": len(wanted_ids & set(page_ids))},
        )
        ignored = len(wanted_ids - set(page_ids))
        if ignored:
            telemetry.record_event(
                "selection.edit_ignored", level="warning", data={"ids": ignored}
            )
        return self._publish()

    def toggle(self, record_id: int) -> bool:
        """Flip one row of the current page; return whether it is now selected."""

        target = next((r for r in self._window.records if r.id == record_id), None)
        if target is None:
            return False
        current = self.visible_selection
        if self.selection.contains(record_id):
            updated = tuple(record for record in current if record.id != record_id)
        else:
            updated = current + (target,)
        self.apply_selection_edit(updated)
        return self.selection.contains(record_id)

    def toggle_page(self) -> bool:
        """Check every row of the current page, or uncheck them all when all are checked.

        Returns whether the page ends up fully selected. Ids from other pages
        are untouched either way.
        """

        records = self._window.records
        if not records:
            return False
        if all(self.selection.contains(record.id) for record in records):
            self.apply_selection_edit(())
            return False
        self.apply_selection_edit(records)
        return True

    def select_first_n(self, n: int, *, replace: bool = False) -> tuple[Record, ...]:
        """Add the first ``n`` rows of the current page to the selection.

        ``n`` is clamped to ``[0, rows on page]``. By default other rows of
        the page keep their state; ``replace=True`` unchecks them.
        """

        records = self._window.records
        count = max(0, min(int(n), len(records)))
        chosen = records[:count]
        chosen_ids = {record.id for record in chosen}
        with telemetry.span(
            name="selection::bulk",
            component="selection",
            metadata={"requested": n, "count": count, "replace": replace},
        ):
            if replace:
                for record in records[count:]:
                    self.selection.remove(record.id)
            for record_id in chosen_ids:
                self.selection.add(record_id)
        telemetry.record_event(
            "selection.bulk",
            data={"requested": n, "count": count, "replace": replace},
        )
        self._publish()
        self.bus.emit("bulk.submitted", chosen)
        return chosen

    def clear_selection(self) -> tuple[Record, ...]:
        """Drop every selected id, including ids from other pages."""

        telemetry.record_event("selection.clear", data={"size": self.selection.size()})
        self.selection.clear()
        return self._publish()

    def _publish(self) -> tuple[Record, ...]:
        visible = self.visible_selection
        self.bus.emit("selection.changed", visible)
        return visible


__all__ = [
    "ControllerState",
    "PendingLoad",
    "SelectionBus",
    "SelectionController",
]
