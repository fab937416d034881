"""Textual-facing adapter that wires SelectionController events into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from gallery_engine.paging import LoadFailed, PageWindow, Record
from gallery_engine.selection import SelectionController

COLUMNS: tuple[tuple[str, str], ...] = (
    ("title", "Title"),
    ("place_of_origin", "Place of Origin"),
    ("artist_display", "Artist"),
    ("inscriptions", "Inscriptions"),
    ("date_start", "Start Date"),
    ("date_end", "End Date"),
)


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


def format_cell(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def record_cells(record: Record) -> tuple[str, ...]:
    return tuple(format_cell(getattr(record, name)) for name, _ in COLUMNS)


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_rows: Callable[[PageWindow], None]
    update_selection: Callable[[Sequence[Record]], None] = _noop
    update_status: Callable[[str], None] = _noop
    set_loading: Callable[[bool], None] = _noop
    show_error: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


class TextualGalleryAdapter:
    """Bridges SelectionController + bus events to a Textual-friendly surface."""

    def __init__(self, controller: SelectionController, hooks: TextualUIHooks) -> None:
        self.controller = controller
        self.hooks = hooks
        self._subscribe_events()
        self.hooks.update_rows(controller.get_page_window())
        self.hooks.update_selection(controller.get_visible_selection())
        self.hooks.update_status(self.status_text())

    async def open_page(self, page_index: int) -> bool:
        self._log_state("page ->", target=page_index)
        installed = await self.controller.request_page(page_index)
        self._log_state("page <-", target=page_index, installed=installed)
        return installed

    async def next_page(self) -> bool:
        target = self._anchor_page() + 1
        page_count = self.controller.get_page_window().page_count
        if page_count and target >= page_count:
            self.hooks.update_status("Already on the last page")
            return False
        return await self.open_page(target)

    async def previous_page(self) -> bool:
        target = self._anchor_page() - 1
        if target < 0:
            self.hooks.update_status("Already on the first page")
            return False
        return await self.open_page(target)

    async def reload(self) -> bool:
        return await self.controller.reload()

    @property
    def interactive(self) -> bool:
        return not self.controller.get_loading_flag()

    def toggle_row(self, record_id: int) -> bool:
        if not self._accepting_input():
            return False
        selected = self.controller.toggle(record_id)
        self._log_state("toggle", record=record_id, selected=selected)
        return selected

    def toggle_page(self) -> bool:
        """Check every row on screen, or clear them all when all are checked."""

        if not self._accepting_input():
            return False
        all_selected = self.controller.toggle_page()
        self._log_state("toggle_page", all_selected=all_selected)
        return all_selected

    def submit_bulk_select(self, raw_value: str | int | None) -> tuple[Record, ...]:
        """Parse the stepper value and select that many leading rows."""

        if not self._accepting_input():
            return ()
        count = _parse_count(raw_value)
        chosen = self.controller.select_first_n(count)
        self._log_state("bulk", requested=raw_value, chosen=len(chosen))
        return chosen

    def status_text(self) -> str:
        window = self.controller.get_page_window()
        pages = window.page_count
        page_label = f"{window.page_index + 1}/{pages}" if pages else "-"
        parts = [
            f"Page {page_label}",
            f"{window.total_count} records",
            f"{self.controller.selection.size()} selected",
        ]
        if self.controller.get_loading_flag():
            parts.append("loading")
        return " | ".join(parts)

    def _accepting_input(self) -> bool:
        if self.interactive:
            return True
        self.hooks.update_status("Page is loading")
        return False

    def _anchor_page(self) -> int:
        pending = self.controller.pending_page
        if pending is not None:
            return pending
        return self.controller.get_page_window().page_index

    def _subscribe_events(self) -> None:
        bus = self.controller.bus
        for event in (
            "page.requested",
            "page.loaded",
            "page.failed",
            "page.discarded",
            "selection.changed",
            "bulk.submitted",
            "loading.changed",
        ):
            bus.subscribe(
                event, lambda payload, name=event: self._handle_event(name, payload)
            )

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name)
        if name == "page.loaded" and isinstance(payload, PageWindow):
            self.hooks.update_rows(payload)
        elif name == "selection.changed" and isinstance(payload, tuple):
            self.hooks.update_selection(payload)
        elif name == "loading.changed":
            self.hooks.set_loading(bool(payload))
        elif name == "page.failed" and isinstance(payload, LoadFailed):
            self.hooks.show_error(str(payload))
        elif name == "bulk.submitted" and isinstance(payload, tuple):
            self.hooks.update_status(f"Selected first {len(payload)} rows")
            return
        self.hooks.update_status(self.status_text())

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        window = self.controller.get_page_window()
        return {
            "state": self.controller.state.value,
            "page": window.page_index,
            "pending": self.controller.pending_page,
            "rows": len(window),
            "selected": self.controller.selection.size(),
        }


def _parse_count(raw_value: str | int | None) -> int:
    if raw_value is None:
        return 0
    if isinstance(raw_value, int):
        return raw_value
    try:
        return int(str(raw_value).strip())
    except ValueError:
        return 0


__all__ = [
    "COLUMNS",
    "TextualGalleryAdapter",
    "TextualUIHooks",
    "format_cell",
    "record_cells",
]
