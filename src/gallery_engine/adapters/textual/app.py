"""Executable Textual app that hosts the selection engine."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional, Sequence

try:  # pragma: no cover - imported only when the app is run
    from textual import on
    from textual.app import App, ComposeResult
    from textual.widgets import DataTable, Footer, Header, Input, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use gallery_engine.adapters.textual.app"
    ) from exc

from gallery_engine.paging import PageSource, PageWindow, Record
from gallery_engine.remote import ArticPageSource, StaticPageSource, sample_records
from gallery_engine.runtime import telemetry
from gallery_engine.runtime.settings import GallerySettings
from gallery_engine.selection import SelectionController

from .controller import COLUMNS, TextualGalleryAdapter, TextualUIHooks, record_cells

CHECK_COLUMN = "check"
CHECKED = "[x]"
UNCHECKED = "[ ]"


def create_source(settings: GallerySettings, *, offline: bool, offline_count: int) -> PageSource:
    if offline:
        return StaticPageSource(sample_records(offline_count))
    return ArticPageSource(settings.api_url, timeout=settings.timeout, fields=settings.fields)


@dataclass
class UIState:
    row_ids: list[int] = field(default_factory=list)
    checked: set[int] = field(default_factory=set)
    status_text: str = ""


class GalleryApp(App[None]):
    """Artwork table with checkbox selection that survives paging."""

    TITLE = "Artwork Gallery"

    CSS = """
	Screen {
		layout: vertical;
	}

	#gallery-table {
		height: 1fr;
		border: round $accent;
	}

	#bulk-input {
		display: none;
		border: round $warning;
	}

	#bulk-input.visible {
		display: block;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("space", "toggle_row", "Toggle"),
        ("a", "toggle_page", "Select Page"),
        ("n", "next_page", "Next"),
        ("p", "previous_page", "Prev"),
        ("c", "custom_select", "Custom Select"),
        ("r", "reload", "Reload"),
        ("escape", "dismiss_bulk", "Close"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        settings: Optional[GallerySettings] = None,
        source: Optional[PageSource] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or GallerySettings.from_env()
        self.source = source or create_source(self.settings, offline=False, offline_count=0)
        self.controller: SelectionController | None = None
        self.adapter: TextualGalleryAdapter | None = None
        self._state = UIState()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        table: DataTable[str] = DataTable(id="gallery-table", cursor_type="row")
        table.add_column(" ", key=CHECK_COLUMN)
        for name, label in COLUMNS:
            table.add_column(label, key=name)
        yield table
        yield Input(
            placeholder="Select N rows (current page)",
            type="integer",
            id="bulk-input",
        )
        yield Static("", id="status-line")
        yield Footer()

    async def on_mount(self) -> None:
        self.controller = SelectionController(self.source, page_size=self.settings.page_size)
        hooks = TextualUIHooks(
            update_rows=self._update_rows,
            update_selection=self._update_selection,
            update_status=self._update_status,
            set_loading=self._set_loading,
            show_error=self._show_error,
            log=self._log_line,
        )
        self.adapter = TextualGalleryAdapter(self.controller, hooks)
        self.query_one(DataTable).focus()
        self.run_worker(self.adapter.open_page(0), group="paging")

    async def on_unmount(self) -> None:
        if isinstance(self.source, ArticPageSource):
            await self.source.aclose()

    # -- actions -----------------------------------------------------------

    def action_next_page(self) -> None:
        if self.adapter:
            self.run_worker(self.adapter.next_page(), group="paging")

    def action_previous_page(self) -> None:
        if self.adapter:
            self.run_worker(self.adapter.previous_page(), group="paging")

    def action_reload(self) -> None:
        if self.adapter:
            self.run_worker(self.adapter.reload(), group="paging")

    def action_toggle_row(self) -> None:
        if not self.adapter or not self._state.row_ids or not self.adapter.interactive:
            return
        table = self.query_one(DataTable)
        row = table.cursor_row
        if 0 <= row < len(self._state.row_ids):
            self.adapter.toggle_row(self._state.row_ids[row])

    def action_toggle_page(self) -> None:
        if self.adapter:
            self.adapter.toggle_page()

    def action_custom_select(self) -> None:
        if not self.adapter or not self.adapter.interactive:
            return
        bulk = self.query_one("#bulk-input", Input)
        bulk.value = ""
        bulk.add_class("visible")
        bulk.focus()

    def action_dismiss_bulk(self) -> None:
        self.query_one("#bulk-input", Input).remove_class("visible")
        self.query_one(DataTable).focus()

    @on(Input.Submitted, "#bulk-input")
    def on_bulk_submitted(self, event: Input.Submitted) -> None:
        if self.adapter:
            self.adapter.submit_bulk_select(event.value)
        self.action_dismiss_bulk()

    # -- hooks -------------------------------------------------------------

    def _update_rows(self, window: PageWindow) -> None:
        table = self.query_one(DataTable)
        table.clear()
        self._state.row_ids = list(window.ids)
        for record in window.records:
            mark = CHECKED if record.id in self._state.checked else UNCHECKED
            table.add_row(mark, *record_cells(record), key=str(record.id))

    def _update_selection(self, visible: Sequence[Record]) -> None:
        table = self.query_one(DataTable)
        self._state.checked = {record.id for record in visible}
        for record_id in self._state.row_ids:
            mark = CHECKED if record_id in self._state.checked else UNCHECKED
            table.update_cell(str(record_id), CHECK_COLUMN, mark)

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        self.query_one("#status-line", Static).update(status)

    def _set_loading(self, loading: bool) -> None:
        self.query_one(DataTable).loading = loading

    def _show_error(self, message: str) -> None:
        self.notify(message, title="Load failed", severity="error")

    def _log_line(self, line: str) -> None:
        telemetry.record_event("ui.trace", level="debug", data={"line": line})


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browse artworks with cross-page selection.")
    parser.add_argument("--api-url", default=None, help="Base URL of the artworks API")
    parser.add_argument("--page-size", type=int, default=None, help="Rows per page")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Serve generated records from memory instead of the API",
    )
    parser.add_argument(
        "--offline-count",
        type=int,
        default=30,
        help="Number of generated records in offline mode (default: 30)",
    )
    parser.add_argument(
        "--log-preset",
        choices=("development", "production"),
        default="production",
        help="Telemetry preset; 'production' writes to a log file (default)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    telemetry.configure(preset=args.log_preset)
    settings = GallerySettings.from_env().override(
        api_url=args.api_url, page_size=args.page_size, timeout=args.timeout
    )
    source = create_source(settings, offline=args.offline, offline_count=args.offline_count)
    GalleryApp(settings=settings, source=source).run()


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
