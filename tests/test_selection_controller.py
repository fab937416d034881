from __future__ import annotations

import asyncio
from typing import Dict, List, Tuple

import pytest

from gallery_engine.paging import FetchedPage, LoadFailed, Record
from gallery_engine.remote import StaticPageSource, sample_records
from gallery_engine.selection import ControllerState, SelectionController, SelectionSet

PAGE_SIZE = 12


class GatedSource:
    """Holds each page until its gate is opened by the test."""

    def __init__(self, records: Tuple[Record, ...]) -> None:
        self.inner = StaticPageSource(records)
        self.gates: Dict[int, asyncio.Event] = {}

    def gate(self, page_number: int) -> asyncio.Event:
        return self.gates.setdefault(page_number, asyncio.Event())

    async def fetch_page(self, page_number: int, page_size: int) -> FetchedPage:
        await self.gate(page_number).wait()
        return await self.inner.fetch_page(page_number, page_size)


def make_controller(
    total: int = 30, *, fail_pages: Tuple[int, ...] = ()
) -> Tuple[SelectionController, StaticPageSource]:
    source = StaticPageSource(sample_records(total), fail_pages=fail_pages)
    return SelectionController(source, page_size=PAGE_SIZE), source


def go(controller: SelectionController, page_index: int) -> bool:
    return asyncio.run(controller.request_page(page_index))


def visible_ids(controller: SelectionController) -> List[int]:
    return [record.id for record in controller.get_visible_selection()]


def record_on_page(controller: SelectionController, record_id: int) -> Record:
    return next(r for r in controller.get_page_window().records if r.id == record_id)


def test_initial_state_is_idle_with_empty_window() -> None:
    controller, _ = make_controller()

    assert controller.state is ControllerState.IDLE
    assert controller.get_page_window().is_empty
    assert controller.get_visible_selection() == ()
    assert controller.get_loading_flag() is False
    assert controller.get_last_error() is None


def test_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        SelectionController(StaticPageSource(()), page_size=0)


def test_request_page_installs_window_and_becomes_ready() -> None:
    controller, source = make_controller()

    assert go(controller, 1) is True

    window = controller.get_page_window()
    assert controller.state is ControllerState.READY
    assert window.page_index == 1
    assert window.ids == tuple(range(13, 25))
    assert window.total_count == 30
    assert source.calls == [(2, PAGE_SIZE)]


def test_request_page_rejects_negative_index() -> None:
    controller, _ = make_controller()

    with pytest.raises(ValueError):
        go(controller, -1)


def test_loading_flag_is_set_while_fetch_is_outstanding() -> None:
    async def scenario() -> List[bool]:
        source = GatedSource(sample_records(30))
        controller = SelectionController(source, page_size=PAGE_SIZE)
        flags: List[bool] = []
        controller.bus.subscribe("loading.changed", lambda flag: flags.append(bool(flag)))
        task = asyncio.create_task(controller.request_page(0))
        await asyncio.sleep(0)
        assert controller.get_loading_flag() is True
        assert controller.state is ControllerState.LOADING
        source.gate(1).set()
        await task
        assert controller.get_loading_flag() is False
        return flags

    assert asyncio.run(scenario()) == [True, False]


def test_selection_restored_when_page_is_revisited() -> None:
    controller, _ = make_controller()
    go(controller, 0)

    controller.apply_selection_edit([record_on_page(controller, 7)])
    go(controller, 1)
    assert visible_ids(controller) == []

    go(controller, 0)
    assert visible_ids(controller) == [7]


def test_unchecking_on_revisit_clears_cross_page_membership() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 7)])
    go(controller, 1)
    go(controller, 0)

    controller.apply_selection_edit([])

    assert not controller.selection.contains(7)
    go(controller, 1)
    go(controller, 0)
    assert visible_ids(controller) == []


def test_edit_never_touches_ids_from_other_pages() -> None:
    selection = SelectionSet([13, 14, 30])
    source = StaticPageSource(sample_records(30))
    controller = SelectionController(source, page_size=PAGE_SIZE, selection=selection)
    go(controller, 0)

    controller.apply_selection_edit([record_on_page(controller, 1), record_on_page(controller, 2)])
    controller.apply_selection_edit([record_on_page(controller, 2)])

    assert selection.snapshot() == frozenset({2, 13, 14, 30})


def test_edit_ignores_records_not_on_current_page() -> None:
    controller, _ = make_controller()
    go(controller, 0)

    controller.apply_selection_edit([record_on_page(controller, 3), Record(id=25)])

    assert controller.selection.snapshot() == frozenset({3})


def test_reapplying_visible_selection_is_noop() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.selection.add(40)
    controller.apply_selection_edit(
        [record_on_page(controller, 2), record_on_page(controller, 9)]
    )
    before = controller.selection.snapshot()

    result = controller.apply_selection_edit(controller.get_visible_selection())

    assert controller.selection.snapshot() == before
    assert [record.id for record in result] == [2, 9]


def test_visible_selection_follows_window_order() -> None:
    controller, _ = make_controller()
    go(controller, 0)

    controller.apply_selection_edit(
        [record_on_page(controller, 10), record_on_page(controller, 4)]
    )

    assert visible_ids(controller) == [4, 10]


def test_toggle_flips_single_row() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 1)])

    assert controller.toggle(5) is True
    assert visible_ids(controller) == [1, 5]
    assert controller.toggle(1) is False
    assert visible_ids(controller) == [5]


def test_toggle_ignores_rows_off_page() -> None:
    controller, _ = make_controller()
    go(controller, 0)

    assert controller.toggle(20) is False
    assert controller.selection.size() == 0


def test_select_first_n_on_last_page() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 7)])
    go(controller, 2)

    chosen = controller.select_first_n(3)

    assert [record.id for record in chosen] == [25, 26, 27]
    assert visible_ids(controller) == [25, 26, 27]
    assert controller.selection.snapshot() == frozenset({7, 25, 26, 27})


@pytest.mark.parametrize("requested", [6, 7, 100])
def test_select_first_n_clamps_above_page_length(requested: int) -> None:
    controller, _ = make_controller()
    go(controller, 2)

    chosen = controller.select_first_n(requested)

    assert [record.id for record in chosen] == [25, 26, 27, 28, 29, 30]
    assert controller.selection.size() == 6


@pytest.mark.parametrize("requested", [0, -4])
def test_select_first_n_non_positive_selects_nothing(requested: int) -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 11)])

    chosen = controller.select_first_n(requested)

    assert chosen == ()
    assert visible_ids(controller) == [11]


def test_select_first_n_merges_with_existing_page_selection() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 10)])

    controller.select_first_n(2)

    assert visible_ids(controller) == [1, 2, 10]


def test_select_first_n_replace_unchecks_rest_of_page() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.selection.add(29)
    controller.apply_selection_edit([record_on_page(controller, 10)])

    controller.select_first_n(2, replace=True)

    assert visible_ids(controller) == [1, 2]
    assert controller.selection.snapshot() == frozenset({1, 2, 29})


def test_bulk_submit_event_carries_chosen_rows() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    events: List[object] = []
    controller.bus.subscribe("bulk.submitted", events.append)

    controller.select_first_n(4)

    assert len(events) == 1
    assert [record.id for record in events[0]] == [1, 2, 3, 4]  # type: ignore[union-attr]


def test_clear_selection_drops_every_page() -> None:
    controller, _ = make_controller()
    go(controller, 0)
    controller.select_first_n(3)
    go(controller, 1)
    controller.select_first_n(3)

    controller.clear_selection()

    assert controller.selection.size() == 0
    assert controller.get_visible_selection() == ()


def test_failed_load_keeps_previous_window_and_selection() -> None:
    controller, _ = make_controller(fail_pages=(2,))
    go(controller, 0)
    controller.select_first_n(2)
    published: List[object] = []
    controller.bus.subscribe("selection.changed", published.append)

    assert go(controller, 1) is False

    error = controller.get_last_error()
    assert isinstance(error, LoadFailed)
    assert error.page_index == 1
    assert controller.state is ControllerState.READY
    assert controller.get_page_window().page_index == 0
    assert controller.selection.snapshot() == frozenset({1, 2})
    assert visible_ids(controller) == [1, 2]
    assert published and [r.id for r in published[-1]] == [1, 2]  # type: ignore[union-attr]


def test_failed_first_load_returns_to_idle() -> None:
    controller, _ = make_controller(fail_pages=(1,))

    assert go(controller, 0) is False

    assert controller.state is ControllerState.IDLE
    assert controller.get_page_window().is_empty
    assert isinstance(controller.get_last_error(), LoadFailed)


def test_successful_load_clears_last_error() -> None:
    controller, source = make_controller(fail_pages=(2,))
    go(controller, 1)
    assert controller.get_last_error() is not None

    source.fail_pages.clear()
    go(controller, 1)

    assert controller.get_last_error() is None
    assert controller.get_page_window().page_index == 1


def test_stale_response_after_newer_success_is_discarded() -> None:
    async def scenario() -> Tuple[SelectionController, bool, bool]:
        source = GatedSource(sample_records(90))
        controller = SelectionController(source, page_size=PAGE_SIZE)
        older = asyncio.create_task(controller.request_page(2))
        await asyncio.sleep(0)
        newer = asyncio.create_task(controller.request_page(5))
        await asyncio.sleep(0)
        source.gate(6).set()
        newer_installed = await newer
        source.gate(3).set()
        older_installed = await older
        return controller, older_installed, newer_installed

    controller, older_installed, newer_installed = asyncio.run(scenario())

    assert newer_installed is True
    assert older_installed is False
    assert controller.get_page_window().page_index == 5
    assert controller.get_page_window().ids[0] == 61
    assert controller.state is ControllerState.READY


def test_stale_response_before_newer_resolves_is_discarded() -> None:
    async def scenario() -> List[str]:
        source = GatedSource(sample_records(90))
        controller = SelectionController(source, page_size=PAGE_SIZE)
        seen: List[str] = []
        controller.bus.subscribe("page.discarded", lambda index: seen.append(f"discard:{index}"))
        controller.bus.subscribe(
            "page.loaded", lambda window: seen.append(f"loaded:{window.page_index}")  # type: ignore[attr-defined]
        )
        older = asyncio.create_task(controller.request_page(2))
        await asyncio.sleep(0)
        newer = asyncio.create_task(controller.request_page(5))
        await asyncio.sleep(0)
        source.gate(3).set()
        assert await older is False
        assert controller.get_loading_flag() is True
        assert controller.get_page_window().is_empty
        source.gate(6).set()
        assert await newer is True
        return seen

    assert asyncio.run(scenario()) == ["discard:2", "loaded:5"]


def test_duplicate_request_for_inflight_page_is_ignored() -> None:
    async def scenario() -> Tuple[bool, bool]:
        source = GatedSource(sample_records(30))
        controller = SelectionController(source, page_size=PAGE_SIZE)
        first = asyncio.create_task(controller.request_page(1))
        await asyncio.sleep(0)
        duplicate = await controller.request_page(1)
        source.gate(2).set()
        return await first, duplicate

    first, duplicate = asyncio.run(scenario())

    assert first is True
    assert duplicate is False


def test_reload_refetches_installed_page() -> None:
    controller, source = make_controller()
    go(controller, 2)

    assert asyncio.run(controller.reload()) is True

    assert source.calls == [(3, PAGE_SIZE), (3, PAGE_SIZE)]


class FlakySource:
    """Raises an arbitrary error until ``healthy`` is set."""

    def __init__(self, records: Tuple[Record, ...]) -> None:
        self.inner = StaticPageSource(records)
        self.healthy = False

    async def fetch_page(self, page_number: int, page_size: int) -> FetchedPage:
        if not self.healthy:
            raise RuntimeError("backend exploded")
        return await self.inner.fetch_page(page_number, page_size)


def test_unexpected_source_error_becomes_load_failed_and_recovers() -> None:
    source = FlakySource(sample_records(30))
    controller = SelectionController(source, page_size=PAGE_SIZE)

    assert go(controller, 0) is False

    error = controller.get_last_error()
    assert isinstance(error, LoadFailed)
    assert isinstance(error.cause, RuntimeError)
    assert controller.state is ControllerState.IDLE
    assert controller.get_loading_flag() is False

    source.healthy = True
    assert asyncio.run(controller.reload()) is True
    assert controller.get_page_window().ids == tuple(range(1, 13))
    assert controller.get_last_error() is None


def test_cancelled_load_does_not_leave_controller_loading() -> None:
    async def scenario() -> SelectionController:
        source = GatedSource(sample_records(30))
        controller = SelectionController(source, page_size=PAGE_SIZE)
        source.gate(1).set()
        await controller.request_page(0)
        task = asyncio.create_task(controller.request_page(1))
        await asyncio.sleep(0)
        assert controller.get_loading_flag() is True
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert controller.get_loading_flag() is False
        assert controller.pending_page is None
        source.gate(2).set()
        assert await controller.request_page(1) is True
        return controller

    controller = asyncio.run(scenario())

    assert controller.state is ControllerState.READY
    assert controller.get_page_window().page_index == 1


def test_toggle_page_selects_and_clears_only_current_page() -> None:
    controller, _ = make_controller()
    go(controller, 1)
    controller.apply_selection_edit([record_on_page(controller, 20)])
    go(controller, 0)
    controller.apply_selection_edit([record_on_page(controller, 3)])

    assert controller.toggle_page() is True
    assert visible_ids(controller) == list(range(1, 13))
    assert controller.selection.contains(20)

    assert controller.toggle_page() is False
    assert visible_ids(controller) == []
    assert controller.selection.snapshot() == frozenset({20})

    go(controller, 1)
    assert visible_ids(controller) == [20]


def test_toggle_page_on_empty_window_is_noop() -> None:
    controller, _ = make_controller()

    assert controller.toggle_page() is False
    assert controller.selection.size() == 0


def test_selection_edits_are_recorded_as_events(monkeypatch: pytest.MonkeyPatch) -> None:
    recorded: List[str] = []
    monkeypatch.setattr(
        "gallery_engine.runtime.telemetry.record_event",
        lambda name, **_kwargs: recorded.append(name),
    )
    controller, _ = make_controller()
    go(controller, 0)

    controller.toggle(4)
    controller.select_first_n(2)

    assert "selection.edit" in recorded
    assert "selection.bulk" in recorded
