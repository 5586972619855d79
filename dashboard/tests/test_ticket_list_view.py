from __future__ import annotations

import asyncio
import csv

import pytest

from client.models import FilterCriteria, Ticket
from conftest import FakeBackend, FakeClock, make_activity, make_ticket
from core.config import AppConfig
from core.errors import NotMountedError, ValidationError
from services.cache import DetailCache
from services.list_fetch import FetchState
from views.ticket_list import TicketListView


def _backend() -> FakeBackend:
    tickets = [
        make_ticket(n, status="open" if n < 45 else "closed", gr_no=f"GRL-{n:05d}")
        for n in range(60)
    ]
    backend = FakeBackend(tickets)
    backend.activity["GRL-00001"] = make_activity(8)
    return backend


@pytest.mark.asyncio
async def test_mount_loads_first_page(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        state = view.state
        assert state.state is FetchState.SUCCESS
        assert state.page == 1
        assert state.total_count == 60
        assert state.total_pages == 6
        assert len(view.rows()) == 10
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_status_filter_resets_page_and_expansion(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        assert view.go_to_page(3)
        await view.settle()
        view.toggle_row(view.rows()[0].id)
        assert view.state.expanded_row_keys

        view.set_status("open")
        await view.settle()

        state = view.state
        assert state.page == 1
        assert state.total_count == 45
        assert state.total_pages == 5
        assert state.expanded_row_keys == frozenset()
        assert backend.ticket_calls[-1][:2] == (FilterCriteria(status="open"), 1)

        assert view.go_to_page(7) is False
        assert view.state.page == 1
        assert view.go_to_page(5) is True
        await view.settle()
        assert view.state.page == 5
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_search_is_debounced_before_requesting(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        calls = len(backend.ticket_calls)
        for text in ("T", "TK", "TKT-0001"):
            view.set_search(text)
        await view.settle()
        assert len(backend.ticket_calls) == calls

        await asyncio.sleep(0.1)
        await view.settle()
        assert len(backend.ticket_calls) == calls + 1
        assert backend.ticket_calls[-1][0].search == "TKT-0001"
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_expand_collapse_reuses_cached_timeline(app_config: AppConfig, clock: FakeClock) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config, clock=clock)
    await view.mount()
    try:
        assert view.toggle_row("t-1") is True
        timeline = view.timeline_for("t-1")
        assert timeline is not None and timeline.loading
        await view.queue.wait_idle()

        timeline = view.timeline_for("t-1")
        assert timeline is not None
        assert len(timeline.records) == 8
        assert timeline.empty_message is None

        assert view.toggle_row("t-1") is False
        clock.advance(200)
        assert view.toggle_row("t-1") is True
        assert view.timeline_for("t-1").loading is False
        assert len(view.timeline_for("t-1").records) == 8
        assert backend.activity_calls == ["GRL-00001"]
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_rows_sharing_a_shipment_share_one_fetch(app_config: AppConfig) -> None:
    tickets = [make_ticket(1, gr_no="GR-SAME"), make_ticket(2, gr_no="GR-SAME")]
    backend = FakeBackend(tickets)
    backend.gates["GR-SAME"] = asyncio.Event()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.toggle_row("t-1")
        view.toggle_row("t-2")
        backend.gates["GR-SAME"].set()
        await view.queue.wait_idle()
        assert backend.activity_calls == ["GR-SAME"]
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_failed_timeline_renders_fallback(app_config: AppConfig) -> None:
    backend = _backend()
    backend.fail_activity.add("GRL-00002")
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.toggle_row("t-2")
        await view.queue.wait_idle()
        timeline = view.timeline_for("t-2")
        assert timeline is not None
        assert timeline.records == []
        assert timeline.empty_message == "No timeline activities available"
        assert view.state.error is None
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_navigation_clears_expansion_but_keeps_cache(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.toggle_row("t-1")
        await view.queue.wait_idle()
        view.go_to_page(2)
        await view.settle()
        assert view.state.expanded_row_keys == frozenset()
        assert view.cache.get("GRL-00001") is not None
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_refresh_shrinking_total_clamps_and_reloads(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.go_to_page(6)
        await view.settle()
        view.toggle_row("t-50")

        backend.tickets = backend.tickets[:25]
        await view.fetcher.load(view.pipeline.effective, view.paginator.current_page, silent=True)
        await view.settle()

        assert view.state.page == 3
        assert view.state.expanded_row_keys == frozenset()
        assert backend.ticket_calls[-1][1] == 3
        assert [row.id for row in view.rows()] == [f"t-{n}" for n in range(20, 25)]
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_silent_refresh_keeps_expanded_rows(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.toggle_row("t-1")
        await view.fetcher.load(view.pipeline.effective, 1, silent=True)
        assert view.state.expanded_row_keys == frozenset({"t-1"})
        assert view.rows()[1].expanded is True
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_stat_shortcut_clears_other_filters(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.set_status("closed")
        view.set_delay(">72h")
        await view.settle()
        view.click_stat("color", "yellow")
        await view.settle()
        assert view.state.filters == FilterCriteria(color="yellow")
        cards = {(c.dimension, c.key): c.value for c in view.stat_cards()}
        assert cards[("status", "all")] == 60
        assert cards[("color", "yellow")] == 60
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_failed_load_then_retry(app_config: AppConfig) -> None:
    backend = _backend()
    backend.fail_tickets = True
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        assert view.state.state is FetchState.ERROR
        assert view.state.error == "Failed to load tickets."
        backend.fail_tickets = False
        assert await view.retry() is True
        assert view.state.error is None
        assert len(view.rows()) == 10
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_missing_fields_render_as_placeholder(app_config: AppConfig) -> None:
    bare = Ticket(id="x", ticket_number="TKT-1", title="Bare", status="open")
    view = TicketListView(FakeBackend([bare]), app_config)
    await view.mount()
    try:
        row = view.rows()[0]
        assert row.gr_no == "—"
        assert row.origin == "—"
        assert row.priority_color == "—"
        assert row.delay == "—"
        assert row.customer == "N/A"
        assert row.assigned == "Unassigned"
        assert row.has_timeline is False
        assert view.toggle_row("x") is True
        assert view.timeline_for("x") is None
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_unmount_clears_state_and_rejects_edits(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    view.toggle_row("t-1")
    await view.queue.wait_idle()
    await view.unmount()

    assert len(view.cache) == 0
    assert view.state.state is FetchState.UNMOUNTED
    with pytest.raises(NotMountedError):
        view.set_status("open")
    with pytest.raises(NotMountedError):
        view.go_to_page(2)


@pytest.mark.asyncio
async def test_unknown_row_is_rejected(app_config: AppConfig) -> None:
    view = TicketListView(_backend(), app_config)
    await view.mount()
    try:
        with pytest.raises(ValidationError):
            view.toggle_row("t-59")
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_export_writes_filtered_csv(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    try:
        view.set_status("closed")
        await view.settle()
        path = await view.export()
        with path.open(encoding="utf-8", newline="") as handle:
            rows = list(csv.reader(handle))
        assert rows[0][0] == "Ticket #"
        assert len(rows) == 16
        assert rows[1][2] == "closed"
        assert rows[1][4] == "GRL-00045"
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_export_with_no_results_is_rejected(app_config: AppConfig) -> None:
    view = TicketListView(FakeBackend([]), app_config)
    await view.mount()
    try:
        with pytest.raises(ValidationError):
            await view.export()
    finally:
        await view.unmount()


@pytest.mark.asyncio
async def test_injected_empty_cache_is_used_and_cleared(app_config: AppConfig, clock: FakeClock) -> None:
    shared: DetailCache = DetailCache(300, clock=clock)
    view = TicketListView(_backend(), app_config, cache=shared)
    assert view.cache is shared

    await view.mount()
    view.toggle_row("t-1")
    await view.queue.wait_idle()
    assert len(shared.get("GRL-00001") or []) == 8

    await view.unmount()
    assert len(shared) == 0


@pytest.mark.asyncio
async def test_remount_after_unmount_is_rejected(app_config: AppConfig) -> None:
    backend = _backend()
    view = TicketListView(backend, app_config)
    await view.mount()
    await view.unmount()
    calls = len(backend.ticket_calls)

    with pytest.raises(NotMountedError):
        await view.mount()
    assert view.mounted is False
    assert len(backend.ticket_calls) == calls
