from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from client.models import ActivityRecord, FilterCriteria, PageResult, Ticket
from core.config import AppConfig
from core.errors import NotMountedError, ValidationError
from services.cache import DetailCache
from services.detail_queue import DetailFetchQueue
from services.export_service import ExportService
from services.filters import FilterPipeline
from services.list_fetch import FetchState, ListFetchController
from services.pagination import Paginator
from services.stats import StatCard, StatsShortcuts
from utils.constants import EMPTY_TIMELINE_MESSAGE, PLACEHOLDER, TYPE_LABELS
from utils.time import Clock, format_date, format_delay, monotonic

LOGGER = logging.getLogger(__name__)


class TicketBackend(Protocol):
    async def fetch_tickets(self, criteria: FilterCriteria, page: int, limit: int) -> PageResult: ...
    async def fetch_activity(self, gr_no: str) -> list[ActivityRecord]: ...
    async def export_tickets(self, criteria: FilterCriteria, total: int) -> list[Ticket]: ...


@dataclass(slots=True, frozen=True)
class ViewState:
    filters: FilterCriteria
    page: int
    total_pages: int
    total_count: int
    expanded_row_keys: frozenset[str]
    state: FetchState
    loading: bool
    blocking: bool
    background_refreshing: bool
    error: str | None
    refresh_error: str | None


@dataclass(slots=True, frozen=True)
class TicketRow:
    id: str
    ticket_number: str
    title: str
    description: str
    gr_no: str
    customer: str
    type_label: str
    priority_color: str
    status: str
    assigned: str
    origin: str
    destination: str
    delay: str
    created: str
    expanded: bool
    has_timeline: bool


@dataclass(slots=True, frozen=True)
class TimelineView:
    gr_no: str
    loading: bool
    records: list[ActivityRecord] = field(default_factory=list)

    @property
    def empty_message(self) -> str | None:
        if self.loading or self.records:
            return None
        return EMPTY_TIMELINE_MESSAGE


def _text(value: str | None, fallback: str = PLACEHOLDER) -> str:
    return value if value else fallback


def _to_row(ticket: Ticket, expanded: bool) -> TicketRow:
    return TicketRow(
        id=ticket.id,
        ticket_number=_text(ticket.ticket_number),
        title=_text(ticket.title),
        description=ticket.description or "",
        gr_no=_text(ticket.gr_no),
        customer=_text(ticket.customer_name, "N/A"),
        type_label=TYPE_LABELS.get(ticket.type or "", _text(ticket.type)),
        priority_color=_text(ticket.priority_color),
        status=_text(ticket.status),
        assigned=_text(ticket.assigned_agent, "Unassigned"),
        origin=_text(ticket.origin),
        destination=_text(ticket.destination),
        delay=format_delay(ticket.delay_duration_minutes, PLACEHOLDER),
        created=format_date(ticket.created_at, PLACEHOLDER),
        expanded=expanded,
        has_timeline=ticket.gr_no is not None,
    )


class TicketListView:
    """The ticket table: filters, one server page, stats and per-row timelines.

    One instance lives from ``mount`` to ``unmount``. The detail cache is
    owned by the view (or injected) and cleared on unmount.
    """

    def __init__(
        self,
        backend: TicketBackend,
        config: AppConfig,
        *,
        cache: DetailCache[list[ActivityRecord]] | None = None,
        clock: Clock = monotonic,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.backend = backend
        self.config = config
        self.on_change = on_change
        self.cache = cache if cache is not None else DetailCache(
            config.detail.ttl_seconds,
            max_entries=config.detail.max_entries,
            clock=clock,
        )
        self.queue = DetailFetchQueue(
            backend.fetch_activity,
            self.cache,
            max_concurrency=config.detail.max_concurrency,
            on_update=self._on_timeline_update,
        )
        self.pipeline = FilterPipeline(
            self._on_filters_committed,
            debounce_seconds=config.list_view.debounce_milliseconds / 1000,
        )
        self.paginator = Paginator(config.list_view.page_size, on_navigate=self._on_navigate)
        self.fetcher = ListFetchController(
            backend.fetch_tickets,
            page_size=config.list_view.page_size,
            refresh_interval_seconds=config.list_view.refresh_interval_seconds,
            on_result=self._on_result,
        )
        self.stats = StatsShortcuts(self.pipeline)
        self.exporter = ExportService(config.export, backend.export_tickets)
        self.expanded: set[str] = set()
        self.mounted = False
        self.unmounted = False
        self._tasks: set[asyncio.Task[Any]] = set()

    # lifecycle

    async def mount(self) -> None:
        if self.unmounted:
            raise NotMountedError(user_message="This ticket list was unmounted; open a new one.")
        if self.mounted:
            return
        self.mounted = True
        await self.fetcher.load(self.pipeline.effective, self.paginator.current_page)
        self.fetcher.start_background_refresh(self._current_request)
        LOGGER.info("Ticket list mounted")

    async def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.unmounted = True
        self.pipeline.close()
        await self.fetcher.close()
        await self.queue.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.cache.clear()
        self.expanded.clear()
        LOGGER.info("Ticket list unmounted")

    def _require_mounted(self) -> None:
        if not self.mounted:
            raise NotMountedError()

    def _current_request(self) -> tuple[FilterCriteria, int]:
        return (self.pipeline.effective, self.paginator.current_page)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        """Wait for list loads started by filter commits or navigation."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # listeners

    def _on_filters_committed(self, criteria: FilterCriteria) -> None:
        self.paginator.reset()
        self.expanded.clear()
        self._spawn(self.fetcher.load(criteria, 1))
        self._changed()

    def _on_navigate(self, page: int) -> None:
        self.expanded.clear()
        self._spawn(self.fetcher.load(self.pipeline.effective, page))
        self._changed()

    def _on_result(self, result: PageResult, silent: bool) -> None:
        if self.paginator.update_total(result.total_count):
            LOGGER.info(
                "Clamped page to %s after total changed to %s",
                self.paginator.current_page,
                result.total_count,
            )
            self.expanded.clear()
            self._spawn(self.fetcher.load(self.pipeline.effective, self.paginator.current_page, silent=silent))
        self._changed()

    def _on_timeline_update(self, gr_no: str) -> None:
        self._changed()

    # filter edits

    def set_search(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_search(value)

    def set_origin(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_origin(value)

    def set_destination(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_destination(value)

    def set_status(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_status(value)

    def set_color(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_color(value)

    def set_delay(self, value: str) -> None:
        self._require_mounted()
        self.pipeline.set_delay(value)

    def apply_filters(self, **edits: str) -> None:
        self._require_mounted()
        self.pipeline.apply(**edits)

    def click_stat(self, dimension: str, key: str) -> None:
        self._require_mounted()
        self.pipeline.apply_shortcut(dimension, key)

    # pagination

    def go_to_page(self, page: int) -> bool:
        self._require_mounted()
        return self.paginator.go_to(page)

    async def retry(self) -> bool:
        self._require_mounted()
        return await self.fetcher.retry()

    # rows and timelines

    def _ticket(self, ticket_id: str) -> Ticket:
        for ticket in self.fetcher.result.items:
            if ticket.id == ticket_id:
                return ticket
        raise ValidationError(f"Ticket {ticket_id} is not on the current page")

    def toggle_row(self, ticket_id: str) -> bool:
        """Expand or collapse a row; expanding asks for its timeline."""
        self._require_mounted()
        ticket = self._ticket(ticket_id)
        if ticket_id in self.expanded:
            self.expanded.discard(ticket_id)
            self._changed()
            return False
        self.expanded.add(ticket_id)
        if ticket.gr_no:
            self.queue.request(ticket.gr_no)
        self._changed()
        return True

    def timeline_for(self, ticket_id: str) -> TimelineView | None:
        ticket = self._ticket(ticket_id)
        if not ticket.gr_no:
            return None
        gr_no = ticket.gr_no
        loading = self.queue.is_loading(gr_no) or self.queue.is_queued(gr_no)
        records = self.cache.get(gr_no)
        return TimelineView(gr_no=gr_no, loading=loading, records=list(records or []))

    def rows(self) -> list[TicketRow]:
        return [_to_row(ticket, ticket.id in self.expanded) for ticket in self.fetcher.result.items]

    def stat_cards(self) -> list[StatCard]:
        result = self.fetcher.result
        return self.stats.cards(result.status_stats, result.color_stats)

    async def export(self) -> Path:
        self._require_mounted()
        return await self.exporter.export_tickets_csv(
            self.pipeline.effective, self.fetcher.result.total_count
        )

    @property
    def state(self) -> ViewState:
        return ViewState(
            filters=self.pipeline.effective,
            page=self.paginator.current_page,
            total_pages=self.paginator.total_pages,
            total_count=self.paginator.total_count,
            expanded_row_keys=frozenset(self.expanded),
            state=self.fetcher.state,
            loading=self.fetcher.loading,
            blocking=self.fetcher.blocking,
            background_refreshing=self.fetcher.background_refreshing,
            error=self.fetcher.error,
            refresh_error=self.fetcher.refresh_error,
        )
