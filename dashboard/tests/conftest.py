from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from client.models import ActivityRecord, ColorStats, FilterCriteria, PageResult, StatusStats, Ticket
from core.config import AppConfig, BackendConfig, DetailConfig, ExportConfig, ListViewConfig


def make_ticket(
    index: int,
    *,
    status: str = "open",
    color: str = "yellow",
    gr_no: str | None = None,
    origin: str | None = "Delhi",
    destination: str | None = "Mumbai",
) -> Ticket:
    return Ticket(
        id=f"t-{index}",
        ticket_number=f"TKT-{index:04d}",
        title=f"Delayed shipment {index}",
        status=status,
        priority_color=color,
        tracking_number=gr_no,
        origin=origin,
        destination=destination,
        delay_duration_minutes=index * 30,
        created_at="2026-10-01T08:00:00Z",
        updated_at="2026-10-02T08:00:00Z",
    )


def make_activity(count: int) -> list[ActivityRecord]:
    return [
        ActivityRecord(
            activity=f"Step {n}",
            date=f"2026-10-0{(n % 9) + 1}",
            details=f"Scanned at hub {n}",
            documentno=f"DOC-{n}" if n % 2 else None,
        )
        for n in range(count)
    ]


class FakeBackend:
    """In-memory stand-in for the ticket backend that filters and aggregates like the server."""

    def __init__(self, tickets: list[Ticket] | None = None) -> None:
        self.tickets = list(tickets or [])
        self.ticket_calls: list[tuple[FilterCriteria, int, int]] = []
        self.activity_calls: list[str] = []
        self.activity: dict[str, list[ActivityRecord]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.ticket_gate: asyncio.Event | None = None
        self.fail_activity: set[str] = set()
        self.fail_tickets = False
        self.in_flight = 0
        self.peak_in_flight = 0

    def _matches(self, ticket: Ticket, criteria: FilterCriteria) -> bool:
        if criteria.status != "all" and ticket.status != criteria.status:
            return False
        if criteria.color != "all" and ticket.priority_color != criteria.color:
            return False
        if criteria.origin and criteria.origin.lower() not in (ticket.origin or "").lower():
            return False
        if criteria.destination and criteria.destination.lower() not in (ticket.destination or "").lower():
            return False
        needle = criteria.search.lower()
        return not needle or needle in ticket.ticket_number.lower() or needle in ticket.title.lower()

    async def fetch_tickets(self, criteria: FilterCriteria, page: int, limit: int) -> PageResult:
        self.ticket_calls.append((criteria, page, limit))
        if self.ticket_gate is not None:
            await self.ticket_gate.wait()
        if self.fail_tickets:
            raise RuntimeError("backend down")
        matched = [ticket for ticket in self.tickets if self._matches(ticket, criteria)]
        start = (page - 1) * limit
        return PageResult(
            items=tuple(matched[start : start + limit]),
            total_count=len(matched),
            status_stats=StatusStats(
                total=len(matched),
                open=sum(1 for t in matched if t.status == "open"),
                working=sum(1 for t in matched if t.status == "working"),
                closed=sum(1 for t in matched if t.status == "closed"),
                satisfied=sum(1 for t in matched if t.status == "satisfied"),
            ),
            color_stats=ColorStats(
                yellow=sum(1 for t in matched if t.priority_color == "yellow"),
                orange=sum(1 for t in matched if t.priority_color == "orange"),
                red=sum(1 for t in matched if t.priority_color == "red"),
                green=sum(1 for t in matched if t.priority_color == "green"),
            ),
        )

    async def fetch_activity(self, gr_no: str) -> list[ActivityRecord]:
        self.activity_calls.append(gr_no)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            gate = self.gates.get(gr_no)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if gr_no in self.fail_activity:
                raise RuntimeError(f"timeline unavailable for {gr_no}")
            return list(self.activity.get(gr_no, []))
        finally:
            self.in_flight -= 1

    async def export_tickets(self, criteria: FilterCriteria, total: int) -> list[Ticket]:
        return [ticket for ticket in self.tickets if self._matches(ticket, criteria)][:total]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        backend=BackendConfig(base_url="http://backend.test"),
        list_view=ListViewConfig(page_size=10, refresh_interval_seconds=3600, debounce_milliseconds=20),
        detail=DetailConfig(max_concurrency=3, ttl_seconds=300),
        export=ExportConfig(directory=str(tmp_path / "exports")),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
