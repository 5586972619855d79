from __future__ import annotations

from dataclasses import dataclass, field, fields, replace

from utils.constants import FILTER_ALL


@dataclass(slots=True, frozen=True)
class Ticket:
    id: str
    ticket_number: str
    title: str
    status: str
    description: str | None = None
    priority_color: str | None = None
    priority: str | None = None
    type: str | None = None
    tracking_number: str | None = None
    origin: str | None = None
    destination: str | None = None
    delay_duration_minutes: int | None = None
    current_status: str | None = None
    last_known_location: str | None = None
    consignee_name: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    assigned_agent: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def gr_no(self) -> str | None:
        return self.tracking_number


@dataclass(slots=True, frozen=True)
class ActivityRecord:
    activity: str | None = None
    date: str | None = None
    details: str | None = None
    documentno: str | None = None


@dataclass(slots=True, frozen=True)
class StatusStats:
    total: int = 0
    open: int = 0
    working: int = 0
    closed: int = 0
    satisfied: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "all": self.total,
            "open": self.open,
            "working": self.working,
            "closed": self.closed,
            "satisfied": self.satisfied,
        }

    def consistent_with(self, total_count: int) -> bool:
        return self.open + self.working + self.closed + self.satisfied == total_count


@dataclass(slots=True, frozen=True)
class ColorStats:
    yellow: int = 0
    orange: int = 0
    red: int = 0
    green: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "yellow": self.yellow,
            "orange": self.orange,
            "red": self.red,
            "green": self.green,
        }

    def consistent_with(self, total_count: int) -> bool:
        return self.yellow + self.orange + self.red + self.green == total_count


@dataclass(slots=True, frozen=True)
class PageResult:
    items: tuple[Ticket, ...] = ()
    total_count: int = 0
    status_stats: StatusStats = field(default_factory=StatusStats)
    color_stats: ColorStats = field(default_factory=ColorStats)


@dataclass(slots=True, frozen=True)
class FilterCriteria:
    """Effective filters sent with each list request.

    ``"all"`` and the empty string mean "no constraint" and are left out of
    the query string.
    """

    status: str = FILTER_ALL
    color: str = FILTER_ALL
    origin: str = ""
    destination: str = ""
    delay: str = FILTER_ALL
    search: str = ""

    def with_changes(self, **changes: str) -> FilterCriteria:
        return replace(self, **changes)

    def is_default(self) -> bool:
        return self == FilterCriteria()

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        for item in fields(self):
            value = getattr(self, item.name).strip()
            if value and value != FILTER_ALL:
                query[item.name] = value
        return query
