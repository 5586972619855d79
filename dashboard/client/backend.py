from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from client.models import (
    ActivityRecord,
    ColorStats,
    FilterCriteria,
    PageResult,
    StatusStats,
    Ticket,
)
from core.config import BackendConfig
from core.errors import BackendError

LOGGER = logging.getLogger(__name__)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned if cleaned else None


def _opt_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _count(value: Any) -> int:
    parsed = _opt_int(value)
    return parsed if parsed is not None and parsed > 0 else 0


def _nested(row: dict[str, Any], key: str, name: str) -> str | None:
    node = row.get(key)
    if not isinstance(node, dict):
        return None
    return _opt_str(node.get(name))


def _row_to_ticket(row: dict[str, Any]) -> Ticket:
    return Ticket(
        id=str(row.get("id") or row.get("_id") or row.get("ticket_number") or ""),
        ticket_number=str(row.get("ticket_number") or ""),
        title=str(row.get("title") or ""),
        status=str(row.get("status") or ""),
        description=_opt_str(row.get("description")),
        priority_color=_opt_str(row.get("color") or row.get("priority_color")),
        priority=_opt_str(row.get("priority")),
        type=_opt_str(row.get("type")),
        tracking_number=_opt_str(row.get("tracking_number")),
        origin=_opt_str(row.get("origin")),
        destination=_opt_str(row.get("destination")),
        delay_duration_minutes=_opt_int(row.get("delay_duration_minutes")),
        current_status=_opt_str(row.get("current_status")),
        last_known_location=_opt_str(row.get("last_known_location")),
        consignee_name=_opt_str(row.get("consignee_name")),
        customer_name=_nested(row, "customers", "name"),
        customer_phone=_nested(row, "customers", "phone"),
        assigned_agent=_nested(row, "agents", "name") or _opt_str(row.get("assigned_user")),
        created_at=_opt_str(row.get("created_at")),
        updated_at=_opt_str(row.get("updated_at")),
    )


def _row_to_activity(row: dict[str, Any]) -> ActivityRecord:
    return ActivityRecord(
        activity=_opt_str(row.get("activity")),
        date=_opt_str(row.get("date")),
        details=_opt_str(row.get("details")),
        documentno=_opt_str(row.get("documentno")),
    )


def _parse_tickets(payload: dict[str, Any]) -> tuple[Ticket, ...]:
    rows = payload.get("tickets") or []
    if not isinstance(rows, list):
        raise BackendError(user_message="The ticket service returned an unreadable response.")
    return tuple(_row_to_ticket(row) for row in rows if isinstance(row, dict))


def parse_page_result(payload: dict[str, Any]) -> PageResult:
    tickets = _parse_tickets(payload)
    total = _opt_int(payload.get("total"))
    total_count = total if total is not None and total >= 0 else len(tickets)

    stats = payload.get("stats") if isinstance(payload.get("stats"), dict) else {}
    raw_status = stats.get("statusStats") if isinstance(stats.get("statusStats"), dict) else {}
    raw_color = stats.get("colorStats") if isinstance(stats.get("colorStats"), dict) else {}

    status_total = _opt_int(raw_status.get("total"))
    status_stats = StatusStats(
        total=status_total if status_total is not None else total_count,
        open=_count(raw_status.get("open")),
        working=_count(raw_status.get("working")),
        closed=_count(raw_status.get("closed")),
        satisfied=_count(raw_status.get("satisfied")),
    )
    color_stats = ColorStats(
        yellow=_count(raw_color.get("yellow")),
        orange=_count(raw_color.get("orange")),
        red=_count(raw_color.get("red")),
        green=_count(raw_color.get("green")),
    )
    return PageResult(
        items=tickets,
        total_count=total_count,
        status_stats=status_stats,
        color_stats=color_stats,
    )


def parse_activity_list(payload: dict[str, Any]) -> list[ActivityRecord]:
    raw = payload.get("trackingRaw")
    if not isinstance(raw, dict):
        return []
    rows = raw.get("consignmentactivitylist") or []
    if not isinstance(rows, list):
        return []
    return [_row_to_activity(row) for row in rows if isinstance(row, dict)]


class BackendClient:
    """Thin JSON client over the ticket backend endpoints."""

    def __init__(self, config: BackendConfig, session: aiohttp.ClientSession | None = None) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds),
            )
            self._owns_session = True
        return self._session

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        session = self._ensure_session()
        try:
            async with session.get(url, params=params) as response:
                if response.status >= 400:
                    raise BackendError(
                        user_message=f"Failed to fetch: {response.status}",
                        status=response.status,
                        url=url,
                    )
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise BackendError(
                user_message="Network error while contacting the ticket service.",
                url=url,
            ) from exc
        except asyncio.TimeoutError as exc:
            raise BackendError(
                user_message="The ticket service took too long to respond.",
                url=url,
            ) from exc
        except ValueError as exc:
            raise BackendError(
                user_message="The ticket service returned an unreadable response.",
                url=url,
            ) from exc
        if not isinstance(payload, dict):
            raise BackendError(
                user_message="The ticket service returned an unreadable response.",
                url=url,
            )
        return payload

    async def fetch_tickets(self, criteria: FilterCriteria, page: int, limit: int) -> PageResult:
        params = {"page": str(page), "limit": str(limit), **criteria.to_query()}
        payload = await self._get_json("/api/tickets", params)
        result = parse_page_result(payload)
        LOGGER.debug("Fetched ticket page %s (%s of %s)", page, len(result.items), result.total_count)
        return result

    async def fetch_activity(self, gr_no: str) -> list[ActivityRecord]:
        payload = await self._get_json(f"/api/consignments/{quote(gr_no, safe='')}")
        return parse_activity_list(payload)

    async def export_tickets(self, criteria: FilterCriteria, total: int) -> list[Ticket]:
        params = {"page": "1", "limit": str(max(total, 1)), **criteria.to_query()}
        payload = await self._get_json("/api/tickets/export", params)
        return list(_parse_tickets(payload))

    async def close(self) -> None:
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
