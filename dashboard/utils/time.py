from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], float]


def monotonic() -> float:
    return time.monotonic()


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_date(value: str | None, fallback: str) -> str:
    parsed = parse_iso(value)
    if parsed is None:
        return fallback
    return parsed.astimezone(UTC).strftime("%Y-%m-%d")


def format_delay(minutes: int | None, fallback: str) -> str:
    if minutes is None or minutes < 0:
        return fallback
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins:02d}m"
