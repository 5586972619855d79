from __future__ import annotations

import csv
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from client.models import FilterCriteria, Ticket
from core.config import ExportConfig
from core.errors import ValidationError
from utils.constants import PLACEHOLDER
from utils.time import utc_now

LOGGER = logging.getLogger(__name__)

ExportFetcher = Callable[[FilterCriteria, int], Awaitable[list[Ticket]]]

EXPORT_COLUMNS = [
    "Ticket #",
    "Title",
    "Status",
    "Priority Color",
    "GR No",
    "Origin",
    "Destination",
    "Delay (min)",
    "Created At",
    "Updated At",
]


def _cell(value: object) -> str:
    if value is None or value == "":
        return PLACEHOLDER
    return str(value)


class ExportService:
    def __init__(self, config: ExportConfig, fetch_all: ExportFetcher) -> None:
        self.config = config
        self.fetch_all = fetch_all
        self.export_dir = Path(config.directory)

    async def export_tickets_csv(self, criteria: FilterCriteria, total: int) -> Path:
        if total <= 0:
            raise ValidationError("No tickets to export")
        rows = await self.fetch_all(criteria, total)
        self.export_dir.mkdir(parents=True, exist_ok=True)
        output = self.export_dir / f"tickets_{utc_now().strftime('%Y-%m-%d')}.csv"
        with output.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(EXPORT_COLUMNS)
            for row in rows:
                writer.writerow(
                    [
                        _cell(row.ticket_number),
                        _cell(row.title),
                        _cell(row.status),
                        _cell(row.priority_color),
                        _cell(row.tracking_number),
                        _cell(row.origin),
                        _cell(row.destination),
                        _cell(row.delay_duration_minutes),
                        _cell(row.created_at),
                        _cell(row.updated_at),
                    ]
                )
        LOGGER.info("Exported %s tickets to %s", len(rows), output)
        return output
