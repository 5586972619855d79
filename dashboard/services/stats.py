from __future__ import annotations

from dataclasses import dataclass

from client.models import ColorStats, StatusStats
from services.filters import FilterPipeline
from utils.constants import COLOR_LABELS, FILTER_ALL, STATUS_LABELS


@dataclass(slots=True, frozen=True)
class StatCard:
    dimension: str
    key: str
    label: str
    value: int
    active: bool = False


def build_cards(
    status_stats: StatusStats,
    color_stats: ColorStats,
    *,
    active_status: str | None = None,
    active_color: str | None = None,
) -> list[StatCard]:
    cards = [
        StatCard(
            dimension="status",
            key=key,
            label=STATUS_LABELS[key],
            value=value,
            active=key == active_status,
        )
        for key, value in status_stats.as_dict().items()
    ]
    cards.extend(
        StatCard(
            dimension="color",
            key=key,
            label=COLOR_LABELS[key],
            value=value,
            active=key == active_color,
        )
        for key, value in color_stats.as_dict().items()
    )
    return cards


class StatsShortcuts:
    """Aggregate counts rendered as one-click filter shortcuts."""

    def __init__(self, pipeline: FilterPipeline) -> None:
        self.pipeline = pipeline

    def cards(self, status_stats: StatusStats, color_stats: ColorStats) -> list[StatCard]:
        effective = self.pipeline.effective
        return build_cards(
            status_stats,
            color_stats,
            active_status=effective.status if effective.color == FILTER_ALL else None,
            active_color=effective.color,
        )

    def click(self, card: StatCard) -> None:
        self.pipeline.apply_shortcut(card.dimension, card.key)
