from __future__ import annotations

import logging
from collections.abc import Callable

from client.models import FilterCriteria
from core.errors import ValidationError
from services.debounce import Debouncer
from utils.constants import DELAY_BUCKETS, FILTER_ALL, PRIORITY_COLORS, TICKET_STATUSES

LOGGER = logging.getLogger(__name__)

CommitListener = Callable[[FilterCriteria], None]

TEXT_FIELDS = ("search", "origin", "destination")
CHOICE_FIELDS = {
    "status": TICKET_STATUSES,
    "color": PRIORITY_COLORS,
    "delay": DELAY_BUCKETS,
}
SHORTCUT_DIMENSIONS = ("status", "color")


def _validate_choice(name: str, value: str) -> str:
    cleaned = value.strip().lower()
    if cleaned == FILTER_ALL or cleaned in CHOICE_FIELDS[name]:
        return cleaned
    raise ValidationError(f"Unknown {name} filter: {value!r}")


class FilterPipeline:
    """Turns raw filter edits into committed :class:`FilterCriteria`.

    Text fields are debounced independently; choice fields commit at once.
    ``on_commit`` only fires when the effective criteria actually change.
    """

    def __init__(self, on_commit: CommitListener, *, debounce_seconds: float = 0.5) -> None:
        self.on_commit = on_commit
        self.effective = FilterCriteria()
        self.raw = FilterCriteria()
        self._debouncers: dict[str, Debouncer[str]] = {
            name: Debouncer(debounce_seconds, self._text_committer(name)) for name in TEXT_FIELDS
        }

    def _text_committer(self, name: str) -> Callable[[str], None]:
        def commit(value: str) -> None:
            self._commit(self.effective.with_changes(**{name: value}))

        return commit

    def _commit(self, criteria: FilterCriteria) -> None:
        if criteria == self.effective:
            return
        self.effective = criteria
        LOGGER.debug("Filters committed: %s", criteria.to_query())
        self.on_commit(criteria)

    def _edit_text(self, name: str, value: str) -> None:
        self.raw = self.raw.with_changes(**{name: value})
        self._debouncers[name].push(value)

    def set_search(self, value: str) -> None:
        self._edit_text("search", value)

    def set_origin(self, value: str) -> None:
        self._edit_text("origin", value)

    def set_destination(self, value: str) -> None:
        self._edit_text("destination", value)

    def _edit_choice(self, name: str, value: str) -> None:
        cleaned = _validate_choice(name, value)
        self.raw = self.raw.with_changes(**{name: cleaned})
        self._commit(self.effective.with_changes(**{name: cleaned}))

    def set_status(self, value: str) -> None:
        self._edit_choice("status", value)

    def set_color(self, value: str) -> None:
        self._edit_choice("color", value)

    def set_delay(self, value: str) -> None:
        self._edit_choice("delay", value)

    def apply(self, **edits: str) -> None:
        for name, value in edits.items():
            if name in TEXT_FIELDS:
                self._edit_text(name, value)
            elif name in CHOICE_FIELDS:
                self._edit_choice(name, value)
            else:
                raise ValidationError(f"Unknown filter field: {name!r}")

    def apply_shortcut(self, dimension: str, value: str) -> None:
        """Select one status or color facet and reset every other filter."""
        if dimension not in SHORTCUT_DIMENSIONS:
            raise ValidationError(f"Shortcuts only exist for status or color, not {dimension!r}")
        cleaned = _validate_choice(dimension, value)
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        criteria = FilterCriteria().with_changes(**{dimension: cleaned})
        self.raw = criteria
        self._commit(criteria)

    def flush(self) -> None:
        for debouncer in self._debouncers.values():
            debouncer.flush()

    @property
    def has_pending_edits(self) -> bool:
        return any(debouncer.pending for debouncer in self._debouncers.values())

    def reset(self) -> None:
        self.apply_shortcut("status", FILTER_ALL)

    def close(self) -> None:
        for debouncer in self._debouncers.values():
            debouncer.cancel()
