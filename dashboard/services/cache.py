from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, TypeVar

from utils.time import Clock, monotonic

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    payload: T
    fetched_at: float


class DetailCache(Generic[T]):
    """Keyed detail store with a fixed time-to-live.

    Freshness is checked lazily on read; nothing sweeps the store in the
    background. An entry is usable while ``now - fetched_at < ttl``. The
    optional ``max_entries`` bound evicts the oldest write first.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        *,
        max_entries: int | None = None,
        clock: Clock = monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry[T]] = OrderedDict()

    def _is_expired(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.fetched_at >= self.ttl_seconds

    def get(self, key: str) -> T | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._store.pop(key, None)
            return None
        return entry.payload

    def is_fresh(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and not self._is_expired(entry)

    def set(self, key: str, payload: T) -> None:
        self._store.pop(key, None)
        self._store[key] = CacheEntry(payload=payload, fetched_at=self._clock())
        if self.max_entries is not None:
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.is_fresh(key)
