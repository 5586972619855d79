from __future__ import annotations

import pytest

from conftest import FakeClock, make_activity
from services.cache import DetailCache


def test_entry_is_fresh_until_ttl_elapses(clock: FakeClock) -> None:
    cache = DetailCache(ttl_seconds=300, clock=clock)
    cache.set("GRL-00123", make_activity(8))

    clock.advance(299)
    assert cache.get("GRL-00123") is not None
    assert len(cache.get("GRL-00123") or []) == 8

    clock.advance(1)
    assert cache.get("GRL-00123") is None
    assert len(cache) == 0


def test_stale_entry_is_not_reported_fresh(clock: FakeClock) -> None:
    cache = DetailCache(ttl_seconds=10, clock=clock)
    cache.set("GR-1", [])
    assert cache.is_fresh("GR-1")
    assert "GR-1" in cache

    clock.advance(11)
    assert not cache.is_fresh("GR-1")
    assert "GR-1" not in cache


def test_rewrite_restarts_ttl(clock: FakeClock) -> None:
    cache = DetailCache(ttl_seconds=10, clock=clock)
    cache.set("GR-1", make_activity(1))
    clock.advance(8)
    cache.set("GR-1", make_activity(2))
    clock.advance(8)
    assert len(cache.get("GR-1") or []) == 2


def test_max_entries_evicts_oldest(clock: FakeClock) -> None:
    cache = DetailCache(ttl_seconds=300, max_entries=2, clock=clock)
    cache.set("a", [])
    cache.set("b", [])
    cache.set("c", [])
    assert cache.get("a") is None
    assert cache.get("b") == []
    assert cache.get("c") == []


def test_clear_and_delete(clock: FakeClock) -> None:
    cache = DetailCache(ttl_seconds=300, clock=clock)
    cache.set("a", [])
    cache.set("b", [])
    cache.delete("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DetailCache(ttl_seconds=0)
