from __future__ import annotations

from ideahub.services.cache import TTLCache


def test_entries_expire_after_ttl(clock) -> None:
    cache = TTLCache(default_ttl_seconds=10, clock=clock)
    cache.set("a", 1)
    clock.advance(9)
    assert cache.get("a") == 1
    clock.advance(1)
    assert cache.get("a") is None
    assert len(cache) == 0


def test_least_recently_used_is_evicted(clock) -> None:
    cache = TTLCache(default_ttl_seconds=60, max_entries=2, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)
    assert cache.get("b") is None
    assert cache.get("a") == 1 and cache.get("c") == 3


def test_purge_expired_and_delete(clock) -> None:
    cache = TTLCache(default_ttl_seconds=60, clock=clock)
    cache.set("short", 1, ttl_seconds=5)
    cache.set("long", 2)
    cache.delete("missing")
    clock.advance(6)
    assert cache.purge_expired() == 1
    assert cache.get("long") == 2
