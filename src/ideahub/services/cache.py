from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """Bounded in-process cache for read-mostly rows (users, comments).

    Entries expire after their TTL and the least recently used entry is
    evicted once ``max_entries`` is reached. Only immutable or explicitly
    invalidated records belong here; anything that several writers move
    concurrently is read through.
    """

    def __init__(
        self,
        default_ttl_seconds: int = 120,
        max_entries: int = 5000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = max(1, int(default_ttl_seconds))
        self._max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: OrderedDict[K, tuple[float, V]] = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: K, value: V, ttl_seconds: Optional[int] = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else max(1, int(ttl_seconds))
        self._entries[key] = (self._clock() + ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def delete(self, key: K) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
