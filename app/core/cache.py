"""
Caching Module

In-process TTL cache with LRU eviction. Ticket triage uses it so the same
draft analyzed twice within an hour costs one model call.
"""

import time
from collections import OrderedDict
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar


T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Bounded mapping whose entries expire ``default_ttl`` seconds after they
    are written. When full, the least recently read or written entry goes.
    """

    def __init__(self, max_size: int = 1000, default_ttl: float = 3600):
        self._entries: "OrderedDict[str, Tuple[float, T]]" = OrderedDict()
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is not None and entry[0] < time.monotonic():
            del self._entries[key]
            entry = None

        if entry is None:
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return entry[1]

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (time.monotonic() + (ttl or self.default_ttl), value)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate_percent": round(self.hits / lookups * 100, 2) if lookups else 0.0,
        }


# Ticket triage suggestions, keyed by a digest of the draft
triage_cache: TTLCache[Dict[str, str]] = TTLCache(max_size=500, default_ttl=3600)


def get_cached_triage(key: str) -> Optional[Dict[str, str]]:
    return triage_cache.get(key)


def cache_triage(key: str, triage: Dict[str, str]) -> None:
    triage_cache.set(key, triage)
