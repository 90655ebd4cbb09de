"""
In-process cache with a fixed time-to-live.

Entries expire lazily: an expired entry is removed the next time it is
read. There is no size bound and no background sweep, and the store is
local to one process.
"""

import time
from typing import Any, Callable, Dict, Optional, Tuple

from .config.settings import CACHE_CONFIG


class TTLCache:
    """Key/value store where every entry lives for the same TTL."""

    def __init__(
        self,
        ttl_seconds: float = CACHE_CONFIG["ttl_seconds"],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._hits = 0
        self._misses = 0

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        value, inserted_at = entry
        if self._clock() - inserted_at > self.ttl_seconds:
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        return value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() - entry[1] <= self.ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Counters for the stats endpoint (expired entries not yet read are included)"""
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "ttl_seconds": self.ttl_seconds,
        }
