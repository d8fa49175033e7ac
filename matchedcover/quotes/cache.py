"""Response cache — short-TTL memoization of carrier results.

Entries older than the TTL are treated as absent when read; they are not
swept in the background.  The cache is bounded: once ``max_entries`` is
reached the least recently used entry is dropped on insert.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("matchedcover.quotes.cache")


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


class ResponseCache:
    """Last-writer-wins TTL cache keyed by composite request strings.

    Parameters
    ----------
    ttl_seconds:
        Age after which an entry is considered absent.
    max_entries:
        Upper bound on stored entries.
    clock:
        Monotonic time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            logger.debug("Cache entry expired: %s", key[:80])
            return None
        self._entries.move_to_end(key)
        return entry.data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache full; evicted %s", evicted[:80])

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
