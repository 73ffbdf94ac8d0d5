# src/crashrisk/application/cache.py
"""
Revalidation Cache - One Entry per Source Key

Holds the last result (real or fallback) for each source together with
the time it was stored. A fresh entry is served without calling the
provider; a stale one is replaced by the next fetch.

Only the event loop thread touches the cache, so a plain dict is enough.

Files that USE this module:
- crashrisk.application.aggregator (caches readings and quotes)
- tests.test_cache (unit tests)

Files that this module USES:
- None (pure utility implementation)
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    window: float  # seconds

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.window


class RevalidationCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value if it is still inside its window, else None."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.value

    def put(self, key: str, value: Any, window: float) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), window=window)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
