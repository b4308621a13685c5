"""Bounded in-memory cache for registry reads.

One instance lives for a single invocation; nothing is written to disk and
entries never expire.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Optional

from constants import Constants


class ReadCache:
    """LRU-bounded cache keyed by request URL.

    Avoids refetching the service index and version listings when several
    selectors (or the alternate package check) touch the same resource.
    """

    def __init__(self, max_entries: Optional[int] = None):
        """Initialize the cache.

        Args:
            max_entries: Capacity; least recently used entries are evicted first.
        """
        self._max_entries = max_entries or Constants.CACHE_MAX_ENTRIES
        self._cache: "OrderedDict[str, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None if missing."""
        if key not in self._cache:
            self.misses += 1
            return None

        self._cache.move_to_end(key)
        self.hits += 1
        return self._cache[key]

    def set(self, key: str, value: Any) -> None:
        """Cache a value, evicting the oldest entries when over capacity."""
        self._cache[key] = value
        self._cache.move_to_end(key)

        while len(self._cache) > self._max_entries:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        """Drop every entry."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
