"""In-process fallback cache.

Bounded and insertion-ordered: when full, the entry inserted first is
evicted regardless of reads (FIFO). Expiry is lazy, on lookup.
"""

import asyncio
import json
import time
from collections import OrderedDict

import structlog

from src.cache.models import KEY_DELIMITER, CacheEntry, Clock

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ENTRIES = 1000


def _utf16_length(value: str) -> int:
    return len(value.encode("utf-16-le")) // 2


class LocalCache:
    """Bounded FIFO cache with lazy TTL expiry.

    Mutations go through an asyncio.Lock so concurrent tasks cannot break
    the size bound or the insertion order.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES, clock: Clock = time.time) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry, evicting the oldest one if at capacity.

        Overwriting an existing key keeps its insertion position.
        """
        async with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug("local_cache_evicted", key=evicted_key)
            self._entries[key] = entry

    async def get(self, key: str) -> CacheEntry | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def delete_by_prefix(self, prefix: str) -> int:
        """Remove every entry under ``prefix``; returns how many went."""
        namespace = f"{prefix}{KEY_DELIMITER}"
        async with self._lock:
            doomed = [key for key in self._entries if key.startswith(namespace)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def is_within_bounds(self) -> bool:
        return len(self._entries) < self.max_entries

    def estimated_memory_usage(self) -> int:
        """Approximate bytes: two per UTF-16 unit of each key and of each
        entry's compact JSON form."""
        total = 0
        for key, entry in list(self._entries.items()):
            serialized = json.dumps(entry.to_dict(), separators=(",", ":"), ensure_ascii=False, default=str)
            total += _utf16_length(key) * 2 + _utf16_length(serialized) * 2
        return total
