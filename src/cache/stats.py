"""Hit/miss statistics and per-operation latency tracking."""

import asyncio
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field, replace
from typing import Any

DEFAULT_TIMING_WINDOW = 100


@dataclass
class CacheStats:
    """Cache hit/miss counters and local cache gauges.

    Attributes:
        hits: Get calls served by either tier.
        misses: Get calls served by neither tier.
        key_count: Current number of entries in the local cache.
        memory_usage_bytes: Estimated size of the local cache.
        last_reset: Wall-clock time of the last reset, in seconds.
    """

    hits: int = 0
    misses: int = 0
    key_count: int = 0
    memory_usage_bytes: int = 0
    last_reset: float = field(default_factory=time.time)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False, compare=False)

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage, 0 when nothing was recorded."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100

    async def record_hit(self) -> None:
        async with self._lock:
            self.hits += 1

    async def record_miss(self) -> None:
        async with self._lock:
            self.misses += 1

    def snapshot(self) -> "CacheStats":
        return replace(self)

    def reset(self, now: float) -> None:
        self.hits = 0
        self.misses = 0
        self.last_reset = now


class PerformanceCollector:
    """Sliding windows of operation latencies plus error counters."""

    def __init__(self, window_size: int = DEFAULT_TIMING_WINDOW) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        self._timings: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=window_size))
        self._errors: dict[str, int] = defaultdict(int)

    def record_operation(self, name: str, duration_ms: float) -> None:
        self._timings[name].append(duration_ms)

    def record_error(self, name: str) -> None:
        self._errors[name] += 1

    def summary(self) -> dict[str, Any]:
        """Flatten windows and counters into a metrics dictionary.

        Returns:
            ``<op>_avg_ms``, ``<op>_min_ms``, ``<op>_max_ms`` and ``<op>_count``
            per timed operation, ``<op>_errors`` per failing operation.
        """
        metrics: dict[str, Any] = {}
        for name, samples in self._timings.items():
            metrics[f"{name}_avg_ms"] = round(sum(samples) / len(samples), 2)
            metrics[f"{name}_min_ms"] = min(samples)
            metrics[f"{name}_max_ms"] = max(samples)
            metrics[f"{name}_count"] = len(samples)
        for name, count in self._errors.items():
            metrics[f"{name}_errors"] = count
        return metrics
