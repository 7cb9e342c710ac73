"""Two-tier cache manager for read-heavy lookups.

Every operation tries the shared Redis cache first and falls back to the
in-process LocalCache whenever Redis is absent, disabled, slow or failing.
No cache error ever reaches the caller of set/get/delete/clear_prefix.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar, cast

import structlog

from src.cache.codec import CacheCodec, JsonMarkerCodec
from src.cache.errors import SerializationError
from src.cache.local import DEFAULT_MAX_ENTRIES, LocalCache
from src.cache.models import CacheEntry, Clock, make_key, prefix_pattern
from src.cache.remote import RemoteCacheAdapter, RemoteCacheConfig
from src.cache.stats import DEFAULT_TIMING_WINDOW, CacheStats, PerformanceCollector

if TYPE_CHECKING:
    from src.config import Settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheConfig:
    """Configuration for the cache manager.

    ``max_memory_mb`` is informational and not enforced.
    """

    default_ttl: int = 3600  # 1 hour
    max_memory_mb: int = 100
    enable_compression: bool = True
    local_max_entries: int = DEFAULT_MAX_ENTRIES
    timing_window: int = DEFAULT_TIMING_WINDOW
    remote: RemoteCacheConfig = field(default_factory=RemoteCacheConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CacheConfig":
        """Build cache configuration from application settings."""
        return cls(
            default_ttl=settings.CACHE_DEFAULT_TTL,
            max_memory_mb=settings.CACHE_MAX_MEMORY_MB,
            enable_compression=settings.CACHE_ENABLE_COMPRESSION,
            local_max_entries=settings.CACHE_LOCAL_MAX_ENTRIES,
            timing_window=settings.CACHE_TIMING_WINDOW,
            remote=RemoteCacheConfig(
                url=settings.REDIS_URL,
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                password=settings.REDIS_PASSWORD,
                db=settings.REDIS_DB,
                operation_timeout=settings.CACHE_OPERATION_TIMEOUT,
                reconnect_interval=settings.CACHE_RECONNECT_INTERVAL,
            ),
        )


class HealthStatus(Enum):
    """Overall cache health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthReport:
    """Result of a cache health check."""

    status: HealthStatus
    remote_available: bool
    local_within_bounds: bool

    @classmethod
    def evaluate(cls, remote_available: bool, local_within_bounds: bool) -> "HealthReport":
        if remote_available and local_within_bounds:
            status = HealthStatus.HEALTHY
        elif not remote_available and not local_within_bounds:
            status = HealthStatus.UNHEALTHY
        else:
            status = HealthStatus.DEGRADED
        return cls(status, remote_available, local_within_bounds)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


class CacheManager:
    """Cache facade combining Redis with an in-process fallback.

    Construct one per process and pass it to whatever needs it. Use it as
    an async context manager, or call init() and close() explicitly.

    Example:
        async with CacheManager.from_settings(settings) as cache:
            foods = await cache.get("food-groups", "query:all:none")
            if foods is None:
                foods = await load_food_groups()
                await cache.set("food-groups", "query:all:none", foods, 1800)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        remote: RemoteCacheAdapter | None = None,
        codec: CacheCodec | None = None,
        clock: Clock = time.time,
    ) -> None:
        """Initialize cache manager.

        Args:
            remote: Built from ``config.remote`` when omitted and a server is
                configured; otherwise the cache is local-only.
            clock: Wall-clock source in seconds, used for entry timestamps.
        """
        self.config = config or CacheConfig()
        if remote is None and self.config.remote.is_configured:
            remote = RemoteCacheAdapter(self.config.remote)
        self._remote = remote
        self.codec: CacheCodec = codec or JsonMarkerCodec(self.config.enable_compression)
        self._clock = clock
        self._local = LocalCache(self.config.local_max_entries, clock=clock)
        self.stats = CacheStats(last_reset=clock())
        self.performance = PerformanceCollector(self.config.timing_window)
        self._closed = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CacheManager":
        """Create a cache manager from application settings."""
        return cls(CacheConfig.from_settings(settings))

    @property
    def remote(self) -> RemoteCacheAdapter | None:
        return self._remote

    @property
    def local(self) -> LocalCache:
        return self._local

    async def init(self) -> None:
        """Connect to Redis eagerly instead of on first use."""
        if self._remote is None:
            logger.info("cache_local_only")
            return
        connected = await self._remote.connect()
        logger.info("cache_initialized", remote_connected=connected)

    async def __aenter__(self) -> "CacheManager":
        await self.init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _ready_remote(self) -> RemoteCacheAdapter | None:
        """The remote adapter if it is usable right now, else None."""
        if self._remote is not None and await self._remote.ensure_connected():
            return self._remote
        return None

    def _resolve_ttl(self, ttl_seconds: int | None, key: str) -> int:
        if ttl_seconds is None:
            return self.config.default_ttl
        if ttl_seconds <= 0:
            logger.warning(
                "cache_invalid_ttl",
                key=key,
                ttl=ttl_seconds,
                default_ttl=self.config.default_ttl,
            )
            return self.config.default_ttl
        return int(ttl_seconds)

    async def set(
        self,
        prefix: str,
        identifier: str,
        data: Any,
        ttl_seconds: int | None = None,
    ) -> None:
        """Store a value, in Redis if possible, locally otherwise.

        ``ttl_seconds`` defaults to ``config.default_ttl``.
        """
        start = time.monotonic()
        key = make_key(prefix, identifier)
        entry = CacheEntry.create(data, self._resolve_ttl(ttl_seconds, key), clock=self._clock)

        remote = await self._ready_remote()
        if remote is not None:
            try:
                payload = self.codec.encode(entry.to_dict())
                await remote.set_with_expiry(key, payload, entry.ttl_seconds)
                self.performance.record_operation("set_redis", _elapsed_ms(start))
                logger.debug("cache_set", key=key, tier="redis", ttl=entry.ttl_seconds)
                return
            except Exception as e:
                self.performance.record_error("set_redis")
                logger.warning("cache_set_redis_failed", key=key, error=str(e))

        await self._local.put(key, entry)
        self.performance.record_operation("set_memory", _elapsed_ms(start))
        logger.debug("cache_set", key=key, tier="memory", ttl=entry.ttl_seconds)

    async def get(self, prefix: str, identifier: str) -> Any | None:
        """Get a value from Redis, then the local cache. None on a miss."""
        start = time.monotonic()
        key = make_key(prefix, identifier)

        remote = await self._ready_remote()
        if remote is not None:
            entry = await self._get_remote(remote, key)
            if entry is not None:
                await self.stats.record_hit()
                self.performance.record_operation("get_redis", _elapsed_ms(start))
                logger.debug("cache_hit", key=key, tier="redis")
                return entry.data

        local_entry = await self._local.get(key)
        if local_entry is not None:
            await self.stats.record_hit()
            self.performance.record_operation("get_memory", _elapsed_ms(start))
            logger.debug("cache_hit", key=key, tier="memory")
            return local_entry.data

        await self.stats.record_miss()
        self.performance.record_operation("get_miss", _elapsed_ms(start))
        logger.debug("cache_miss", key=key)
        return None

    async def _get_remote(self, remote: RemoteCacheAdapter, key: str) -> CacheEntry | None:
        try:
            raw = await remote.get(key)
        except Exception as e:
            self.performance.record_error("get_redis")
            logger.warning("cache_get_redis_failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            entry = CacheEntry.from_dict(self.codec.decode(raw))
        except (SerializationError, KeyError, TypeError, ValueError) as e:
            self.performance.record_error("decode")
            logger.warning("cache_corrupt_entry", key=key, error=str(e))
            await self._discard_remote(remote, key)
            return None

        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        entry.compressed = self.codec.is_compressed(raw)
        return entry

    async def _discard_remote(self, remote: RemoteCacheAdapter, key: str) -> None:
        try:
            await remote.delete(key)
        except Exception as e:
            self.performance.record_error("delete_redis")
            logger.warning("cache_discard_failed", key=key, error=str(e))

    async def delete(self, prefix: str, identifier: str) -> None:
        """Delete a value from both tiers. Failures are only logged."""
        start = time.monotonic()
        key = make_key(prefix, identifier)

        remote = await self._ready_remote()
        if remote is not None:
            try:
                await remote.delete(key)
                self.performance.record_operation("delete_redis", _elapsed_ms(start))
            except Exception as e:
                self.performance.record_error("delete_redis")
                logger.warning("cache_delete_redis_failed", key=key, error=str(e))

        await self._local.delete(key)
        self.performance.record_operation("delete_memory", _elapsed_ms(start))
        logger.debug("cache_delete", key=key)

    async def clear_prefix(self, prefix: str) -> None:
        """Delete every entry under ``prefix`` from both tiers.

        Redis keys matching ``<prefix>:*`` are removed with one batched DEL.
        """
        start = time.monotonic()
        remote_deleted = 0

        remote = await self._ready_remote()
        if remote is not None:
            pattern = prefix_pattern(prefix)
            try:
                keys = await remote.scan_keys(pattern)
                remote_deleted = await remote.delete_many(keys)
            except Exception as e:
                self.performance.record_error("clear_prefix_redis")
                logger.warning("cache_clear_prefix_redis_failed", pattern=pattern, error=str(e))

        local_deleted = await self._local.delete_by_prefix(prefix)
        self.performance.record_operation("clear_prefix", _elapsed_ms(start))
        logger.info(
            "cache_prefix_cleared",
            prefix=prefix,
            remote_deleted=remote_deleted,
            local_deleted=local_deleted,
        )

    async def get_or_compute(
        self,
        prefix: str,
        identifier: str,
        compute_fn: Callable[[], Awaitable[T]],
        ttl_seconds: int | None = None,
    ) -> T:
        """Get a value from cache or compute and cache it.

        Errors raised by ``compute_fn`` propagate unchanged.
        """
        cached = await self.get(prefix, identifier)
        if cached is not None:
            return cast(T, cached)

        start = time.monotonic()
        result = await compute_fn()
        compute_time_ms = _elapsed_ms(start)

        await self.set(prefix, identifier, result, ttl_seconds)
        logger.debug(
            "cache_computed",
            key=make_key(prefix, identifier),
            compute_time_ms=round(compute_time_ms, 2),
        )
        return result

    def _refresh_gauges(self) -> None:
        self.stats.key_count = self._local.size()
        self.stats.memory_usage_bytes = self._local.estimated_memory_usage()

    def get_stats(self) -> CacheStats:
        """Get a snapshot of cache statistics."""
        self._refresh_gauges()
        return self.stats.snapshot()

    def reset_stats(self) -> None:
        """Zero hit/miss counters. Local gauges stay live."""
        self.stats.reset(self._clock())
        self._refresh_gauges()

    def get_hit_rate(self) -> float:
        """Hit rate as a percentage, 0 before any get."""
        return self.stats.hit_rate

    def get_performance_metrics(self) -> dict[str, Any]:
        """Latency and error metrics per operation, plus the hit rate."""
        metrics = self.performance.summary()
        metrics["hit_rate"] = self.get_hit_rate()
        return metrics

    async def health_check(self) -> HealthReport:
        """Report the availability of both tiers."""
        remote_available = False
        remote = await self._ready_remote()
        if remote is not None:
            try:
                remote_available = await remote.ping()
            except Exception as e:
                logger.warning("cache_health_ping_failed", error=str(e))

        report = HealthReport.evaluate(remote_available, self._local.is_within_bounds())
        logger.debug(
            "cache_health_checked",
            status=report.status.value,
            remote_available=report.remote_available,
            local_within_bounds=report.local_within_bounds,
        )
        return report

    async def close(self) -> None:
        """Release the Redis connection and clear the local cache. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._remote is not None:
                await self._remote.close()
        finally:
            await self._local.clear()
            self._refresh_gauges()
            logger.info("cache_closed")
