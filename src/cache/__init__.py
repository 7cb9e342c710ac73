"""Two-tier caching for read-heavy lookups.

This module contains:
- CacheManager, the facade used by request handlers
- RemoteCacheAdapter for the shared Redis cache
- LocalCache, the bounded in-process fallback
- JsonMarkerCodec and the CacheCodec strategy interface
- CacheStats and PerformanceCollector for observability
"""

from src.cache.codec import (
    COMPRESSION_MARKER,
    COMPRESSION_THRESHOLD,
    CacheCodec,
    JsonMarkerCodec,
)
from src.cache.errors import (
    CacheError,
    OperationTimeoutError,
    RemoteConnectionError,
    SerializationError,
)
from src.cache.local import LocalCache
from src.cache.manager import CacheConfig, CacheManager, HealthReport, HealthStatus
from src.cache.models import CacheEntry, make_key
from src.cache.remote import RemoteCacheAdapter, RemoteCacheConfig, RemoteState
from src.cache.stats import CacheStats, PerformanceCollector

__all__ = [
    # Core classes
    "CacheConfig",
    "CacheManager",
    "HealthReport",
    "HealthStatus",
    # Tiers
    "LocalCache",
    "RemoteCacheAdapter",
    "RemoteCacheConfig",
    "RemoteState",
    # Data model
    "CacheEntry",
    "make_key",
    # Serialization
    "COMPRESSION_MARKER",
    "COMPRESSION_THRESHOLD",
    "CacheCodec",
    "JsonMarkerCodec",
    # Observability
    "CacheStats",
    "PerformanceCollector",
    # Errors
    "CacheError",
    "OperationTimeoutError",
    "RemoteConnectionError",
    "SerializationError",
]
