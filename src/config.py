"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(name: str, default: int) -> int:
    """Get an integer from environment variable, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float | None) -> float | None:
    """Get a float from environment variable, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        REDIS_URL: Redis connection URL. Takes precedence over host/port.
        CACHE_MAX_MEMORY_MB: Cache memory budget in MB (informational).
        CACHE_RECONNECT_INTERVAL: Seconds before a disabled Redis connection
            is retried. None keeps it disabled until restart.
        LOG_FORMAT: Log renderer, "console" or "json".
    """

    # Redis
    REDIS_URL: str | None = None
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0

    # Cache
    CACHE_DEFAULT_TTL: int = 3600  # 1 hour
    CACHE_MAX_MEMORY_MB: int = 100
    CACHE_ENABLE_COMPRESSION: bool = True
    CACHE_LOCAL_MAX_ENTRIES: int = 1000
    CACHE_TIMING_WINDOW: int = 100
    CACHE_OPERATION_TIMEOUT: float = 1.0
    CACHE_RECONNECT_INTERVAL: float | None = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            REDIS_URL=os.getenv("REDIS_URL") or None,
            REDIS_HOST=os.getenv("REDIS_HOST") or None,
            REDIS_PORT=_get_int_env("REDIS_PORT", 6379),
            REDIS_PASSWORD=os.getenv("REDIS_PASSWORD") or None,
            REDIS_DB=_get_int_env("REDIS_DB", 0),
            CACHE_DEFAULT_TTL=_get_int_env("CACHE_DEFAULT_TTL", 3600),
            CACHE_MAX_MEMORY_MB=_get_int_env("CACHE_MAX_MEMORY_MB", 100),
            CACHE_ENABLE_COMPRESSION=_get_bool_env("CACHE_ENABLE_COMPRESSION", default=True),
            CACHE_LOCAL_MAX_ENTRIES=_get_int_env("CACHE_LOCAL_MAX_ENTRIES", 1000),
            CACHE_TIMING_WINDOW=_get_int_env("CACHE_TIMING_WINDOW", 100),
            CACHE_OPERATION_TIMEOUT=_get_float_env("CACHE_OPERATION_TIMEOUT", 1.0) or 1.0,
            CACHE_RECONNECT_INTERVAL=_get_float_env("CACHE_RECONNECT_INTERVAL", None),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_FORMAT=os.getenv("LOG_FORMAT", "console"),
        )
