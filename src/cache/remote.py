"""Adapter around the shared Redis cache.

State machine:
    UNINITIALIZED -> CONNECTING -> CONNECTED
    CONNECTING / CONNECTED -> DISABLED  (handshake failure or connection error)

DISABLED is permanent unless ``reconnect_interval`` is set, in which case
the next operation after the interval retries the handshake. Every call is
bounded by ``operation_timeout``; a timeout fails that call only.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from src.cache.errors import OperationTimeoutError, RemoteConnectionError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RemoteState(Enum):
    """Connection states of the remote adapter."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISABLED = "disabled"


@dataclass
class RemoteCacheConfig:
    """Connection settings for the remote cache.

    ``url`` takes precedence over host/port/password/db. With no
    ``reconnect_interval`` a disabled adapter stays disabled.
    """

    url: str | None = None
    host: str | None = None
    port: int = 6379
    password: str | None = None
    db: int = 0
    operation_timeout: float = 1.0
    reconnect_interval: float | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url or self.host)


def create_redis_client(config: RemoteCacheConfig) -> Redis:
    """Build a redis.asyncio client from connection settings."""
    if config.url:
        return Redis.from_url(config.url, decode_responses=True, socket_connect_timeout=config.operation_timeout)
    return Redis(
        host=config.host or "localhost",
        port=config.port,
        password=config.password,
        db=config.db,
        decode_responses=True,
        socket_connect_timeout=config.operation_timeout,
    )


class RemoteCacheAdapter:
    """Thin, timeout-bounded wrapper around a Redis client.

    Example:
        adapter = RemoteCacheAdapter(RemoteCacheConfig(url="redis://localhost:6379"))
        if await adapter.ensure_connected():
            await adapter.set_with_expiry("food-groups:all", "[]", 1800)
    """

    def __init__(
        self,
        config: RemoteCacheConfig,
        client_factory: Callable[[RemoteCacheConfig], Any] = create_redis_client,
    ) -> None:
        """Initialize adapter. No connection is made until first use."""
        self.config = config
        self._client_factory = client_factory
        self._client: Any | None = None
        self._state = RemoteState.UNINITIALIZED
        self._disabled_at: float | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def state(self) -> RemoteState:
        return self._state

    @property
    def available(self) -> bool:
        return self._state == RemoteState.CONNECTED

    def _reconnect_due(self) -> bool:
        if self._state != RemoteState.DISABLED or self._disabled_at is None:
            return False
        if self.config.reconnect_interval is None:
            return False
        return time.monotonic() - self._disabled_at >= self.config.reconnect_interval

    async def connect(self) -> bool:
        """Create the client if needed and verify it with PING.

        Returns:
            True if the adapter ended up CONNECTED.
        """
        async with self._connect_lock:
            if self._state == RemoteState.CONNECTED:
                return True
            self._state = RemoteState.CONNECTING
            try:
                if self._client is None:
                    self._client = self._client_factory(self.config)
                await asyncio.wait_for(self._client.ping(), timeout=self.config.operation_timeout)
            except Exception as e:
                self._disable("connect", e)
                return False

            self._state = RemoteState.CONNECTED
            self._disabled_at = None
            logger.info("cache_remote_connected", target=self._target())
            return True

    async def ensure_connected(self) -> bool:
        """Connect lazily on first use, or retry once a reconnect is due."""
        if self._state == RemoteState.CONNECTED:
            return True
        if self._state == RemoteState.UNINITIALIZED or self._reconnect_due():
            return await self.connect()
        return False

    def _disable(self, operation: str, error: Exception) -> None:
        if self._state != RemoteState.DISABLED:
            logger.warning(
                "cache_remote_disabled",
                operation=operation,
                target=self._target(),
                error=str(error),
                reconnect_interval=self.config.reconnect_interval,
            )
        self._state = RemoteState.DISABLED
        self._disabled_at = time.monotonic()

    def _target(self) -> str:
        if self.config.url:
            return self.config.url.rsplit("@", 1)[-1]
        return f"{self.config.host}:{self.config.port}/{self.config.db}"

    def _require_client(self, operation: str) -> Any:
        if self._state != RemoteState.CONNECTED or self._client is None:
            raise RemoteConnectionError(
                "Remote cache is not connected",
                details={"operation": operation, "state": self._state.value},
            )
        return self._client

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.operation_timeout)
        except asyncio.TimeoutError as e:
            raise OperationTimeoutError(operation, self.config.operation_timeout) from e
        except RedisConnectionError as e:
            self._disable(operation, e)
            raise RemoteConnectionError(
                "Remote cache connection failed",
                details={"operation": operation, "error": str(e)},
            ) from e

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        client = self._require_client("set")
        await self._call("set", client.setex(key, ttl_seconds, value))

    async def get(self, key: str) -> str | bytes | None:
        client = self._require_client("get")
        return await self._call("get", client.get(key))

    async def delete(self, key: str) -> int:
        client = self._require_client("delete")
        return int(await self._call("delete", client.delete(key)))

    async def delete_many(self, keys: list[str]) -> int:
        """Delete several keys with a single DEL."""
        if not keys:
            return 0
        client = self._require_client("delete_many")
        return int(await self._call("delete_many", client.delete(*keys)))

    async def scan_keys(self, pattern: str) -> list[str]:
        client = self._require_client("scan")

        async def collect() -> list[str]:
            return [key async for key in client.scan_iter(match=pattern)]

        return await self._call("scan", collect())

    async def ping(self) -> bool:
        client = self._require_client("ping")
        return bool(await self._call("ping", client.ping()))

    async def close(self) -> None:
        """Release the connection for good. Raises if the disconnect fails."""
        client, self._client = self._client, None
        self._state = RemoteState.DISABLED
        self._disabled_at = None
        if client is not None:
            await client.aclose()
            logger.info("cache_remote_closed", target=self._target())
