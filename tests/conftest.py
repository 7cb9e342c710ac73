"""Shared fixtures for cache tests."""

import re
from collections.abc import AsyncIterator

import pytest

from src.cache.manager import CacheConfig, CacheManager
from src.cache.remote import RemoteCacheAdapter, RemoteCacheConfig


def _redis_glob(pattern: str) -> re.Pattern[str]:
    """Translate a Redis MATCH pattern, honouring backslash escapes."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                parts.append("[" + pattern[i + 1 : end].replace("\\", "\\\\") + "]")
                i = end
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Dict-backed stand-in for redis.asyncio.Redis.

    Set ``fail_with`` to make every command raise that exception.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail_with: Exception | None = None
        self.delete_calls: list[tuple[str, ...]] = []
        self.closed = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def ping(self) -> bool:
        self._check()
        return True

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.store.get(key)

    async def delete(self, *keys: str) -> int:
        self._check()
        self.delete_calls.append(keys)
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        self._check()
        regex = _redis_glob(match)
        for key in list(self.store):
            if regex.fullmatch(key):
                yield key

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Create a fake Redis server."""
    return FakeRedis()


@pytest.fixture
def remote(fake_redis: FakeRedis) -> RemoteCacheAdapter:
    """Create a remote adapter wired to the fake Redis."""
    return RemoteCacheAdapter(
        RemoteCacheConfig(url="redis://fake:6379/0", operation_timeout=0.5),
        client_factory=lambda _config: fake_redis,
    )


@pytest.fixture
def cache(remote: RemoteCacheAdapter, clock: FakeClock) -> CacheManager:
    """Create a cache manager backed by the fake Redis."""
    return CacheManager(CacheConfig(local_max_entries=10), remote=remote, clock=clock)


@pytest.fixture
def local_only_cache(clock: FakeClock) -> CacheManager:
    """Create a cache manager with no Redis configured."""
    return CacheManager(CacheConfig(local_max_entries=10), clock=clock)
