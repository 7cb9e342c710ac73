"""Cache keys and entries."""

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

KEY_DELIMITER = ":"

Clock = Callable[[], float]

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def make_key(prefix: str, identifier: str) -> str:
    """Build a "<prefix>:<identifier>" cache key."""
    return f"{prefix}{KEY_DELIMITER}{identifier}"


def prefix_pattern(prefix: str) -> str:
    """Redis glob matching every key under a prefix.

    Glob characters in the prefix are escaped so it matches literally.
    """
    escaped = _GLOB_SPECIAL.sub(r"\\\1", prefix)
    return f"{escaped}{KEY_DELIMITER}*"


@dataclass
class CacheEntry:
    """A cached value with its storage time and TTL.

    Attributes:
        data: The cached value (any JSON-serializable object).
        stored_at: Wall-clock time the entry was created, in seconds.
        ttl_seconds: Time-to-live in seconds, always positive.
        compressed: Whether the stored payload carried the compression marker.
    """

    data: Any
    stored_at: float
    ttl_seconds: int
    compressed: bool = False

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {self.ttl_seconds}")

    @classmethod
    def create(cls, data: Any, ttl_seconds: int, clock: Clock = time.time) -> "CacheEntry":
        return cls(data=data, stored_at=clock(), ttl_seconds=ttl_seconds)

    def is_expired(self, now: float) -> bool:
        """True once the age in whole milliseconds exceeds the TTL."""
        return int((now - self.stored_at) * 1000) > self.ttl_seconds * 1000

    def to_dict(self) -> dict[str, Any]:
        """JSON envelope; timestamp in epoch ms. The compression flag is
        carried by the payload marker, not the envelope."""
        return {
            "data": self.data,
            "timestamp": int(self.stored_at * 1000),
            "ttl": self.ttl_seconds,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CacheEntry":
        return cls(
            data=payload["data"],
            stored_at=payload["timestamp"] / 1000,
            ttl_seconds=int(payload["ttl"]),
        )
