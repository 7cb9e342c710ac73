"""Cache error types.

Raised by the remote adapter and the codec; the CacheManager catches them
and falls back to the local cache.

Exception Hierarchy:
    CacheError (base)
    ├── RemoteConnectionError - Remote store unreachable
    ├── OperationTimeoutError - A single remote call exceeded its deadline
    └── SerializationError - Payload could not be encoded/decoded
"""

from typing import Any


class CacheError(Exception):
    """Base exception for cache failures.

    Attributes:
        message: Human-readable error message.
        details: Additional error details (operation, key, ...).
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RemoteConnectionError(CacheError):
    """Raised when the remote store is unreachable."""


class OperationTimeoutError(CacheError):
    """Raised when one remote call does not finish within its timeout."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            f"Remote cache operation '{operation}' timed out after {timeout}s",
            details={"operation": operation, "timeout": timeout},
        )


class SerializationError(CacheError):
    """Raised when a cache payload cannot be encoded or decoded."""
