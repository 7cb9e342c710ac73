"""Serialization strategies for cache payloads.

The default strategy tags large JSON payloads with a ``compressed:`` marker
but does no byte-level compression yet; a real compressor can replace it
through the ``CacheCodec`` protocol.
"""

import json
from typing import Any, Protocol

from src.cache.errors import SerializationError

COMPRESSION_MARKER = "compressed:"
COMPRESSION_THRESHOLD = 1000  # characters of serialized JSON


class CacheCodec(Protocol):
    """Converts cache payloads to and from their stored string form."""

    def encode(self, data: Any) -> str: ...

    def decode(self, payload: str | bytes) -> Any: ...

    def is_compressed(self, payload: str) -> bool: ...


class JsonMarkerCodec:
    """Compact JSON codec that marks payloads above a size threshold."""

    def __init__(self, enable_compression: bool = True, threshold: int = COMPRESSION_THRESHOLD) -> None:
        self.enable_compression = enable_compression
        self.threshold = threshold

    def encode(self, data: Any) -> str:
        try:
            serialized = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError("Value is not JSON-serializable", details={"error": str(e)}) from e

        if self.enable_compression and len(serialized) > self.threshold:
            return f"{COMPRESSION_MARKER}{serialized}"
        return serialized

    def decode(self, payload: str | bytes) -> Any:
        try:
            if isinstance(payload, bytes):
                payload = payload.decode("utf-8")
            if payload.startswith(COMPRESSION_MARKER):
                payload = payload[len(COMPRESSION_MARKER) :]
            return json.loads(payload)
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError("Stored payload could not be decoded", details={"error": str(e)}) from e

    def is_compressed(self, payload: str) -> bool:
        return payload.startswith(COMPRESSION_MARKER)
