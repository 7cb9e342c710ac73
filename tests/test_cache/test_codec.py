"""Tests for cache payload codecs."""

import pytest

from src.cache.codec import COMPRESSION_MARKER, JsonMarkerCodec
from src.cache.errors import SerializationError


class TestJsonMarkerCodec:
    """Tests for JsonMarkerCodec."""

    @pytest.fixture
    def codec(self) -> JsonMarkerCodec:
        """Create codec with compression enabled."""
        return JsonMarkerCodec(enable_compression=True)

    def test_small_payload_is_plain_json(self, codec: JsonMarkerCodec) -> None:
        """Test payloads under the threshold are not marked."""
        encoded = codec.encode({"id": "fallback-apple", "name": "Apple"})
        assert encoded == '{"id":"fallback-apple","name":"Apple"}'
        assert not codec.is_compressed(encoded)

    def test_large_payload_is_marked(self, codec: JsonMarkerCodec) -> None:
        """Test payloads over 1000 characters get the marker."""
        encoded = codec.encode({"blob": "x" * 1200})
        assert encoded.startswith(COMPRESSION_MARKER)
        assert codec.is_compressed(encoded)

    def test_threshold_is_exclusive(self) -> None:
        """Test a payload of exactly the threshold length is not marked."""
        codec = JsonMarkerCodec(enable_compression=True, threshold=7)
        assert codec.encode("abcde") == '"abcde"'

    def test_marker_disabled(self) -> None:
        """Test large payloads stay plain when compression is off."""
        codec = JsonMarkerCodec(enable_compression=False)
        encoded = codec.encode({"blob": "x" * 1200})
        assert not encoded.startswith(COMPRESSION_MARKER)

    def test_decode_strips_marker(self, codec: JsonMarkerCodec) -> None:
        """Test decode removes the marker before parsing."""
        value = {"items": list(range(400))}
        assert codec.decode(codec.encode(value)) == value

    def test_decode_bytes(self, codec: JsonMarkerCodec) -> None:
        """Test decoding raw bytes from Redis."""
        assert codec.decode(b'{"key": "value"}') == {"key": "value"}

    def test_decode_preserves_unicode(self, codec: JsonMarkerCodec) -> None:
        """Test non-ASCII text survives encoding."""
        value = {"name": "Crème brûlée 🍮"}
        assert codec.decode(codec.encode(value)) == value

    def test_decode_invalid_raises(self, codec: JsonMarkerCodec) -> None:
        """Test corrupt payloads raise SerializationError."""
        with pytest.raises(SerializationError):
            codec.decode("{not json")

    def test_encode_unserializable_raises(self, codec: JsonMarkerCodec) -> None:
        """Test values JSON cannot represent raise SerializationError."""
        with pytest.raises(SerializationError):
            codec.encode({"when": object()})
