"""Durable payload codec.

Values are wrapped in an envelope carrying their write time, ttl and tags so
that a reader can tell whether a durable payload is still live by its own
clock, then the envelope is encoded by a pluggable serializer and optionally
zlib-compressed.
"""

import json
import logging
import pickle
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

from poscache.domain.exceptions import ConfigurationError, SerializationError

logger = logging.getLogger(__name__)

ENVELOPE_FIELDS = ("value", "created_at", "ttl_seconds", "tags")
COMPRESSED_MARKER = b"PZ\x00"
DEFAULT_COMPRESS_LEVEL = 6


@dataclass
class Envelope:
    """A value as written to the Durable Tier."""
    value: Any
    created_at: float
    ttl_seconds: float
    tags: Tuple[str, ...] = field(default_factory=tuple)
    compressed: bool = False

    def is_live(self, now: float) -> bool:
        return now < self.created_at + self.ttl_seconds

    def remaining_ttl(self, now: float) -> float:
        return max(0.0, self.created_at + self.ttl_seconds - now)


class PickleSerializer:
    """Round-trip safe for any picklable value. Only read payloads you wrote."""

    name = "pickle"

    def dumps(self, obj: Any) -> bytes:
        try:
            return pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Value is not picklable: {e}") from e

    def loads(self, payload: bytes) -> Any:
        try:
            return pickle.loads(payload)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, KeyError, ValueError, TypeError) as e:
            raise SerializationError(f"Corrupt pickle payload: {e}") from e


class JsonSerializer:
    """UTF-8 JSON. Limited to JSON-shaped values; tuples come back as lists."""

    name = "json"

    def dumps(self, obj: Any) -> bytes:
        try:
            return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value is not JSON serializable: {e}") from e

    def loads(self, payload: bytes) -> Any:
        try:
            return json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SerializationError(f"Corrupt JSON payload: {e}") from e


Serializer = Union[PickleSerializer, JsonSerializer]

_SERIALIZERS = {
    PickleSerializer.name: PickleSerializer,
    JsonSerializer.name: JsonSerializer,
}


def get_serializer(name: Union[str, Serializer, None]) -> Serializer:
    if name is None:
        return PickleSerializer()
    if not isinstance(name, str):
        return name
    factory = _SERIALIZERS.get(name.strip().lower())
    if factory is None:
        raise ConfigurationError(f"Unknown serializer '{name}'. Expected one of: {', '.join(sorted(_SERIALIZERS))}")
    return factory()


class PayloadCodec:
    """Encodes envelopes to bytes and validates them on the way back.

    A compressed envelope is written as ``COMPRESSED_MARKER`` followed by the
    zlib stream of the serialized record. Neither pickle nor JSON output can
    start with the marker, so plain and compressed payloads share a store.
    """

    def __init__(self, serializer: Union[str, Serializer, None] = None, compress_level: int = DEFAULT_COMPRESS_LEVEL):
        self.serializer = get_serializer(serializer)
        self.compress_level = compress_level

    def encode(self, envelope: Envelope) -> bytes:
        record: Dict[str, Any] = {
            "value": envelope.value,
            "created_at": envelope.created_at,
            "ttl_seconds": envelope.ttl_seconds,
            "tags": list(envelope.tags),
            "compressed": envelope.compressed,
        }
        payload = self.serializer.dumps(record)
        if not envelope.compressed:
            return payload
        packed = COMPRESSED_MARKER + zlib.compress(payload, self.compress_level)
        logger.debug(f"Compressed durable payload {len(payload)} -> {len(packed)} bytes")
        return packed

    def decode(self, payload: bytes) -> Envelope:
        """Decodes bytes into an Envelope, inflating compressed payloads.

        Raises:
            SerializationError: If the bytes do not decode, or decode to
                anything other than a well-formed envelope.
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise SerializationError(f"Expected bytes payload, got {type(payload).__name__}")
        raw = bytes(payload)
        compressed = raw.startswith(COMPRESSED_MARKER)
        if compressed:
            try:
                raw = zlib.decompress(raw[len(COMPRESSED_MARKER):])
            except zlib.error as e:
                raise SerializationError(f"Corrupt compressed payload: {e}") from e
        record = self.serializer.loads(raw)
        if not isinstance(record, dict) or any(f not in record for f in ENVELOPE_FIELDS):
            raise SerializationError("Payload is not a cache envelope")
        try:
            created_at = float(record["created_at"])
            ttl_seconds = float(record["ttl_seconds"])
            tags = tuple(str(t) for t in (record["tags"] or ()))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Malformed envelope metadata: {e}") from e
        return Envelope(
            value=record["value"],
            created_at=created_at,
            ttl_seconds=ttl_seconds,
            tags=tags,
            compressed=compressed,
        )
