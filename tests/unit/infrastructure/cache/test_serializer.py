import pickle
import zlib
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest

from poscache.domain.exceptions import ConfigurationError, SerializationError
from poscache.infrastructure.cache.serializer import (
    COMPRESSED_MARKER,
    Envelope,
    JsonSerializer,
    PayloadCodec,
    PickleSerializer,
    get_serializer,
)


@dataclass
class Receipt:
    number: str
    total: Decimal
    issued: datetime


def test_pickle_codec_preserves_rich_values():
    """Tuples, Decimals, datetimes and dataclasses survive the durable round trip."""
    codec = PayloadCodec("pickle")
    value = Receipt("R-1", Decimal("19.99"), datetime(2026, 1, 2, 3, 4, 5))
    envelope = Envelope(value=(value, {"lines": 2}), created_at=100.0, ttl_seconds=60, tags=("reports",))
    decoded = codec.decode(codec.encode(envelope))
    assert decoded == envelope


def test_json_codec_for_json_shaped_values():
    codec = PayloadCodec("json")
    envelope = Envelope(value={"sku": "A", "qty": 3}, created_at=1.5, ttl_seconds=30, tags=())
    payload = codec.encode(envelope)
    assert payload.startswith(b"{")
    assert codec.decode(payload) == envelope


def test_json_rejects_unserializable_value():
    with pytest.raises(SerializationError):
        PayloadCodec("json").encode(Envelope(value=object(), created_at=0, ttl_seconds=1))


@pytest.mark.parametrize("payload", [
    b"\x00not a pickle",
    b"",
    pickle.dumps("just a string"),
    pickle.dumps({"value": 1}),
    pickle.dumps({"value": 1, "created_at": "yesterday", "ttl_seconds": 5, "tags": []}),
])
def test_malformed_payloads_raise_serialization_error(payload):
    with pytest.raises(SerializationError):
        PayloadCodec().decode(payload)


def test_non_bytes_payload_is_rejected():
    with pytest.raises(SerializationError):
        PayloadCodec().decode("text")


def test_envelope_liveness():
    envelope = Envelope(value=1, created_at=100.0, ttl_seconds=10)
    assert envelope.is_live(109.9)
    assert not envelope.is_live(110.0)
    assert envelope.remaining_ttl(104.0) == pytest.approx(6.0)
    assert envelope.remaining_ttl(200.0) == 0.0


def test_get_serializer():
    assert isinstance(get_serializer(None), PickleSerializer)
    assert isinstance(get_serializer("JSON"), JsonSerializer)
    custom = JsonSerializer()
    assert get_serializer(custom) is custom
    with pytest.raises(ConfigurationError):
        get_serializer("msgpack")


@pytest.mark.parametrize("name", ["pickle", "json"])
def test_compressed_envelope_round_trip(name):
    codec = PayloadCodec(name)
    envelope = Envelope(value={"sku": "A" * 500}, created_at=10.0, ttl_seconds=60, tags=("products",), compressed=True)
    payload = codec.encode(envelope)
    assert payload.startswith(COMPRESSED_MARKER)
    assert len(payload) < len(codec.encode(Envelope(value={"sku": "A" * 500}, created_at=10.0, ttl_seconds=60)))
    decoded = codec.decode(payload)
    assert decoded.compressed is True
    assert decoded == envelope


def test_plain_payload_decodes_as_uncompressed():
    codec = PayloadCodec()
    assert codec.decode(codec.encode(Envelope(value=1, created_at=0, ttl_seconds=5))).compressed is False


@pytest.mark.parametrize("payload", [
    COMPRESSED_MARKER + b"junk",
    COMPRESSED_MARKER,
    COMPRESSED_MARKER + zlib.compress(b"\x00not a pickle"),
])
def test_corrupt_compressed_payload_raises_serialization_error(payload):
    with pytest.raises(SerializationError):
        PayloadCodec().decode(payload)
