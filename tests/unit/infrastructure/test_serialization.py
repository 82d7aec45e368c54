"""Tests for audit payload serialization."""

import json

import msgpack
import pytest

from quote_pipeline.domain.enums import PayloadFormat
from quote_pipeline.domain.exceptions import SerializationError
from quote_pipeline.infrastructure.serialization import (
    deserialize_quote,
    is_msgpack,
    serialize_quote,
)


class TestSerializeQuote:
    """Test cases for encoding quotes."""

    def test_json_payload_is_text(self, quote_factory):
        payload = serialize_quote(quote_factory(), PayloadFormat.JSON)
        assert isinstance(payload, str)
        assert json.loads(payload)["name"] == "MacroHard"

    def test_msgpack_payload_is_bytes(self, quote_factory):
        payload = serialize_quote(quote_factory(), PayloadFormat.MSGPACK)
        assert isinstance(payload, bytes)
        assert is_msgpack(payload)
        assert msgpack.unpackb(payload, raw=False)["shares"] == 5000

    @pytest.mark.parametrize("payload_format", list(PayloadFormat))
    def test_decodes_either_format(self, quote_factory, payload_format):
        quote = quote_factory(bid=3389.0921)
        assert deserialize_quote(serialize_quote(quote, payload_format)) == quote

    def test_json_bytes_are_accepted(self, quote_factory):
        quote = quote_factory()
        assert deserialize_quote(serialize_quote(quote).encode()) == quote


class TestDeserializeErrors:
    """Test cases for corrupt payloads."""

    @pytest.mark.parametrize("payload", ["", b"", "not json", b"\xff\xfe"])
    def test_garbage(self, payload):
        with pytest.raises(SerializationError):
            deserialize_quote(payload)

    def test_valid_json_invalid_quote(self):
        with pytest.raises(SerializationError, match="not a valid quote"):
            deserialize_quote(json.dumps({"name": "MacroHard"}))

    def test_is_msgpack(self):
        assert is_msgpack(msgpack.packb({"a": 1}))
        assert not is_msgpack(b'{"a": 1}')
        assert not is_msgpack(b"")
