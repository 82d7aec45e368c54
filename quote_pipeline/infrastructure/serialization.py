"""Serialization of quotes to opaque audit payloads (JSON or MessagePack)."""

from __future__ import annotations

import json

import msgpack
from pydantic import ValidationError

from ..domain.enums import PayloadFormat
from ..domain.exceptions import SerializationError
from ..domain.models import Quote


def serialize_quote(quote: Quote, payload_format: PayloadFormat = PayloadFormat.JSON) -> str | bytes:
    """Encode a quote.

    JSON payloads are returned as text, MessagePack payloads as bytes.
    """
    try:
        if payload_format is PayloadFormat.MSGPACK:
            return bytes(msgpack.packb(quote.model_dump(mode="json"), use_bin_type=True))
        return quote.model_dump_json()
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize quote: {e}") from e


def is_msgpack(data: bytes) -> bool:
    """Check if data looks like a MessagePack map."""
    if not data:
        return False
    first_byte = data[0]
    # fixmap, map16, map32
    return 0x80 <= first_byte <= 0x8F or first_byte in (0xDE, 0xDF)


def deserialize_quote(data: str | bytes) -> Quote:
    """Decode a payload produced by serialize_quote, detecting its format."""
    if not data:
        raise SerializationError("Empty payload")
    try:
        if isinstance(data, bytes) and is_msgpack(data):
            return Quote.model_validate(msgpack.unpackb(data, raw=False))
        text = data.decode() if isinstance(data, bytes) else data
        return Quote.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON payload: {e}") from e
    except ValidationError as e:
        raise SerializationError(f"Payload is not a valid quote: {e}") from e
    except (msgpack.UnpackException, ValueError, UnicodeDecodeError) as e:
        raise SerializationError(f"Failed to deserialize quote: {e}") from e
