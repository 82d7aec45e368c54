"""Domain enums for type safety and consistency."""

from enum import Enum


class LifecycleState(str, Enum):
    """Pipeline lifecycle states."""

    INITIALIZING = "INITIALIZING"
    STARTING = "STARTING"
    STARTED = "STARTED"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


class OverflowPolicy(str, Enum):
    """What a full subscription buffer does with a new event.

    Publishing never blocks, so a slow subscriber always loses events
    rather than slowing the producer down.
    """

    DROP_OLDEST = "drop_oldest"  # Evict the oldest buffered event
    DROP_NEWEST = "drop_newest"  # Discard the incoming event


class RecordType(str, Enum):
    """Kinds of records held by the service directory."""

    MESSAGE_SOURCE = "message-source"
    HTTP_ENDPOINT = "http-endpoint"


class PayloadFormat(str, Enum):
    """Encoding of audit payloads."""

    JSON = "json"
    MSGPACK = "msgpack"
