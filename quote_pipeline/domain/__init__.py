"""Domain layer - quotes, generator state, configuration and errors."""

from .config import (
    AuditConfig,
    BusConfig,
    GeneratorConfig,
    PipelineConfig,
    StorageConfig,
)
from .enums import LifecycleState, OverflowPolicy, PayloadFormat, RecordType
from .exceptions import (
    ConfigurationError,
    ConnectionError,
    DiscoveryError,
    PersistenceError,
    QuoteNotFoundError,
    QuotePipelineError,
    SerializationError,
    StorageError,
)
from .models import AuditRecord, GeneratorState, Quote, ServiceRecord
from .random_process import evolve, initial_state

__all__ = [
    "AuditConfig",
    "AuditRecord",
    "BusConfig",
    "ConfigurationError",
    "ConnectionError",
    "DiscoveryError",
    "GeneratorConfig",
    "GeneratorState",
    "LifecycleState",
    "OverflowPolicy",
    "PayloadFormat",
    "PersistenceError",
    "PipelineConfig",
    "Quote",
    "QuoteNotFoundError",
    "QuotePipelineError",
    "RecordType",
    "SerializationError",
    "ServiceRecord",
    "StorageConfig",
    "StorageError",
    "evolve",
    "initial_state",
]
