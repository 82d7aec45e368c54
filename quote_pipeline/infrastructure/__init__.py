"""Infrastructure layer - Concrete implementations of ports."""

from .config_loader import load_pipeline_config
from .in_memory_bus import InMemoryDistributionBus, QueueSubscription
from .in_memory_directory import InMemoryServiceDirectory
from .in_memory_metrics import InMemoryMetrics
from .logging_config import setup_logging
from .serialization import deserialize_quote, serialize_quote
from .simple_logger import SimpleLogger
from .sqlite_pool import SQLiteConnection, SQLiteConnectionPool

__all__ = [
    "InMemoryDistributionBus",
    "InMemoryMetrics",
    "InMemoryServiceDirectory",
    "QueueSubscription",
    "SQLiteConnection",
    "SQLiteConnectionPool",
    "SimpleLogger",
    "deserialize_quote",
    "load_pipeline_config",
    "serialize_quote",
    "setup_logging",
]
