"""Pytest configuration and shared fixtures."""

import random

import pytest
import pytest_asyncio

from quote_pipeline.domain.config import BusConfig, StorageConfig
from quote_pipeline.domain.models import Quote
from quote_pipeline.infrastructure.in_memory_bus import InMemoryDistributionBus
from quote_pipeline.infrastructure.in_memory_metrics import InMemoryMetrics
from quote_pipeline.infrastructure.sqlite_pool import SQLiteConnectionPool


def make_quote(name: str = "MacroHard", **overrides) -> Quote:
    """Build a valid quote, overriding any field."""
    fields = {
        "symbol": name[:3].upper(),
        "name": name,
        "bid": 99.5,
        "ask": 100.5,
        "volume": 10000,
        "open": 100.0,
        "shares": 5000,
    }
    fields.update(overrides)
    return Quote(**fields)


@pytest.fixture
def quote_factory():
    """Factory for valid quotes."""
    return make_quote


@pytest.fixture
def rng():
    """Seeded random source for reproducible sequences."""
    return random.Random(42)


@pytest.fixture
def metrics():
    return InMemoryMetrics()


@pytest.fixture
def bus(metrics):
    """Distribution bus with a small buffer."""
    return InMemoryDistributionBus(BusConfig(buffer_size=64), metrics)


@pytest.fixture
def storage_config(tmp_path):
    """Storage settings pointing at a fresh database file."""
    return StorageConfig(database=str(tmp_path / "audit.db"), pool_size=2, acquire_timeout=1.0)


@pytest_asyncio.fixture
async def pool(storage_config):
    """SQLite pool on a temporary database, closed after the test."""
    pool = SQLiteConnectionPool(storage_config)
    yield pool
    await pool.close()
