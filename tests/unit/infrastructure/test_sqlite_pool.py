"""Tests for the SQLite connection pool."""

import asyncio

import pytest

from quote_pipeline.domain.config import StorageConfig
from quote_pipeline.domain.exceptions import ConnectionError, PersistenceError
from quote_pipeline.infrastructure.sqlite_pool import SQLiteConnectionPool
from quote_pipeline.ports.storage import ConnectionPoolPort


class TestSQLiteConnectionPool:
    """Test cases for connection leasing."""

    @pytest.mark.asyncio
    async def test_implements_port(self, pool):
        assert isinstance(pool, ConnectionPoolPort)
        assert pool.size == 2

    @pytest.mark.asyncio
    async def test_execute_and_fetch(self, pool):
        async with pool.connection() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")
            assert await conn.execute("INSERT INTO t (v) VALUES (?)", (7,)) == 1
            assert await conn.fetch_all("SELECT v FROM t") == [(7,)]

    @pytest.mark.asyncio
    async def test_writes_are_visible_across_connections(self, pool):
        """Test that connections run in autocommit mode."""
        async with pool.connection() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")
            await conn.execute("INSERT INTO t (v) VALUES (1)")

        first = pool.connection()
        await first.__aenter__()
        try:
            async with pool.connection() as other:
                assert await other.fetch_all("SELECT v FROM t") == [(1,)]
        finally:
            await first.__aexit__(None, None, None)

    @pytest.mark.asyncio
    async def test_connection_released_on_error(self, pool):
        """Test that a failing statement still gives the connection back."""
        with pytest.raises(PersistenceError) as exc_info:
            async with pool.connection() as conn:
                await conn.execute("SELECT * FROM missing_table")

        assert exc_info.value.statement == "SELECT * FROM missing_table"
        assert pool.in_use == 0

    @pytest.mark.asyncio
    async def test_connection_released_on_foreign_exception(self, pool):
        with pytest.raises(RuntimeError):
            async with pool.connection():
                raise RuntimeError("boom")
        assert pool.in_use == 0

    @pytest.mark.asyncio
    async def test_acquire_timeout(self, tmp_path):
        pool = SQLiteConnectionPool(
            StorageConfig(database=str(tmp_path / "t.db"), pool_size=1, acquire_timeout=0.05)
        )
        async with pool.connection():
            with pytest.raises(ConnectionError, match="No storage connection available"):
                async with pool.connection():
                    pass
        await pool.close()

    @pytest.mark.asyncio
    async def test_waiter_gets_released_connection(self, tmp_path):
        pool = SQLiteConnectionPool(
            StorageConfig(database=str(tmp_path / "t.db"), pool_size=1, acquire_timeout=1.0)
        )
        release = asyncio.Event()

        async def holder():
            async with pool.connection():
                await release.wait()

        task = asyncio.create_task(holder())
        await asyncio.sleep(0.01)
        release.set()
        async with pool.connection() as conn:
            assert await conn.fetch_all("SELECT 1") == [(1,)]
        await task
        await pool.close()

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        """Test that an unopenable database raises ConnectionError."""
        pool = SQLiteConnectionPool(
            StorageConfig(database=str(tmp_path / "missing" / "audit.db"))
        )
        with pytest.raises(ConnectionError, match="Cannot open database"):
            async with pool.connection():
                pass
        assert pool.in_use == 0
        await pool.close()

    @pytest.mark.asyncio
    async def test_closed_pool_refuses_leases(self, pool):
        await pool.close()
        assert pool.closed
        with pytest.raises(ConnectionError, match="closed"):
            async with pool.connection():
                pass

    @pytest.mark.asyncio
    async def test_close_waits_for_leased_connections(self, pool):
        release = asyncio.Event()
        leased = asyncio.Event()

        async def holder():
            async with pool.connection() as conn:
                leased.set()
                await release.wait()
                return await conn.fetch_all("SELECT 1")

        task = asyncio.create_task(holder())
        await leased.wait()
        closing = asyncio.create_task(pool.close())
        await asyncio.sleep(0.01)
        assert not closing.done()

        release.set()
        assert await task == [(1,)]
        await asyncio.wait_for(closing, timeout=1.0)
        assert pool.in_use == 0
