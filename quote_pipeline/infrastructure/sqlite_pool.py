"""SQLite connection pool - Concrete implementation of ConnectionPoolPort.

Connections are opened lazily up to ``pool_size`` and reused. The sqlite3
driver is blocking, so every call runs in a worker thread through
``asyncio.to_thread``; a leased connection is only ever used by one coroutine
at a time, which is what makes ``check_same_thread=False`` safe here.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from ..domain.config import StorageConfig
from ..domain.exceptions import ConfigurationError, ConnectionError, PersistenceError
from ..ports.logger import LoggerPort
from ..ports.storage import ConnectionPoolPort


class SQLiteConnection:
    """A leased sqlite3 connection exposing the StorageConnection protocol."""

    def __init__(self, raw: sqlite3.Connection) -> None:
        self._raw = raw

    def _run(self, statement: str, params: Sequence[Any]) -> sqlite3.Cursor:
        return self._raw.execute(statement, tuple(params))

    async def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        try:
            cursor = await asyncio.to_thread(self._run, statement, params)
        except sqlite3.Error as e:
            raise PersistenceError(f"Statement failed: {e}", statement=statement) from e
        return cursor.rowcount

    async def fetch_all(self, statement: str, params: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        def query() -> list[tuple[Any, ...]]:
            return self._run(statement, params).fetchall()

        try:
            return await asyncio.to_thread(query)
        except sqlite3.Error as e:
            raise PersistenceError(f"Query failed: {e}", statement=statement) from e


class SQLiteConnectionPool(ConnectionPoolPort):
    """Bounded pool of sqlite3 connections in autocommit mode."""

    def __init__(self, config: StorageConfig | None = None, logger: LoggerPort | None = None):
        """Initialize the pool. No connection is opened until first use.

        Args:
            config: Database location and pool bounds. If not provided, uses defaults.
            logger: Optional logger for connection lifecycle events
        """
        self._config = config or StorageConfig()
        if self._config.pool_size > 1 and self._config.is_private_memory:
            raise ConfigurationError(
                "Pooled connections to a private in-memory database do not share tables",
                field="pool_size",
            )
        self._logger = logger
        self._idle: asyncio.Queue[sqlite3.Connection] = asyncio.Queue()
        self._opened = 0
        self._in_use = 0
        self._closed = False
        self._released = asyncio.Condition()

    @property
    def size(self) -> int:
        return self._config.pool_size

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def closed(self) -> bool:
        return self._closed

    def _open(self) -> sqlite3.Connection:
        return sqlite3.connect(
            self._config.database,
            uri=self._config.uri,
            check_same_thread=False,
            isolation_level=None,
        )

    async def _acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise ConnectionError("Connection pool is closed")

        if self._idle.empty() and self._opened < self._config.pool_size:
            # Reserve the slot before awaiting so concurrent callers cannot overshoot
            self._opened += 1
            try:
                raw = await asyncio.to_thread(self._open)
            except sqlite3.Error as e:
                self._opened -= 1
                raise ConnectionError(
                    f"Cannot open database '{self._config.database}': {e}",
                    details={"database": self._config.database},
                ) from e
            if self._logger:
                self._logger.debug(
                    "Opened storage connection", opened=self._opened, size=self.size
                )
        else:
            try:
                raw = await asyncio.wait_for(self._idle.get(), self._config.acquire_timeout)
            except TimeoutError as e:
                raise ConnectionError(
                    f"No storage connection available within {self._config.acquire_timeout}s",
                    details={"pool_size": self.size},
                ) from e

        self._in_use += 1
        return raw

    async def _release(self, raw: sqlite3.Connection) -> None:
        self._in_use -= 1
        if self._closed:
            await asyncio.to_thread(raw.close)
            self._opened -= 1
        else:
            self._idle.put_nowait(raw)
        async with self._released:
            self._released.notify_all()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[SQLiteConnection]:
        raw = await self._acquire()
        try:
            yield SQLiteConnection(raw)
        finally:
            await self._release(raw)

    async def close(self) -> None:
        """Refuse new leases, wait for leased connections, then close all of them."""
        if self._closed:
            return
        self._closed = True
        async with self._released:
            await self._released.wait_for(lambda: self._in_use == 0)
        while not self._idle.empty():
            raw = self._idle.get_nowait()
            await asyncio.to_thread(raw.close)
            self._opened -= 1
        if self._logger:
            self._logger.info("Storage connection pool closed", database=self._config.database)
