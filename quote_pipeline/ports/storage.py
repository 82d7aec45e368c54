"""Storage port - connection-scoped access to the audit store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class StorageConnection(Protocol):
    """A single leased storage connection.

    Only valid inside the ``async with`` block that acquired it. Statement
    failures raise ``PersistenceError``.
    """

    async def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement and return the affected row count."""
        ...

    async def fetch_all(self, statement: str, params: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        """Execute a query and return every row."""
        ...


class ConnectionPoolPort(ABC):
    """Abstract interface for a bounded pool of storage connections."""

    @abstractmethod
    def connection(self) -> AbstractAsyncContextManager[StorageConnection]:
        """Lease a connection for the duration of an ``async with`` block.

        The connection goes back to the pool on every exit path.

        Raises:
            ConnectionError: If no connection can be obtained
        """
        ...

    @property
    @abstractmethod
    def size(self) -> int:
        """Maximum number of simultaneously leased connections."""
        ...

    @property
    @abstractmethod
    def in_use(self) -> int:
        """Number of currently leased connections."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Wait for leased connections to be released, then close everything."""
        ...
