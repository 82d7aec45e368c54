"""Audit log - durable record of every distributed quote.

Every storage interaction follows the same scoped pattern: lease a connection
from the pool, run the statements, and give the connection back on every exit
path. ``async with pool.connection()`` guarantees the release.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from ..domain.config import DEFAULT_QUERY_LIMIT
from ..domain.enums import PayloadFormat
from ..domain.exceptions import SerializationError, StorageError
from ..domain.models import AuditRecord, Quote
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.serialization import deserialize_quote, serialize_quote

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.message_bus import Subscription
    from ..ports.metrics import MetricsPort
    from ..ports.storage import ConnectionPoolPort

DROP_STATEMENT = "DROP TABLE IF EXISTS AUDIT"
CREATE_TABLE_STATEMENT = (
    "CREATE TABLE IF NOT EXISTS AUDIT "
    "(id INTEGER PRIMARY KEY AUTOINCREMENT, operation NOT NULL)"
)
INSERT_STATEMENT = "INSERT INTO AUDIT (operation) VALUES (?)"
SELECT_STATEMENT = "SELECT id, operation FROM AUDIT ORDER BY id DESC LIMIT ?"


class AuditLog:
    """Persists quotes through a connection pool and serves the latest records.

    Lifecycle: ``initialize()`` must succeed before ``start()`` accepts a
    subscription. Steady-state insert failures are logged and counted, never
    raised; query failures are raised to the caller.
    """

    def __init__(
        self,
        pool: ConnectionPoolPort,
        query_limit: int = DEFAULT_QUERY_LIMIT,
        payload_format: PayloadFormat = PayloadFormat.JSON,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ):
        if query_limit < 1:
            raise ValueError("query_limit must be positive")
        self._pool = pool
        self._query_limit = query_limit
        self._payload_format = payload_format
        self._logger = logger
        self._metrics = metrics or InMemoryMetrics()

        self._ready = False
        self._subscription: Subscription | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[bool]] = set()
        # At most one persistence task per pooled connection
        self._slots = asyncio.Semaphore(pool.size)

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def query_limit(self) -> int:
        return self._query_limit

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def initialize(self, drop_existing: bool = False) -> None:
        """Create the audit table, dropping the previous one first if asked.

        The statements run one after the other on a single connection; if the
        drop fails the create is not attempted.

        Raises:
            ConnectionError: If no connection could be obtained
            PersistenceError: If a statement failed
        """
        self._ready = False
        statements = [DROP_STATEMENT] if drop_existing else []
        statements.append(CREATE_TABLE_STATEMENT)

        try:
            async with self._pool.connection() as conn:
                for statement in statements:
                    await conn.execute(statement)
        except StorageError as e:
            if self._logger:
                self._logger.error(
                    "Audit log initialization failed", drop=drop_existing, error=e.message
                )
            raise

        self._ready = True
        if self._logger:
            self._logger.info("Audit log ready", drop=drop_existing)

    async def on_event(self, quote: Quote) -> bool:
        """Persist one quote, best effort.

        Returns:
            True if the quote was stored, False if storing it failed
        """
        try:
            payload = serialize_quote(quote, self._payload_format)
            async with self._pool.connection() as conn:
                await conn.execute(INSERT_STATEMENT, (payload,))
        except StorageError as e:
            self._metrics.increment("audit.failed")
            if self._logger:
                self._logger.error(
                    "Failed to insert quote in the audit log",
                    instrument=quote.name,
                    error=e.message,
                )
            return False

        self._metrics.increment("audit.persisted")
        return True

    async def query(self, limit: int | None = None) -> list[AuditRecord]:
        """Most recent audit records, newest first.

        Args:
            limit: Maximum number of records (default: the configured query limit)

        Raises:
            ConnectionError: If no connection could be obtained
            PersistenceError: If the query failed or a payload could not be decoded
        """
        limit = self._query_limit if limit is None else limit
        if limit < 0:
            raise ValueError("limit cannot be negative")

        async with self._pool.connection() as conn:
            rows = await conn.fetch_all(SELECT_STATEMENT, (limit,))
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: tuple[Any, ...]) -> AuditRecord:
        record_id, payload = row[0], row[1]
        try:
            return AuditRecord(id=record_id, operation=deserialize_quote(payload))
        except SerializationError as e:
            raise SerializationError(
                f"Corrupt audit record {record_id}: {e.message}", statement=SELECT_STATEMENT
            ) from e

    def start(self, subscription: Subscription) -> None:
        """Begin persisting every event received on a subscription.

        Raises:
            RuntimeError: If initialize() has not succeeded
        """
        if not self._ready:
            raise RuntimeError("Audit log is not initialized")
        if self._consumer is not None and not self._consumer.done():
            raise RuntimeError("Audit log is already consuming")
        self._subscription = subscription
        self._consumer = asyncio.create_task(self._consume(subscription), name="audit-log")

    async def _consume(self, subscription: Subscription) -> None:
        async for event in subscription:
            if not isinstance(event, Quote):
                try:
                    event = Quote.model_validate(event)
                except ValueError as e:
                    self._metrics.increment("audit.failed")
                    if self._logger:
                        self._logger.error("Ignoring malformed quote event", error=str(e))
                    continue
            await self._slots.acquire()
            task = asyncio.create_task(self._persist(event))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _persist(self, quote: Quote) -> bool:
        try:
            return await self.on_event(quote)
        except Exception as e:
            self._metrics.increment("audit.failed")
            if self._logger:
                self._logger.exception("Unexpected audit failure", exc_info=e, instrument=quote.name)
            return False
        finally:
            self._slots.release()

    async def stop(self) -> None:
        """Stop consuming and wait for every in-flight insert to finish."""
        if self._subscription is not None:
            self._subscription.close()
        if self._consumer is not None:
            await self._consumer
        if self._in_flight:
            await asyncio.gather(*self._in_flight)
        self._subscription = None
        self._consumer = None
