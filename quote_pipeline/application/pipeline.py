"""Quote pipeline - composes generator, distribution, cache and audit log."""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING

from ..domain.config import PipelineConfig
from ..domain.enums import LifecycleState, RecordType
from ..infrastructure.in_memory_bus import InMemoryDistributionBus
from ..infrastructure.in_memory_directory import InMemoryServiceDirectory
from ..infrastructure.in_memory_metrics import InMemoryMetrics
from ..infrastructure.sqlite_pool import SQLiteConnectionPool
from .audit_log import AuditLog
from .quote_scheduler import QuoteScheduler
from .snapshot_cache import SnapshotCache

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.message_bus import DistributionBusPort
    from ..ports.metrics import MetricsPort
    from ..ports.service_directory import ServiceDirectoryPort
    from ..ports.storage import ConnectionPoolPort


# Legal moves of a pipeline; FAILED is reachable from anywhere through fail()
PIPELINE_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.INITIALIZING: frozenset({LifecycleState.STARTING}),
    LifecycleState.STARTING: frozenset({LifecycleState.STARTED}),
    LifecycleState.STARTED: frozenset({LifecycleState.STOPPING}),
    LifecycleState.FAILED: frozenset({LifecycleState.STOPPING}),
    LifecycleState.STOPPING: frozenset({LifecycleState.STOPPED}),
    LifecycleState.STOPPED: frozenset(),
}


class LifecycleManager:
    """Tracks where a pipeline is between construction and shutdown.

    A pipeline is single-use: it is started once and, after stopping, stays
    STOPPED because its connection pool has been closed.
    """

    def __init__(self, logger: LoggerPort | None = None) -> None:
        self._state = LifecycleState.INITIALIZING
        self._lock = asyncio.Lock()
        self._logger = logger

    async def advance(self, target: LifecycleState) -> None:
        """Move to ``target``.

        Raises:
            RuntimeError: If the pipeline cannot reach ``target`` from its current state
        """
        async with self._lock:
            if target not in PIPELINE_TRANSITIONS[self._state]:
                raise RuntimeError(
                    f"Pipeline is {self._state.value}, it cannot become {target.value}"
                )
            previous, self._state = self._state, target
        if self._logger:
            self._logger.info(f"Pipeline {target.value.lower()}", previous=previous.value)

    def fail(self) -> None:
        self._state = LifecycleState.FAILED
        if self._logger:
            self._logger.error("Pipeline failed")

    @property
    def state(self) -> LifecycleState:
        return self._state


class QuotePipeline:
    """Wires the quote generators to the snapshot cache and the audit log.

    No quote flows until every part is ready: the audit table exists, both
    subscribers are attached, and only then do the schedulers start ticking.
    """

    def __init__(
        self,
        config: PipelineConfig,
        bus: DistributionBusPort | None = None,
        directory: ServiceDirectoryPort | None = None,
        pool: ConnectionPoolPort | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
        rng: random.Random | None = None,
    ):
        self._config = config
        self._logger = logger
        self._metrics = metrics or InMemoryMetrics()
        self._bus = bus or InMemoryDistributionBus(config.bus, self._metrics, logger)
        self._directory = directory or InMemoryServiceDirectory(self._bus, logger)
        self._pool = pool or SQLiteConnectionPool(config.audit.storage, logger)
        self._rng = rng or random.Random()  # nosec B311 - simulation, not crypto

        self._cache = SnapshotCache(logger, self._metrics)
        self._audit_log = AuditLog(
            self._pool,
            query_limit=config.audit.query_limit,
            payload_format=config.audit.payload_format,
            logger=logger,
            metrics=self._metrics,
        )
        self._schedulers = [
            QuoteScheduler(
                generator,
                self._bus,
                topic=config.topic,
                rng=random.Random(self._rng.random()),  # nosec B311
                logger=logger,
                metrics=self._metrics,
            )
            for generator in config.generators
        ]
        self._lifecycle = LifecycleManager(logger)

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def schedulers(self) -> list[QuoteScheduler]:
        return list(self._schedulers)

    @property
    def bus(self) -> DistributionBusPort:
        return self._bus

    @property
    def directory(self) -> ServiceDirectoryPort:
        return self._directory

    @property
    def metrics(self) -> MetricsPort:
        return self._metrics

    async def start(self) -> None:
        """Start every component, or none of them.

        Raises:
            ConnectionError: If the audit store is unreachable
            PersistenceError: If the audit table could not be prepared
            DiscoveryError: If the market source cannot be attached to
        """
        await self._lifecycle.advance(LifecycleState.STARTING)
        try:
            await self._audit_log.initialize(self._config.audit.drop)
            await self._directory.publish(
                self._config.source_name,
                {"address": self._config.topic},
                record_type=RecordType.MESSAGE_SOURCE,
            )
            self._cache.start(await self._directory.lookup_consumer(self._config.source_name))
            self._audit_log.start(await self._directory.lookup_consumer(self._config.source_name))
            for scheduler in self._schedulers:
                await scheduler.start()
        except Exception as e:
            if self._logger:
                self._logger.exception("Pipeline failed to start", exc_info=e)
            await self._shutdown()
            self._lifecycle.fail()
            raise

        await self._lifecycle.advance(LifecycleState.STARTED)
        if self._logger:
            self._logger.info(
                "Pipeline running",
                instruments=[s.name for s in self._schedulers],
                topic=self._config.topic,
            )

    async def stop(self) -> None:
        """Stop producing, drain the subscribers and release storage."""
        await self._lifecycle.advance(LifecycleState.STOPPING)
        await self._shutdown()
        await self._lifecycle.advance(LifecycleState.STOPPED)

    async def _shutdown(self) -> None:
        # Producers first, so the subscribers see every quote that was published
        for scheduler in self._schedulers:
            await scheduler.stop()
        await self._directory.unpublish(self._config.source_name)
        await self._cache.teardown()
        await self._audit_log.stop()
        await self._pool.close()
