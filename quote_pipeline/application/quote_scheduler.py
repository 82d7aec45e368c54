"""Quote scheduler - drives the random process engine on a fixed period."""

from __future__ import annotations

import asyncio
import contextlib
import random
import time
from typing import TYPE_CHECKING

from ..domain.config import DEFAULT_TOPIC, GeneratorConfig
from ..domain.models import GeneratorState, Quote
from ..domain.random_process import evolve, initial_state
from ..infrastructure.in_memory_metrics import InMemoryMetrics

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.message_bus import DistributionBusPort
    from ..ports.metrics import MetricsPort


class QuoteScheduler:
    """Periodically evolves one instrument and publishes its quote.

    Ticks run at a fixed rate against a monotonic deadline and never overlap:
    the evolve step and the publish both finish before the next deadline is
    computed. When a tick overruns one or more periods, the missed deadlines
    are skipped rather than replayed and counted as ``scheduler.skipped_ticks``.

    The scheduler instance is the handle returned to its owner: ``start()``
    begins ticking, ``stop()`` lets the in-flight tick finish and ends the loop.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        bus: DistributionBusPort,
        topic: str = DEFAULT_TOPIC,
        rng: random.Random | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ):
        self._config = config
        self._bus = bus
        self._topic = topic
        self._rng = rng or random.Random()  # nosec B311 - simulation, not crypto
        # Every event of this scheduler carries its instrument
        self._logger = logger.bind(instrument=config.name) if logger else None
        self._metrics = metrics or InMemoryMetrics()

        self._state: GeneratorState | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._ticks = 0

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def period_seconds(self) -> float:
        return self._config.period / 1000

    @property
    def state(self) -> GeneratorState | None:
        """Current generator state, None before start()."""
        return self._state

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def prepare(self) -> GeneratorState:
        """Derive the initial state from configuration, if not done yet."""
        if self._state is None:
            self._state = initial_state(self._config, self._rng)
            if self._logger:
                self._logger.info(
                    "Generator initialized",
                    symbol=self._state.symbol,
                    price=self._state.open,
                    volume=self._state.volume,
                    share=self._state.share,
                )
        return self._state

    async def tick(self) -> Quote:
        """Evolve the instrument once and publish the resulting quote."""
        state = self.prepare()
        with self._metrics.timer("scheduler.tick_ms"):
            self._state = evolve(state, self._rng)
            quote = self._state.to_quote()
            await self._bus.publish(self._topic, quote)
        self._ticks += 1
        self._metrics.increment("scheduler.ticks")
        self._metrics.increment("quotes.published")
        return quote

    async def start(self) -> None:
        if self.is_running:
            raise RuntimeError(f"Scheduler for '{self.name}' is already running")
        self.prepare()
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name=f"quote-scheduler-{self.name}")

    async def stop(self) -> None:
        """Stop ticking. The tick in progress, including its publish, completes."""
        self._stopping.set()
        if self._task is None:
            return
        task, self._task = self._task, None
        await task
        if self._logger:
            self._logger.info("Generator stopped", ticks=self._ticks)

    async def _run(self) -> None:
        period = self.period_seconds
        next_deadline = time.monotonic() + period
        while not await self._wait_until(next_deadline):
            try:
                await self.tick()
            except Exception as e:
                # A failing tick must not kill the timer
                if self._logger:
                    self._logger.exception("Tick failed", exc_info=e)
                self._metrics.increment("scheduler.failed_ticks")

            next_deadline += period
            now = time.monotonic()
            if now >= next_deadline:
                missed = int((now - next_deadline) // period) + 1
                next_deadline += missed * period
                self._metrics.increment("scheduler.skipped_ticks", missed)
                if self._logger:
                    self._logger.warning(
                        "Tick overran its period, skipping deadlines",
                        skipped=missed,
                    )

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until the deadline. Returns True if stop() was requested meanwhile."""
        delay = max(deadline - time.monotonic(), 0.0)
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stopping.wait(), timeout=delay)
        return self._stopping.is_set()


async def start_scheduler(
    config: GeneratorConfig | dict,
    bus: DistributionBusPort,
    topic: str = DEFAULT_TOPIC,
    **kwargs,
) -> QuoteScheduler:
    """Validate a generator configuration and start a scheduler for it.

    Raises:
        ConfigurationError: If the configuration is invalid, e.g. has no name
    """
    if not isinstance(config, GeneratorConfig):
        config = GeneratorConfig.from_mapping(config)
    scheduler = QuoteScheduler(config, bus, topic=topic, **kwargs)
    await scheduler.start()
    return scheduler
