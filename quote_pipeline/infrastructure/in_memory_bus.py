"""In-process distribution bus - Concrete implementation of DistributionBusPort.

Each subscription owns a bounded ``asyncio.Queue``. Publishing offers the event
to every queue with ``put_nowait`` so the producer never waits on a consumer.
When a queue is full, the configured ``OverflowPolicy`` decides which event is
lost, and the loss is counted on the subscription, in metrics, and logged.
"""

from __future__ import annotations

import asyncio
from typing import Any

from ..domain.config import BusConfig
from ..domain.enums import OverflowPolicy
from ..ports.logger import LoggerPort
from ..ports.message_bus import DistributionBusPort, Subscription
from ..ports.metrics import MetricsPort
from .in_memory_metrics import InMemoryMetrics

# Sentinel placed in a queue to wake up and end a consumer after close()
_CLOSED = object()


class QueueSubscription(Subscription):
    """Subscription backed by a bounded asyncio queue."""

    def __init__(
        self,
        bus: InMemoryDistributionBus,
        topic: str,
        buffer_size: int,
        overflow: OverflowPolicy,
    ) -> None:
        self._bus = bus
        self._topic = topic
        self._overflow = overflow
        # One extra slot so the close sentinel always fits
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=buffer_size + 1)
        self._buffer_size = buffer_size
        self._closed = False
        self._dropped = 0

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize() - (1 if self._closed and self._queue.qsize() else 0)

    def offer(self, event: Any) -> bool:
        """Buffer an event without blocking.

        Returns:
            False if an event was lost to overflow
        """
        if self._closed:
            return False
        if self._queue.qsize() < self._buffer_size:
            self._queue.put_nowait(event)
            return True

        self._dropped += 1
        if self._overflow is OverflowPolicy.DROP_OLDEST:
            self._queue.get_nowait()
            self._queue.put_nowait(event)
        return False

    async def get(self) -> Any:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED:
            raise StopAsyncIteration
        return event

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._bus._detach(self)


class InMemoryDistributionBus(DistributionBusPort):
    """Topic-keyed fan-out inside a single event loop."""

    def __init__(
        self,
        config: BusConfig | None = None,
        metrics: MetricsPort | None = None,
        logger: LoggerPort | None = None,
    ):
        """Initialize the bus.

        Args:
            config: Buffer bound and overflow policy. If not provided, uses defaults.
            metrics: Optional metrics port. If not provided, uses in-memory metrics.
            logger: Optional logger, used to report dropped events
        """
        self._config = config or BusConfig()
        self._metrics = metrics or InMemoryMetrics()
        self._logger = logger
        self._subscriptions: dict[str, list[QueueSubscription]] = {}

    async def publish(self, topic: str, event: Any) -> int:
        """Offer an event to every subscriber of a topic, in subscription order."""
        # Copy so a subscriber closing mid-publish does not skip its neighbour
        subscribers = list(self._subscriptions.get(topic, ()))
        for subscription in subscribers:
            if not subscription.offer(event):
                self._report_drop(subscription)
        self._metrics.increment("bus.published")
        return len(subscribers)

    def _report_drop(self, subscription: QueueSubscription) -> None:
        self._metrics.increment("bus.dropped")
        self._metrics.increment(f"bus.dropped.{subscription.topic}")
        if self._logger:
            self._logger.warning(
                "Subscriber buffer full, event dropped",
                topic=subscription.topic,
                policy=self._config.overflow.value,
                dropped=subscription.dropped,
            )

    async def subscribe(self, topic: str) -> QueueSubscription:
        if not topic or not topic.strip():
            raise ValueError("Topic cannot be empty")
        subscription = QueueSubscription(
            self, topic, self._config.buffer_size, self._config.overflow
        )
        self._subscriptions.setdefault(topic, []).append(subscription)
        self._metrics.gauge(f"bus.subscribers.{topic}", self.subscriber_count(topic))
        if self._logger:
            self._logger.debug("Subscription opened", topic=topic)
        return subscription

    def _detach(self, subscription: QueueSubscription) -> None:
        subscribers = self._subscriptions.get(subscription.topic)
        if not subscribers or subscription not in subscribers:
            return
        subscribers.remove(subscription)
        if not subscribers:
            del self._subscriptions[subscription.topic]
        self._metrics.gauge(
            f"bus.subscribers.{subscription.topic}", self.subscriber_count(subscription.topic)
        )

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, ()))

    async def close(self) -> None:
        for subscribers in list(self._subscriptions.values()):
            for subscription in list(subscribers):
                subscription.close()
        self._subscriptions.clear()
