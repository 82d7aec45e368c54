"""Tests for the in-process distribution bus."""

import asyncio
from unittest.mock import MagicMock

import pytest

from quote_pipeline.domain.config import BusConfig
from quote_pipeline.domain.enums import OverflowPolicy
from quote_pipeline.infrastructure.in_memory_bus import InMemoryDistributionBus
from quote_pipeline.infrastructure.in_memory_metrics import InMemoryMetrics
from quote_pipeline.ports.message_bus import DistributionBusPort


async def drain(subscription, count):
    return [await subscription.get() for _ in range(count)]


class TestInMemoryDistributionBus:
    """Test cases for publish and subscribe."""

    def test_implements_port(self, bus):
        assert isinstance(bus, DistributionBusPort)

    @pytest.mark.asyncio
    async def test_every_subscriber_receives_every_event_in_order(self, bus):
        first = await bus.subscribe("market")
        second = await bus.subscribe("market")

        for i in range(5):
            assert await bus.publish("market", i) == 2

        assert await drain(first, 5) == [0, 1, 2, 3, 4]
        assert await drain(second, 5) == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_late_subscriber_sees_only_later_events(self, bus):
        """Test that subscribing does not replay earlier events."""
        early = await bus.subscribe("market")
        await bus.publish("market", "before")
        late = await bus.subscribe("market")
        await bus.publish("market", "after")

        assert await drain(early, 2) == ["before", "after"]
        assert await late.get() == "after"
        assert late.pending == 0

    @pytest.mark.asyncio
    async def test_topics_are_isolated(self, bus):
        market = await bus.subscribe("market")
        other = await bus.subscribe("other")

        await bus.publish("market", "quote")

        assert market.pending == 1
        assert other.pending == 0

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self, bus, metrics):
        assert await bus.publish("market", "lost") == 0
        assert metrics.counter("bus.published") == 1

    @pytest.mark.asyncio
    async def test_empty_topic_rejected(self, bus):
        with pytest.raises(ValueError, match="Topic cannot be empty"):
            await bus.subscribe("  ")

    @pytest.mark.asyncio
    async def test_subscriber_count_tracks_close(self, bus, metrics):
        subscription = await bus.subscribe("market")
        assert bus.subscriber_count("market") == 1
        assert metrics.get_all()["gauges"]["bus.subscribers.market"] == 1

        subscription.close()

        assert bus.subscriber_count("market") == 0
        assert metrics.get_all()["gauges"]["bus.subscribers.market"] == 0

    @pytest.mark.asyncio
    async def test_close_all(self, bus):
        first = await bus.subscribe("market")
        second = await bus.subscribe("other")

        await bus.close()

        assert first.closed and second.closed
        assert bus.subscriber_count("market") == 0


class TestOverflow:
    """Test cases for bounded subscriber buffers."""

    @pytest.mark.asyncio
    async def test_drop_oldest(self):
        metrics = InMemoryMetrics()
        logger = MagicMock()
        bus = InMemoryDistributionBus(
            BusConfig(buffer_size=3, overflow=OverflowPolicy.DROP_OLDEST), metrics, logger
        )
        subscription = await bus.subscribe("market")

        for i in range(5):
            await bus.publish("market", i)

        assert subscription.dropped == 2
        assert await drain(subscription, 3) == [2, 3, 4]
        assert metrics.counter("bus.dropped") == 2
        assert metrics.counter("bus.dropped.market") == 2
        assert logger.warning.call_count == 2

    @pytest.mark.asyncio
    async def test_drop_newest(self):
        metrics = InMemoryMetrics()
        bus = InMemoryDistributionBus(
            BusConfig(buffer_size=3, overflow=OverflowPolicy.DROP_NEWEST), metrics
        )
        subscription = await bus.subscribe("market")

        for i in range(5):
            await bus.publish("market", i)

        assert subscription.dropped == 2
        assert await drain(subscription, 3) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_slow_subscriber_does_not_affect_fast_one(self):
        bus = InMemoryDistributionBus(BusConfig(buffer_size=2))
        slow = await bus.subscribe("market")
        fast = await bus.subscribe("market")

        for i in range(4):
            await bus.publish("market", i)
            assert await fast.get() == i

        assert slow.dropped == 2
        assert fast.dropped == 0


class TestSubscription:
    """Test cases for consuming a subscription."""

    @pytest.mark.asyncio
    async def test_async_iteration_stops_after_close(self, bus):
        subscription = await bus.subscribe("market")
        await bus.publish("market", "a")
        await bus.publish("market", "b")
        subscription.close()

        received = [event async for event in subscription]

        assert received == ["a", "b"]

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self, bus):
        subscription = await bus.subscribe("market")

        async def consume():
            return [event async for event in subscription]

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        subscription.close()

        assert await asyncio.wait_for(task, timeout=1.0) == []

    @pytest.mark.asyncio
    async def test_closed_subscription_receives_nothing(self, bus):
        subscription = await bus.subscribe("market")
        subscription.close()
        subscription.close()

        assert await bus.publish("market", "late") == 0
        with pytest.raises(StopAsyncIteration):
            await subscription.get()
