"""Distribution bus interface - Port definition for in-process pub/sub."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Subscription(ABC):
    """A cancellable stream of the events published on one topic.

    A subscription only sees events published after it was created. Iterating
    it with ``async for`` yields events in publish order and stops once the
    subscription is closed and its buffer is drained.
    """

    @property
    @abstractmethod
    def topic(self) -> str:
        """Topic this subscription listens to."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether close() was called."""
        ...

    @property
    @abstractmethod
    def dropped(self) -> int:
        """Number of events lost to buffer overflow."""
        ...

    @property
    @abstractmethod
    def pending(self) -> int:
        """Number of buffered events not consumed yet."""
        ...

    @abstractmethod
    async def get(self) -> Any:
        """Wait for the next event.

        Raises:
            StopAsyncIteration: If the subscription is closed and drained
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Stop receiving new events. Idempotent."""
        ...

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        return await self.get()


class DistributionBusPort(ABC):
    """Abstract interface for topic-keyed fan-out."""

    @abstractmethod
    async def publish(self, topic: str, event: Any) -> int:
        """Offer an event to every current subscriber of a topic.

        Never blocks on slow subscribers.

        Returns:
            Number of subscriptions the event was offered to
        """
        ...

    @abstractmethod
    async def subscribe(self, topic: str) -> Subscription:
        """Open a new subscription on a topic."""
        ...

    @abstractmethod
    def subscriber_count(self, topic: str) -> int:
        """Number of open subscriptions on a topic."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close every open subscription."""
        ...
