"""Snapshot cache - the latest quote per instrument."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any

from ..domain.exceptions import QuoteNotFoundError
from ..domain.models import Quote

if TYPE_CHECKING:
    from ..ports.logger import LoggerPort
    from ..ports.message_bus import Subscription
    from ..ports.metrics import MetricsPort


class SnapshotCache:
    """Keeps the most recent quote of every instrument seen on a subscription.

    Writes come from a single consumption task and the HTTP handlers read on
    the same event loop. The mapping is still guarded by a lock so that reads
    stay consistent if a consumer or reader is moved to a worker thread, and
    ``get_all`` always returns a copy.
    """

    def __init__(self, logger: LoggerPort | None = None, metrics: MetricsPort | None = None):
        self._quotes: dict[str, Quote] = {}
        self._lock = threading.Lock()
        self._logger = logger
        self._metrics = metrics
        self._subscription: Subscription | None = None
        self._task: asyncio.Task[None] | None = None

    def on_event(self, quote: Quote) -> None:
        """Store a quote, replacing the previous one for the same instrument."""
        with self._lock:
            self._quotes[quote.name] = quote
        if self._metrics:
            self._metrics.increment("cache.updates")

    def get(self, name: str) -> Quote:
        """Latest quote of an instrument.

        Raises:
            QuoteNotFoundError: If no quote was received for that name
        """
        with self._lock:
            quote = self._quotes.get(name)
        if quote is None:
            raise QuoteNotFoundError(name)
        return quote

    def get_all(self) -> dict[str, Quote]:
        """Point-in-time copy of every snapshot, keyed by instrument name."""
        with self._lock:
            return dict(self._quotes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._quotes)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._quotes

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, subscription: Subscription) -> None:
        """Begin consuming quotes from a subscription."""
        if self.is_running:
            raise RuntimeError("Snapshot cache is already consuming")
        self._subscription = subscription
        self._task = asyncio.create_task(self._consume(subscription), name="snapshot-cache")

    async def _consume(self, subscription: Subscription) -> None:
        async for event in subscription:
            try:
                self.on_event(_as_quote(event))
            except Exception as e:
                if self._logger:
                    self._logger.error(
                        "Ignoring malformed quote event",
                        topic=subscription.topic,
                        error=str(e),
                    )

    async def teardown(self) -> None:
        """Stop consuming, wait for the consumption task and clear every snapshot."""
        if self._subscription is not None:
            self._subscription.close()
        if self._task is not None:
            await self._task
        self._subscription = None
        self._task = None
        with self._lock:
            self._quotes.clear()


def _as_quote(event: Any) -> Quote:
    if isinstance(event, Quote):
        return event
    return Quote.model_validate(event)
