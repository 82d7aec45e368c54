"""In-memory metrics implementation.

Counters, gauges and value summaries kept in process memory. Depends only on
the metrics port.
"""

import time
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..ports.metrics import MetricsPort


class MetricsSummary:
    """Running count/min/max/average of recorded values."""

    def __init__(self) -> None:
        self.count: int = 0
        self.total: float = 0.0
        self.min: float = float("inf")
        self.max: float = float("-inf")

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    @property
    def average(self) -> float:
        return self.total / self.count if self.count > 0 else 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "average": round(self.average, 3),
            "min": round(self.min, 3) if self.count > 0 else 0,
            "max": round(self.max, 3) if self.count > 0 else 0,
        }


class InMemoryMetrics(MetricsPort):
    """In-memory implementation of the MetricsPort."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._gauges: dict[str, float] = {}
        self._summaries: dict[str, MetricsSummary] = defaultdict(MetricsSummary)
        self._start_time = time.monotonic()

    def increment(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def record(self, name: str, value: float) -> None:
        self._summaries[name].add(value)

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Record the duration of the block in milliseconds."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)

    def counter(self, name: str) -> int:
        """Current value of a counter, 0 if never incremented."""
        return self._counters.get(name, 0)

    def get_all(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(time.monotonic() - self._start_time, 3),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "summaries": {name: s.to_dict() for name, s in self._summaries.items()},
        }

    def reset(self) -> None:
        self._counters.clear()
        self._gauges.clear()
        self._summaries.clear()
        self._start_time = time.monotonic()
