"""Logger port - structured log events emitted by pipeline components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class LoggerPort(ABC):
    """Where schedulers, subscribers and storage report what they do.

    Every call takes a short event message plus keyword fields such as
    ``instrument=`` or ``topic=``; adapters decide how fields are rendered.
    """

    @abstractmethod
    def debug(self, message: str, **kwargs: Any) -> None: ...

    @abstractmethod
    def info(self, message: str, **kwargs: Any) -> None: ...

    @abstractmethod
    def warning(self, message: str, **kwargs: Any) -> None:
        """Report a degraded condition, e.g. a dropped event or an overrun tick."""
        ...

    @abstractmethod
    def error(self, message: str, **kwargs: Any) -> None:
        """Report a failed operation that the component recovered from."""
        ...

    @abstractmethod
    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        """Report an unexpected failure together with its traceback."""
        ...

    def bind(self, **context: Any) -> LoggerPort:
        """Logger attaching ``context`` to every event.

        Adapters without context support return themselves, so callers can
        always bind unconditionally.
        """
        return self
