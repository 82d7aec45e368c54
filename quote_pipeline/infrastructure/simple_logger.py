"""Logger adapter on top of Python's standard logging."""

import logging
from typing import Any

from ..ports.logger import LoggerPort

# Attributes of logging.LogRecord that ``extra`` is not allowed to overwrite
_RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class SimpleLogger(LoggerPort):
    """LoggerPort implementation using Python's standard logging.

    Keyword fields are appended to the message as ``key=value`` pairs and
    also attached to the record through ``extra``. Fields that collide with
    LogRecord attributes (``name``, ``msg`` ...) are stored with a ``field_``
    prefix instead.
    """

    def __init__(
        self,
        name: str = "quote_pipeline",
        level: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the logger.

        Args:
            name: Logger name (default: "quote_pipeline")
            level: Optional level override; handlers are left to setup_logging
            context: Fields attached to every message of this logger
        """
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level)
        self._context = dict(context or {})

    def bind(self, **context: Any) -> "SimpleLogger":
        """Return a logger that adds the given fields to every message."""
        return SimpleLogger(self._logger.name, context={**self._context, **context})

    def _render(self, message: str, fields: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        merged = {**self._context, **fields}
        if not merged:
            return message, {}
        suffix = " ".join(f"{key}={value}" for key, value in merged.items())
        extra = {(f"field_{k}" if k in _RESERVED else k): v for k, v in merged.items()}
        return f"{message} | {suffix}", extra

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        if self._logger.isEnabledFor(logging.DEBUG):
            text, extra = self._render(message, kwargs)
            self._logger.debug(text, extra=extra)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        text, extra = self._render(message, kwargs)
        self._logger.info(text, extra=extra)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        text, extra = self._render(message, kwargs)
        self._logger.warning(text, extra=extra)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        text, extra = self._render(message, kwargs)
        self._logger.error(text, extra=extra)

    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        text, extra = self._render(message, kwargs)
        self._logger.error(text, exc_info=exc_info or True, extra=extra)
