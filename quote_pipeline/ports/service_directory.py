"""Service directory port - publication and lookup of named records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..domain.enums import RecordType
from ..domain.models import ServiceRecord
from .message_bus import Subscription


class ServiceDirectoryPort(ABC):
    """Abstract interface for the service directory.

    Producers publish where they can be reached; consumers look a record up
    by name and attach to it.
    """

    @abstractmethod
    async def publish(
        self,
        name: str,
        location: dict[str, Any],
        record_type: RecordType = RecordType.MESSAGE_SOURCE,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceRecord:
        """Publish a record, replacing any previous record with the same name."""
        ...

    @abstractmethod
    async def unpublish(self, name: str) -> bool:
        """Remove a record.

        Returns:
            True if a record was removed
        """
        ...

    @abstractmethod
    async def lookup(self, name: str) -> ServiceRecord:
        """Get a record by name.

        Raises:
            DiscoveryError: If no record has that name
        """
        ...

    @abstractmethod
    async def lookup_consumer(self, name: str) -> Subscription:
        """Attach a new consumer to a published message source.

        Raises:
            DiscoveryError: If no message source has that name
        """
        ...
