"""In-process service directory backed by the distribution bus.

Message sources are published with an ``address`` that names a bus topic;
looking one up as a consumer opens a fresh subscription on that topic.
"""

from __future__ import annotations

from typing import Any

from ..domain.enums import RecordType
from ..domain.exceptions import DiscoveryError
from ..domain.models import ServiceRecord
from ..ports.logger import LoggerPort
from ..ports.message_bus import DistributionBusPort, Subscription
from ..ports.service_directory import ServiceDirectoryPort


class InMemoryServiceDirectory(ServiceDirectoryPort):
    """Service directory kept in memory, for a single process."""

    def __init__(self, bus: DistributionBusPort, logger: LoggerPort | None = None):
        self._bus = bus
        self._logger = logger
        self._records: dict[str, ServiceRecord] = {}

    async def publish(
        self,
        name: str,
        location: dict[str, Any],
        record_type: RecordType = RecordType.MESSAGE_SOURCE,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceRecord:
        if record_type is RecordType.MESSAGE_SOURCE and not location.get("address"):
            raise ValueError("A message source location needs an 'address'")

        record = ServiceRecord(
            name=name,
            record_type=record_type,
            location=dict(location),
            metadata=dict(metadata or {}),
        )
        self._records[record.name] = record
        if self._logger:
            self._logger.info(
                "Record published",
                record=record.name,
                record_type=record.record_type.value,
                location=record.location,
            )
        return record

    async def unpublish(self, name: str) -> bool:
        removed = self._records.pop(name, None) is not None
        if removed and self._logger:
            self._logger.info("Record unpublished", record=name)
        return removed

    async def lookup(self, name: str) -> ServiceRecord:
        record = self._records.get(name)
        if record is None:
            raise DiscoveryError(f"No record named '{name}'", record_name=name)
        return record

    async def lookup_consumer(self, name: str) -> Subscription:
        record = await self.lookup(name)
        if record.record_type is not RecordType.MESSAGE_SOURCE:
            raise DiscoveryError(
                f"Record '{name}' is a {record.record_type.value}, not a message source",
                record_name=name,
            )
        return await self._bus.subscribe(record.location["address"])

    def records(self) -> list[ServiceRecord]:
        """All published records (useful for testing)."""
        return list(self._records.values())
