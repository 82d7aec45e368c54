"""Ports layer - Interfaces for external collaborators."""

from .logger import LoggerPort
from .message_bus import DistributionBusPort, Subscription
from .metrics import MetricsPort
from .service_directory import ServiceDirectoryPort
from .storage import ConnectionPoolPort, StorageConnection

__all__ = [
    "ConnectionPoolPort",
    "DistributionBusPort",
    "LoggerPort",
    "MetricsPort",
    "ServiceDirectoryPort",
    "StorageConnection",
    "Subscription",
]
