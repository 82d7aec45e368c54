"""Application layer - quote production, caching, auditing and their composition."""

from .audit_log import AuditLog
from .pipeline import LifecycleManager, QuotePipeline
from .quote_scheduler import QuoteScheduler, start_scheduler
from .snapshot_cache import SnapshotCache

__all__ = [
    "AuditLog",
    "LifecycleManager",
    "QuotePipeline",
    "QuoteScheduler",
    "SnapshotCache",
    "start_scheduler",
]
