"""Quote pipeline - simulated market quotes, fanned out to a cache and an audit log.

Generators evolve instrument prices with a geometric random process and
publish quotes on an in-process distribution bus. Two subscribers consume
the stream: a snapshot cache holding the latest quote per instrument, and an
audit log persisting every quote to SQLite.
"""

from .application import AuditLog, QuotePipeline, QuoteScheduler, SnapshotCache, start_scheduler
from .domain import (
    AuditRecord,
    GeneratorConfig,
    PipelineConfig,
    Quote,
    QuoteNotFoundError,
    QuotePipelineError,
)

__version__ = "0.1.0"

__all__ = [
    "AuditLog",
    "AuditRecord",
    "GeneratorConfig",
    "PipelineConfig",
    "Quote",
    "QuoteNotFoundError",
    "QuotePipeline",
    "QuotePipelineError",
    "QuoteScheduler",
    "SnapshotCache",
    "start_scheduler",
]
