"""FastAPI dependency injection setup.

The running pipeline is owned by the application lifespan and kept on
``app.state``; route handlers reach its components through these getters.
"""

from __future__ import annotations

from fastapi import Request

from ...application.audit_log import AuditLog
from ...application.pipeline import QuotePipeline
from ...application.snapshot_cache import SnapshotCache


def get_pipeline(request: Request) -> QuotePipeline:
    """Get the pipeline attached to the application.

    Raises:
        RuntimeError: If the application was created without a pipeline
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise RuntimeError("No quote pipeline is attached to the application")
    return pipeline


def get_snapshot_cache(request: Request) -> SnapshotCache:
    return get_pipeline(request).cache


def get_audit_log(request: Request) -> AuditLog:
    return get_pipeline(request).audit_log
