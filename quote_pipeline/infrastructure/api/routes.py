"""API routes for querying quotes and the audit trail.

Handlers are thin: they read from the snapshot cache or the audit log and let
domain exceptions propagate to the registered error handlers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...application.audit_log import AuditLog
from ...application.pipeline import QuotePipeline
from ...application.snapshot_cache import SnapshotCache
from ...domain.enums import LifecycleState
from ...domain.models import AuditRecord
from .dependencies import get_audit_log, get_pipeline, get_snapshot_cache


class HealthResponse(BaseModel):
    """API response model for health endpoint."""

    status: str
    state: str
    instruments: list[str]
    cached: int
    metrics: dict[str, Any]


router = APIRouter()


@router.get("/quotes", response_model=None)
async def get_quotes(
    name: str | None = Query(None, description="Instrument name"),
    cache: SnapshotCache = Depends(get_snapshot_cache),  # noqa: B008
) -> dict[str, Any]:
    """Latest quote per instrument, or the latest quote of one instrument."""
    if name is not None:
        return cache.get(name).model_dump()
    return {key: quote.model_dump() for key, quote in cache.get_all().items()}


@router.get("/audit", response_model=list[AuditRecord])
async def get_audit(
    limit: int | None = Query(None, ge=0, le=1000, description="Maximum number of records"),
    audit_log: AuditLog = Depends(get_audit_log),  # noqa: B008
) -> list[AuditRecord]:
    """Most recent audit records, newest first."""
    return await audit_log.query(limit)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    pipeline: QuotePipeline = Depends(get_pipeline),  # noqa: B008
) -> HealthResponse:
    """Pipeline lifecycle state and counters."""
    state = pipeline.state
    return HealthResponse(
        status="healthy" if state is LifecycleState.STARTED else "unhealthy",
        state=state.value,
        instruments=[s.name for s in pipeline.schedulers],
        cached=len(pipeline.cache),
        metrics=pipeline.metrics.get_all(),
    )
