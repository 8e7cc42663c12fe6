"""Liveness endpoint."""
from __future__ import annotations

from fastapi import APIRouter

from loxodon.core.dates import utcnow
from loxodon.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=utcnow())
