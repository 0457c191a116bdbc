"""Liveness endpoint for container healthchecks."""

from __future__ import annotations

from fastapi import APIRouter

from jobdesk import __version__
from jobdesk.api.deps import Context
from jobdesk.api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(ctx: Context) -> HealthResponse:
    return HealthResponse(version=__version__, store_backend=ctx.settings.store_backend)
