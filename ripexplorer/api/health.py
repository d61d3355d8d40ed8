"""
Health check endpoints.

Provides liveness and readiness probes with database and cache checks.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ripexplorer.api.deps import Services, get_services
from ripexplorer.db.database import get_session

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    cache: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check dependencies.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
    services: Annotated[Services, Depends(get_services)],
) -> HealthResponse:
    """
    Readiness probe.

    Checks database connectivity and the cache. Returns 503 if either
    is unavailable.
    """
    try:
        await session.execute(text("SELECT 1"))
        database = "connected"
    except Exception:
        database = "disconnected"

    cache = "connected" if await services.cache.ping() else "disconnected"

    if database != "connected" or cache != "connected":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database=database, cache=cache)
    return HealthResponse(status="ready", database=database, cache=cache)
