"""
Health check endpoints.

Liveness, and readiness covering the portfolio database and whether the
pricing provider is configured.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pokevault.config import settings
from pokevault.db.database import get_session

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    pricing: Literal["configured", "not configured"] | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not check dependencies."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 if the database is unreachable. A missing pricing key is
    reported but does not fail readiness: lookups degrade, portfolios
    still work.
    """
    pricing = "configured" if settings.pokemon_api_key.strip() else "not configured"
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected", pricing=pricing)
    return HealthResponse(status="ready", database="connected", pricing=pricing)
