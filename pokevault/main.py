import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pokevault.api import (
    cards_router,
    health_router,
    portfolio_router,
    sets_router,
)
from pokevault.config import settings
from pokevault.db.database import dispose_db, init_db
from pokevault.jobs.refresh_prices import run_periodic_refresh
from pokevault.models.failure import ApiResponse, KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    if not settings.pokemon_api_key.strip():
        logger.warning("PRICING_NOT_CONFIGURED", extra={"setting": "POKEMON_API_KEY"})
    refresh_task = None
    if settings.price_refresh_enabled:
        refresh_task = asyncio.create_task(
            run_periodic_refresh(settings.price_refresh_interval_seconds)
        )
    yield
    if refresh_task is not None:
        refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await refresh_task
    await dispose_db()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("pokevault"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render known failures as an ApiResponse envelope with their status code."""
    logger.info(
        "KNOWN_FAILURE",
        extra={"kind": exc.kind.value, "status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected exceptions as an unknown failure."""
    logger.exception(
        "UNKNOWN_FAILURE",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=500,
        content=ApiResponse.unknown_failure(detail=type(exc).__name__).model_dump(mode="json"),
    )


app.include_router(cards_router)
app.include_router(health_router)
app.include_router(portfolio_router)
app.include_router(sets_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
