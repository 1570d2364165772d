"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from backend.api.config import Settings
from backend.api.routers import analysis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    if not settings.anthropic_api_key:
        logger.info("No Anthropic API key configured; AI analysis disabled")

    yield

    # Shutdown: drop rate-limit counters and cached reports
    from backend.api.dependencies import reset_store

    reset_store()


load_dotenv()  # Populate os.environ from .env before reading settings
settings = Settings()

app = FastAPI(
    title="RaceSpace API",
    description="Sim-racing telemetry analysis with AI or synthetic coaching narrative",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)


# -- Exception handlers --------------------------------------------------------


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs the full traceback server-side but returns a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Return 422 for ValueError (bad input data that passed validation)."""
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


# -- Middleware (order matters: last added = first executed) ------------------

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# -- Routers -----------------------------------------------------------------

app.include_router(analysis.router, prefix="/api", tags=["analysis"])


# -- Service info ------------------------------------------------------------

_ENDPOINTS: dict[str, dict[str, Any]] = {
    "analysis": {
        "analyze": {
            "method": "POST",
            "url": "/api/analyze",
            "requires": ["telemetry", "track", "carClass", "game"],
        },
        "get_analysis": {
            "method": "GET",
            "url": "/api/analyses/{analysis_id}",
        },
    },
    "service": {
        "health": {"method": "GET", "url": "/health"},
        "ping": {"method": "GET", "url": "/ping"},
        "endpoints": {"method": "GET", "url": "/endpoints"},
    },
}


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, Any]:
    """Service banner with a short endpoint listing."""
    return {
        "message": "RaceSpace API is running",
        "endpoints": {
            "root": "GET /",
            "analyze": "POST /api/analyze",
            "analysis": "GET /api/analyses/{analysis_id}",
        },
        "status": "online",
        "timestamp": _now_iso(),
    }


@app.get("/ping")
async def ping() -> dict[str, str]:
    return {"status": "ok", "timestamp": _now_iso()}


@app.get("/endpoints")
async def list_endpoints() -> dict[str, Any]:
    """Describe the available endpoints and their required fields."""
    return {"available_endpoints": _ENDPOINTS}
