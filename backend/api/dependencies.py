"""FastAPI dependency injection functions."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends
from racespace.ai_analysis import create_client
from racespace.report import AnalysisParams

from backend.api.config import Settings
from backend.api.services.kv_store import InMemoryStore, KeyValueStore

logger = logging.getLogger(__name__)

_store = InMemoryStore()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings."""
    return Settings()


def get_store() -> KeyValueStore:
    """Return the shared store backing rate-limit counters and saved reports."""
    return _store


def reset_store() -> None:
    """Drop every rate-limit counter and saved report."""
    _store.clear()


def get_ai_client(settings: Annotated[Settings, Depends(get_settings)]) -> Any:
    """Return an Anthropic client, or None when no API key is configured."""
    return _cached_client(settings.anthropic_api_key, settings.ai_timeout_s)


@lru_cache(maxsize=4)
def _cached_client(api_key: str, timeout_s: float) -> Any:
    client = create_client(api_key, timeout_s)
    if client is None:
        logger.info("ANTHROPIC_API_KEY not set; reports will use the synthetic narrative")
    return client


def get_analysis_params(settings: Annotated[Settings, Depends(get_settings)]) -> AnalysisParams:
    """Build per-run analysis parameters from settings."""
    return AnalysisParams(
        max_track_points=settings.max_track_points,
        smoothing_window=settings.smoothing_window,
        detection_stride=settings.detection_stride,
        ai_model=settings.ai_model,
    )
