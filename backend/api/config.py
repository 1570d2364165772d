"""Application settings via pydantic-settings."""

from __future__ import annotations

import json

from pydantic_settings import BaseSettings, SettingsConfigDict
from racespace.ai_analysis import DEFAULT_MODEL, DEFAULT_TIMEOUT_S
from racespace.constants import DETECTION_STRIDE, MAX_TRACK_POINTS, SMOOTHING_WINDOW


def _parse_cors_origins(raw: str) -> list[str]:
    """Parse a CORS origins string, tolerating non-JSON formats.

    Accepts a JSON array (``["https://a.com"]``), a bracketed list whose inner
    quotes were stripped by a shell (``[https://a.com]``) or a plain
    comma-separated string.
    """
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    except (json.JSONDecodeError, ValueError):
        pass

    stripped = raw.strip("[] ")
    return [s.strip().strip('"').strip("'") for s in stripped.split(",") if s.strip()]


class Settings(BaseSettings):
    """RaceSpace API configuration.

    Values are loaded from environment variables, falling back to a ``.env``
    file in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # AI analysis; an empty key disables it and every report is synthetic
    anthropic_api_key: str = ""
    ai_model: str = DEFAULT_MODEL
    ai_timeout_s: float = DEFAULT_TIMEOUT_S

    # CORS, stored raw so list parsing stays lenient
    cors_origins_raw: str = '["http://localhost:3000"]'

    # Upload limits
    max_upload_size_mb: int = 10

    # Saved reports kept for GET /api/analyses/{id}; oldest evicted first
    max_stored_reports: int = 500

    # Per-IP sliding window
    rate_limit_window_s: float = 60.0
    rate_limit_max_requests: int = 5

    # Analysis tuning
    max_track_points: int = MAX_TRACK_POINTS
    detection_stride: int = DETECTION_STRIDE
    smoothing_window: int = SMOOTHING_WINDOW

    debug: bool = False

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from the raw string."""
        return _parse_cors_origins(self.cors_origins_raw)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024
