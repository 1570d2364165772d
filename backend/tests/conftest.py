"""Test fixtures for the backend test suite."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Generator
from typing import Any

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from backend.api.config import Settings
from backend.api.dependencies import get_ai_client, get_settings, reset_store
from backend.api.main import app

_CSV_HEADER = "Time,Speed_kmh,Throttle,Brake,Gear,WorldPositionX,WorldPositionZ"


def build_csv_bytes(n_rows: int = 400, *, harsh_brake_at: int | None = None) -> bytes:
    """Build a sim-racing CSV export as bytes for upload testing.

    With *harsh_brake_at*, the row at that index drops 40 km/h under full
    brake so the detector flags it.
    """
    rng = np.random.default_rng(42)
    lines = [_CSV_HEADER]
    for i in range(n_rows):
        angle = 2 * np.pi * i / n_rows
        x = 800.0 * np.cos(angle) + rng.normal(0, 0.3)
        z = 450.0 * np.sin(angle) + rng.normal(0, 0.3)
        speed, brake = 160.0, 0.0
        if harsh_brake_at is not None and i == harsh_brake_at:
            speed, brake = 120.0, 1.0
        lines.append(f"{i * 0.05:.2f},{speed:.1f},0.4,{brake},6,{x:.3f},{z:.3f}")
    return ("\n".join(lines) + "\n").encode()


def build_json_bytes(n_samples: int = 40) -> bytes:
    """Build a ``{"telemetry": [...]}`` export with nested positions."""
    samples = [
        {
            "speed": 170.0,
            "throttle": 0.9,
            "brake": 0.0,
            "gear": 5,
            "position": {"x": float(i), "y": 0.0, "z": float(i) * 0.5},
        }
        for i in range(n_samples)
    ]
    return json.dumps({"telemetry": samples}).encode()


def form_fields(**overrides: str) -> dict[str, str]:
    """Default analysis form fields, with per-test overrides."""
    fields = {"track": "Monza", "carClass": "GT3", "game": "Assetto Corsa Competizione"}
    fields.update(overrides)
    return {k: v for k, v in fields.items() if v}


@pytest.fixture
def test_settings() -> Settings:
    """Settings with AI disabled and the default rate limit."""
    return Settings(
        anthropic_api_key="",
        rate_limit_window_s=60.0,
        rate_limit_max_requests=5,
        max_upload_size_mb=10,
    )


@pytest.fixture(autouse=True)
def _override_dependencies(test_settings: Settings) -> Generator[None, None, None]:
    """Pin settings and disable the AI client for every request."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_ai_client] = lambda: None
    yield
    app.dependency_overrides.pop(get_settings, None)
    app.dependency_overrides.pop(get_ai_client, None)


@pytest.fixture
def csv_bytes() -> bytes:
    return build_csv_bytes()


@pytest.fixture
def upload_csv(csv_bytes: bytes) -> dict[str, Any]:
    """Multipart ``files`` argument carrying the default CSV export."""
    return {"telemetry": ("lap.csv", csv_bytes, "text/csv")}


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Yield an async HTTP test client wired to the FastAPI app.

    Clears stored reports and rate-limit counters before and after each test.
    """
    reset_store()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    reset_store()
