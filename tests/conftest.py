"""Shared test fixtures for racespace tests."""

from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

_CSV_HEADER = "Time,Speed_kmh,Throttle,Brake,Gear,WorldPositionX,WorldPositionZ"


def build_telemetry_csv(n_rows: int = 600, *, seed: int = 7) -> str:
    """Build a synthetic sim-racing CSV export with an oval-ish driven path."""
    rng = np.random.default_rng(seed)
    lines = [_CSV_HEADER]
    for i in range(n_rows):
        angle = 2 * np.pi * i / n_rows
        x = 500.0 * np.cos(angle) + rng.normal(0, 0.5)
        z = 300.0 * np.sin(angle) + rng.normal(0, 0.5)
        speed = 150.0 + 60.0 * np.sin(4 * angle)
        throttle = 0.9 if speed > 150 else 0.3
        brake = 0.0 if speed > 150 else 0.1
        gear = 6 if speed > 180 else 4
        lines.append(
            f"{i * 0.05:.2f},{speed:.2f},{throttle},{brake},{gear},{x:.3f},{z:.3f}"
        )
    return "\n".join(lines) + "\n"


def build_rows(
    n_rows: int, overrides: dict[int, dict[str, float]] | None = None
) -> pd.DataFrame:
    """Build a calm telemetry frame; *overrides* maps row index -> column values."""
    rows = [
        {
            "speed": 150.0,
            "throttle": 0.0,
            "brake": 0.0,
            "gear": 6,
            "position_x": float(i),
            "position_z": float(i * 2),
        }
        for i in range(n_rows)
    ]
    for idx, values in (overrides or {}).items():
        rows[idx].update(values)
    return pd.DataFrame(rows)


@pytest.fixture
def telemetry_csv_text() -> str:
    """A 600-row CSV export with resolvable position columns."""
    return build_telemetry_csv(600)


@pytest.fixture
def telemetry_json_array_text() -> str:
    """A flat JSON array of samples exposing x/z directly."""
    samples = [
        {"speed": 120.0 + i, "throttle": 0.8, "brake": 0.0, "gear": 4, "x": float(i), "z": float(-i)}
        for i in range(50)
    ]
    samples.append({"speed": 100.0, "x": None, "z": 3.0})
    return json.dumps(samples)


@pytest.fixture
def telemetry_nested_json_text() -> str:
    """A ``{"telemetry": [...]}`` document with nested positions."""
    samples = [
        {
            "speed": 180.0,
            "throttle": 1.0,
            "brake": 0.0,
            "gear": 5,
            "position": {"x": float(i) * 2, "y": 0.0, "z": float(i) * 3},
        }
        for i in range(30)
    ]
    samples.append({"speed": 90.0, "position": {"x": 1.0}})
    return json.dumps({"session": "practice", "telemetry": samples})
