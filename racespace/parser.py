"""Parse raw CSV/JSON telemetry into a driven-path trace and per-row data.

Uploads come from many sim-racing tools with no shared schema.  CSV files are
read with a header row and numeric inference; position columns are guessed by
:mod:`racespace.columns`.  JSON files are accepted in two shapes:

- a flat array of samples exposing ``x``/``z`` directly, or
- an object with a ``telemetry`` array whose samples carry ``position.x``/``position.z``.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd

from racespace.columns import ColumnRoles, resolve_columns
from racespace.constants import FORMAT_PROBE_CHARS, MAX_TRACK_POINTS, SMOOTHING_WINDOW
from racespace.smoothing import TrackPoint, smooth_track_points

logger = logging.getLogger(__name__)

TelemetryFormat = Literal["csv", "json"]


@dataclass
class ExtractionResult:
    """Outcome of turning raw telemetry text into track points."""

    valid: bool
    fmt: TelemetryFormat | None = None
    track_points: list[TrackPoint] = field(default_factory=list)
    data_points: pd.DataFrame = field(default_factory=pd.DataFrame)
    columns: ColumnRoles = field(default_factory=ColumnRoles)
    reason: str = ""


def sniff_format(raw_text: str, probe_chars: int = FORMAT_PROBE_CHARS) -> TelemetryFormat:
    """Guess the payload format: JSON if ``{`` shows up early, else CSV."""
    return "json" if "{" in raw_text[:probe_chars] else "csv"


def _sample_positions(df: pd.DataFrame, columns: ColumnRoles, max_points: int) -> list[TrackPoint]:
    """Take every stride-th row's (x, z) so the trace stays near *max_points*."""
    stride = max(1, len(df) // max_points)
    sampled = df.iloc[::stride]
    xs = pd.to_numeric(sampled[columns.pos_x], errors="coerce")
    zs = pd.to_numeric(sampled[columns.pos_z], errors="coerce")
    keep = xs.notna() & zs.notna()
    return list(zip(xs[keep].astype(float).tolist(), zs[keep].astype(float).tolist()))


def _extract_csv(raw_text: str, max_points: int) -> tuple[list[TrackPoint], pd.DataFrame, ColumnRoles]:
    try:
        # index_col=False keeps columns aligned when rows end in a trailing delimiter
        df = pd.read_csv(io.StringIO(raw_text), skip_blank_lines=True, index_col=False)
    except pd.errors.EmptyDataError:
        logger.info("CSV payload is empty")
        return [], pd.DataFrame(), ColumnRoles()
    df.columns = [str(c).strip() for c in df.columns]
    columns = resolve_columns(df.columns)

    if df.empty or not columns.has_position:
        logger.info("CSV has no resolvable position columns (%s)", list(df.columns))
        return [], df, columns

    return _sample_positions(df, columns, max_points), df, columns


def _coord(value: Any) -> float | None:
    """Return *value* as a float, or None if it is missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _extract_json(raw_text: str) -> tuple[list[TrackPoint], pd.DataFrame, ColumnRoles]:
    data = json.loads(raw_text)

    if isinstance(data, list):
        records = [d for d in data if isinstance(d, dict)]
        points = []
        for rec in records:
            x, z = _coord(rec.get("x")), _coord(rec.get("z"))
            if x is not None and z is not None:
                points.append((x, z))
    elif isinstance(data, dict) and isinstance(data.get("telemetry"), list):
        records = [d for d in data["telemetry"] if isinstance(d, dict)]
        points = []
        for rec in records:
            pos = rec.get("position")
            if not isinstance(pos, dict):
                continue
            x, z = _coord(pos.get("x")), _coord(pos.get("z"))
            if x is not None and z is not None:
                points.append((x, z))
    else:
        raise ValueError("JSON has neither a sample array nor a 'telemetry' array")

    df = pd.json_normalize(records) if records else pd.DataFrame()
    return points, df, resolve_columns(df.columns)


def extract_track_points(
    raw_text: str,
    fmt: TelemetryFormat,
    *,
    max_points: int = MAX_TRACK_POINTS,
    smoothing_window: int = SMOOTHING_WINDOW,
) -> ExtractionResult:
    """Parse *raw_text* and return its smoothed track trace plus full row data.

    CSV traces are downsampled to roughly *max_points*; JSON traces are passed
    through.  Parse failures never raise: they produce an invalid result whose
    ``reason`` explains what went wrong.
    """
    try:
        if fmt == "csv":
            points, df, columns = _extract_csv(raw_text, max_points)
        elif fmt == "json":
            points, df, columns = _extract_json(raw_text)
        else:
            raise ValueError(f"Unsupported telemetry format: {fmt!r}")
    except (ValueError, TypeError, KeyError, RecursionError) as exc:
        # json.JSONDecodeError and pandas parser errors are ValueError subclasses;
        # RecursionError comes from pathologically nested JSON
        logger.warning("Error extracting track points from %s payload: %s", fmt, exc)
        return ExtractionResult(valid=False, fmt=fmt, reason=f"Error extracting track data: {exc}")

    if points:
        points = smooth_track_points(points, window=smoothing_window)

    return ExtractionResult(
        valid=True,
        fmt=fmt,
        track_points=points,
        data_points=df,
        columns=columns,
    )
