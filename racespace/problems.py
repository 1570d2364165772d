"""Heuristic detection of driving mistakes in raw telemetry rows.

Three patterns are flagged: harsh braking, throttle/brake overlap and late
upshifts.  Only every ``stride``-th row is inspected so that a single long
event does not flood the report with near-duplicate findings.  Positions are
normalised to a 0-100 map grid against the full column range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

import numpy as np
import pandas as pd

from racespace.columns import ColumnRoles, resolve_columns
from racespace.constants import (
    DEFAULT_NORMALIZED_POS,
    DETECTION_STRIDE,
    HARSH_BRAKE_SECONDS_PER_UNIT,
    HARSH_BRAKE_SPEED_DROP,
    HARSH_BRAKE_THRESHOLD,
    LATE_UPSHIFT_MAX_GEAR,
    LATE_UPSHIFT_SPEED,
    LATE_UPSHIFT_TIME_LOST,
    OVERLAP_BRAKE_THRESHOLD,
    OVERLAP_THROTTLE_THRESHOLD,
    OVERLAP_TIME_LOST,
)

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    """Qualitative rank of a detected mistake."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Problem:
    """A detected driving mistake placed on the normalised track map."""

    position: tuple[float, float]
    description: str
    severity: Severity
    time_lost: str | None = None


def _numeric_column(df: pd.DataFrame, column: str | None) -> np.ndarray | None:
    """Return *column* as a float array (NaN for non-numeric cells), or None."""
    if column is None or column not in df.columns:
        return None
    series = df[column]
    if isinstance(series, pd.DataFrame):
        # Duplicate header names: use the first occurrence
        series = series.iloc[:, 0]
    return pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)


class _AxisNormalizer:
    """Map raw coordinates of one axis onto 0-100 using the column's full range."""

    def __init__(self, values: np.ndarray | None) -> None:
        self._values = None if values is None else np.nan_to_num(values, nan=0.0)
        if self._values is None or len(self._values) == 0:
            self._lo = self._hi = 0.0
        else:
            self._lo = float(self._values.min())
            self._hi = float(self._values.max())

    def __call__(self, i: int) -> float:
        if self._values is None or self._hi <= self._lo:
            return DEFAULT_NORMALIZED_POS
        norm = (float(self._values[i]) - self._lo) / (self._hi - self._lo) * 100.0
        return min(100.0, max(0.0, norm))


def _scan(df: pd.DataFrame, columns: ColumnRoles, stride: int) -> list[Problem]:
    n = len(df)
    speed = _numeric_column(df, columns.speed)
    throttle = _numeric_column(df, columns.throttle)
    brake = _numeric_column(df, columns.brake)
    gear = _numeric_column(df, columns.gear)
    norm_x = _AxisNormalizer(_numeric_column(df, columns.pos_x))
    norm_z = _AxisNormalizer(_numeric_column(df, columns.pos_z))

    problems: list[Problem] = []
    # Endpoints excluded: i runs over 1..n-2 and only multiples of stride are inspected
    for i in range(stride, n - 1, stride):
        position = (norm_x(i), norm_z(i))

        # NaN comparisons are False, so a null cell silently skips its check
        if brake is not None and speed is not None:
            speed_drop = speed[i - 1] - speed[i]
            if brake[i] > HARSH_BRAKE_THRESHOLD and speed_drop > HARSH_BRAKE_SPEED_DROP:
                problems.append(
                    Problem(
                        position=position,
                        description="Harsh braking detected",
                        severity=Severity.HIGH,
                        time_lost=f"{speed_drop * HARSH_BRAKE_SECONDS_PER_UNIT:.2f}s",
                    )
                )

        if brake is not None and throttle is not None:
            if brake[i] > OVERLAP_BRAKE_THRESHOLD and throttle[i] > OVERLAP_THROTTLE_THRESHOLD:
                problems.append(
                    Problem(
                        position=position,
                        description="Overlapping throttle and brake",
                        severity=Severity.MEDIUM,
                        time_lost=OVERLAP_TIME_LOST,
                    )
                )

        if speed is not None and gear is not None:
            if speed[i] > LATE_UPSHIFT_SPEED and gear[i] < LATE_UPSHIFT_MAX_GEAR:
                problems.append(
                    Problem(
                        position=position,
                        description="Late upshift detected",
                        severity=Severity.LOW,
                        time_lost=LATE_UPSHIFT_TIME_LOST,
                    )
                )

    return problems


def find_problem_areas(
    data_points: pd.DataFrame,
    columns: ColumnRoles | None = None,
    *,
    stride: int = DETECTION_STRIDE,
) -> list[Problem]:
    """Scan telemetry rows for harsh braking, pedal overlap and late upshifts.

    Parameters
    ----------
    data_points:
        Full, non-downsampled telemetry rows.
    columns:
        Pre-resolved column roles.  Resolved from ``data_points.columns`` when
        omitted.
    stride:
        Only rows whose index is a multiple of *stride* are inspected.

    Returns
    -------
    Detected problems.  Never raises: any failure yields an empty list.
    """
    if data_points is None or data_points.empty:
        return []

    try:
        if columns is None:
            columns = resolve_columns(data_points.columns)
        return _scan(data_points, columns, max(1, stride))
    except Exception:
        logger.exception("Problem detection failed; returning no problems")
        return []
