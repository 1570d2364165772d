"""Shared constants for the racespace telemetry core.

Centralises tuning values and detection thresholds used across modules.
"""

from __future__ import annotations

# Track-point extraction
MAX_TRACK_POINTS: int = 200  # CSV traces are downsampled to roughly this many points
SMOOTHING_WINDOW: int = 5  # moving-average half-width
FORMAT_PROBE_CHARS: int = 20  # leading characters inspected when sniffing JSON vs CSV

# Problem detection
DETECTION_STRIDE: int = 10  # only every Nth row is inspected
DEFAULT_NORMALIZED_POS: float = 50.0  # used when an axis has no range

HARSH_BRAKE_THRESHOLD: float = 0.8
HARSH_BRAKE_SPEED_DROP: float = 20.0
HARSH_BRAKE_SECONDS_PER_UNIT: float = 0.05

OVERLAP_BRAKE_THRESHOLD: float = 0.2
OVERLAP_THROTTLE_THRESHOLD: float = 0.5
OVERLAP_TIME_LOST: str = "0.2s"

LATE_UPSHIFT_SPEED: float = 200.0
LATE_UPSHIFT_MAX_GEAR: float = 5.0
LATE_UPSHIFT_TIME_LOST: str = "0.1s"
