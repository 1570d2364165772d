"""Assemble analysis reports and orchestrate the telemetry pipeline.

Pipeline for one upload::

    raw text -> sniff_format -> extract_track_points -> find_problem_areas
             -> (optional AI narrative) -> assemble_report

Nothing is retried.  An invalid extraction ends the analysis with the
extractor's reason; AI failures fall back to the synthetic narrative.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import numpy as np
import pandas as pd

from racespace.ai_analysis import (
    DEFAULT_MODEL,
    AiAnalysis,
    build_analysis_prompt,
    request_ai_analysis,
)
from racespace.columns import ColumnRoles
from racespace.constants import DETECTION_STRIDE, MAX_TRACK_POINTS, SMOOTHING_WINDOW
from racespace.parser import ExtractionResult, extract_track_points, sniff_format
from racespace.problems import Problem, find_problem_areas
from racespace.smoothing import TrackPoint
from racespace.synthetic import Sector, TurnSpeed, generate_synthetic_narrative

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class AnalysisParams:
    """Tunable knobs for a single analysis run."""

    max_track_points: int = MAX_TRACK_POINTS
    smoothing_window: int = SMOOTHING_WINDOW
    detection_stride: int = DETECTION_STRIDE
    ai_model: str = DEFAULT_MODEL


@dataclass
class ReportStats:
    """Headline numbers shown on the session card."""

    lap_time: str
    top_speed: str
    avg_speed: str
    throttle_usage: str
    braking_points: int
    improvement: str


@dataclass
class TelemetryTables:
    """Per-turn speed and braking tables."""

    speed_analysis: dict[str, TurnSpeed]
    braking_points: dict[str, str]


@dataclass
class AnalysisReport:
    """The full result of analysing one telemetry upload."""

    id: str
    date: str
    track: str
    car_class: str
    game: str
    status: str
    telemetry: TelemetryTables
    stats: ReportStats
    track_points: list[TrackPoint]
    problems: list[Problem]
    sectors: list[Sector]
    recommendations: list[str]
    narrative_source: str


@dataclass
class AnalysisOutcome:
    """Terminal state of one analysis request."""

    valid: bool
    report: AnalysisReport | None = None
    reason: str = ""
    internal_error: bool = False


@dataclass
class _Narrative:
    lap_time: str
    improvement: str
    speed_analysis: dict[str, TurnSpeed]
    braking_points: dict[str, str]
    sectors: list[Sector]
    recommendations: list[str]
    source: str
    track_points: list[TrackPoint] | None = None
    problems: list[Problem] | None = None


def _column_values(df: pd.DataFrame, column: str | None) -> np.ndarray | None:
    if column is None or column not in df.columns or df.empty:
        return None
    series = df[column]
    if isinstance(series, pd.DataFrame):
        series = series.iloc[:, 0]
    return pd.to_numeric(series, errors="coerce").fillna(0.0).to_numpy(dtype=float)


def compute_stats_fields(df: pd.DataFrame, columns: ColumnRoles) -> tuple[str, str, str]:
    """Return formatted (top speed, average speed, throttle usage) for the rows.

    Missing cells count as zero; an unresolved column yields ``"N/A"``.
    """
    speed = _column_values(df, columns.speed)
    throttle = _column_values(df, columns.throttle)

    if speed is None:
        top_speed = avg_speed = NOT_AVAILABLE
    else:
        top_speed = f"{speed.max():.0f} km/h"
        avg_speed = f"{speed.mean():.1f} km/h"

    throttle_usage = NOT_AVAILABLE if throttle is None else f"{throttle.mean() * 100:.1f}%"
    return top_speed, avg_speed, throttle_usage


def _narrative_from_ai(ai: AiAnalysis) -> _Narrative:
    return _Narrative(
        lap_time=ai.current_time,
        improvement=ai.potential_improvement,
        speed_analysis=ai.corner_analysis,
        braking_points=ai.braking_points,
        sectors=ai.sectors,
        recommendations=ai.recommendations,
        source="ai",
        track_points=ai.track_points,
        problems=ai.problems,
    )


def _synthetic_narrative(raw_text: str, track: str) -> _Narrative:
    synth = generate_synthetic_narrative(raw_text, track)
    return _Narrative(
        lap_time=synth.lap_time,
        improvement=synth.improvement,
        speed_analysis=synth.speed_analysis,
        braking_points=synth.braking_points,
        sectors=synth.sectors,
        recommendations=synth.recommendations,
        source="synthetic",
    )


def assemble_report(
    extraction: ExtractionResult,
    problems: list[Problem],
    *,
    track: str,
    car_class: str,
    game: str,
    raw_text: str,
    ai_analysis: AiAnalysis | None = None,
    analysis_id: str | None = None,
    now: datetime | None = None,
) -> AnalysisReport:
    """Combine local extraction/detection output with an AI or synthetic narrative.

    The AI's own ``trackPoints``/``problems`` win when it supplies them;
    otherwise the locally computed ones are used.
    """
    narrative = (
        _narrative_from_ai(ai_analysis)
        if ai_analysis is not None
        else _synthetic_narrative(raw_text, track)
    )
    top_speed, avg_speed, throttle_usage = compute_stats_fields(
        extraction.data_points, extraction.columns
    )

    return AnalysisReport(
        id=analysis_id or uuid.uuid4().hex,
        date=(now or datetime.now(UTC)).isoformat(),
        track=track,
        car_class=car_class,
        game=game,
        status="completed",
        telemetry=TelemetryTables(
            speed_analysis=narrative.speed_analysis,
            braking_points=narrative.braking_points,
        ),
        stats=ReportStats(
            lap_time=narrative.lap_time,
            top_speed=top_speed,
            avg_speed=avg_speed,
            throttle_usage=throttle_usage,
            braking_points=len(narrative.braking_points),
            improvement=narrative.improvement,
        ),
        track_points=(
            narrative.track_points
            if narrative.track_points is not None
            else list(extraction.track_points)
        ),
        problems=narrative.problems if narrative.problems is not None else list(problems),
        sectors=narrative.sectors,
        recommendations=narrative.recommendations,
        narrative_source=narrative.source,
    )


def analyze_telemetry(
    raw_text: str,
    *,
    track: str,
    car_class: str,
    game: str,
    params: AnalysisParams | None = None,
    ai_client: Any = None,
) -> AnalysisOutcome:
    """Run the full analysis for one uploaded telemetry file.

    Returns an :class:`AnalysisOutcome`; it is ``valid`` with a report on
    success, or carries a ``reason`` when extraction failed or an unexpected
    error occurred (``internal_error`` distinguishes the latter).
    """
    params = params or AnalysisParams()
    try:
        fmt = sniff_format(raw_text)
        extraction = extract_track_points(
            raw_text,
            fmt,
            max_points=params.max_track_points,
            smoothing_window=params.smoothing_window,
        )
        if not extraction.valid:
            return AnalysisOutcome(valid=False, reason=extraction.reason)

        problems = find_problem_areas(
            extraction.data_points,
            extraction.columns,
            stride=params.detection_stride,
        )
        logger.info(
            "Extracted %d track point(s) and %d problem(s) from %s telemetry",
            len(extraction.track_points),
            len(problems),
            fmt,
        )

        ai_analysis = None
        if ai_client is not None:
            prompt = build_analysis_prompt(
                track, car_class, game, extraction.track_points, problems
            )
            ai_analysis = request_ai_analysis(prompt, client=ai_client, model=params.ai_model)
            if ai_analysis is None:
                logger.info("Falling back to synthetic narrative for %s", track)

        report = assemble_report(
            extraction,
            problems,
            track=track,
            car_class=car_class,
            game=game,
            raw_text=raw_text,
            ai_analysis=ai_analysis,
        )
    except Exception as exc:
        logger.exception("Analysis failed")
        return AnalysisOutcome(valid=False, reason=f"Analysis failed: {exc}", internal_error=True)

    return AnalysisOutcome(valid=True, report=report)
