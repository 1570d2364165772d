"""Conversion from racespace report dataclasses to API schemas."""

from __future__ import annotations

from racespace.problems import Problem
from racespace.report import AnalysisReport
from racespace.synthetic import Sector

from backend.api.schemas.analysis import (
    AnalysisResponse,
    ProblemSchema,
    SectorMistakeSchema,
    SectorSchema,
    StatsSchema,
    TelemetrySchema,
    TurnSpeedSchema,
)


def problem_to_schema(problem: Problem) -> ProblemSchema:
    return ProblemSchema(
        position=problem.position,
        description=problem.description,
        severity=problem.severity.value,
        time_lost=problem.time_lost,
    )


def sector_to_schema(sector: Sector) -> SectorSchema:
    return SectorSchema(
        number=sector.number,
        time=sector.time,
        mistakes=[
            SectorMistakeSchema(
                description=m.description, solution=m.solution, time_lost=m.time_lost
            )
            for m in sector.mistakes
        ],
    )


def report_to_response(report: AnalysisReport) -> AnalysisResponse:
    """Build the camelCase response body for *report*."""
    return AnalysisResponse(
        id=report.id,
        date=report.date,
        track=report.track,
        car_class=report.car_class,
        game=report.game,
        status=report.status,
        telemetry=TelemetrySchema(
            speed_analysis={
                turn: TurnSpeedSchema(entry=s.entry, exit=s.exit)
                for turn, s in report.telemetry.speed_analysis.items()
            },
            braking_points=dict(report.telemetry.braking_points),
        ),
        stats=StatsSchema(
            lap_time=report.stats.lap_time,
            top_speed=report.stats.top_speed,
            avg_speed=report.stats.avg_speed,
            throttle_usage=report.stats.throttle_usage,
            braking_points=report.stats.braking_points,
            improvement=report.stats.improvement,
        ),
        track_points=list(report.track_points),
        errors=[problem_to_schema(p) for p in report.problems],
        sectors=[sector_to_schema(s) for s in report.sectors],
        recommendations=list(report.recommendations),
        narrative_source=report.narrative_source,
    )
