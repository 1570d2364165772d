"""Pydantic schemas for the analysis endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising fields under camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TurnSpeedSchema(CamelModel):
    entry: str
    exit: str


class TelemetrySchema(CamelModel):
    """Per-turn speed and braking tables."""

    speed_analysis: dict[str, TurnSpeedSchema]
    braking_points: dict[str, str]


class StatsSchema(CamelModel):
    """Headline session numbers."""

    lap_time: str
    top_speed: str
    avg_speed: str
    throttle_usage: str
    braking_points: int
    improvement: str


class ProblemSchema(CamelModel):
    """A detected driving mistake on the 0-100 track map."""

    position: tuple[float, float]
    description: str
    severity: str
    time_lost: str | None = None


class SectorMistakeSchema(CamelModel):
    description: str
    solution: str
    time_lost: str


class SectorSchema(CamelModel):
    number: int
    time: str
    mistakes: list[SectorMistakeSchema] = []


class AnalysisResponse(CamelModel):
    """Full analysis report returned by ``POST /api/analyze``."""

    id: str
    date: str
    track: str
    car_class: str
    game: str
    status: str
    telemetry: TelemetrySchema
    stats: StatsSchema
    track_points: list[tuple[float, float]]
    errors: list[ProblemSchema]
    sectors: list[SectorSchema]
    recommendations: list[str]
    narrative_source: str
