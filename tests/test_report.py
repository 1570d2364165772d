"""Tests for racespace.report."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pandas as pd
import pytest

from racespace.ai_analysis import AiAnalysis
from racespace.columns import ColumnRoles
from racespace.parser import extract_track_points
from racespace.problems import Problem, Severity
from racespace.report import (
    NOT_AVAILABLE,
    AnalysisParams,
    analyze_telemetry,
    assemble_report,
    compute_stats_fields,
)
from racespace.synthetic import Sector, TurnSpeed


def _ai_analysis(**overrides: object) -> AiAnalysis:
    fields: dict[str, object] = {
        "current_time": "1:40.000",
        "potential_improvement": "0.4s",
        "corner_analysis": {"turn1": TurnSpeed(entry="180 km/h", exit="120 km/h")},
        "braking_points": {"turn1": "100m", "turn2": "80m"},
        "recommendations": ["Trail brake into turn 2"],
        "sectors": [Sector(number=1, time="33.000s")],
    }
    fields.update(overrides)
    return AiAnalysis(**fields)  # type: ignore[arg-type]


def _mock_client(reply: dict[str, object] | str) -> MagicMock:
    text = reply if isinstance(reply, str) else json.dumps(reply)
    client = MagicMock()
    client.messages.create.return_value.content = [MagicMock(text=text)]
    return client


class TestComputeStatsFields:
    def test_formats_speed_and_throttle(self) -> None:
        df = pd.DataFrame({"speed": [100.0, 200.0, None], "throttle": [1.0, 0.5, 0.0]})
        roles = ColumnRoles(speed="speed", throttle="throttle")
        top, avg, throttle = compute_stats_fields(df, roles)
        assert top == "200 km/h"
        assert avg == "100.0 km/h"
        assert throttle == "50.0%"

    def test_unresolved_columns(self) -> None:
        top, avg, throttle = compute_stats_fields(pd.DataFrame({"a": [1]}), ColumnRoles())
        assert top == avg == throttle == NOT_AVAILABLE


class TestAssembleReport:
    def test_synthetic_path(self, telemetry_csv_text: str) -> None:
        extraction = extract_track_points(telemetry_csv_text, "csv")
        report = assemble_report(
            extraction,
            [],
            track="Monza",
            car_class="GT3",
            game="iRacing",
            raw_text=telemetry_csv_text,
            analysis_id="abc",
            now=datetime(2026, 3, 1, tzinfo=UTC),
        )
        assert report.id == "abc"
        assert report.date.startswith("2026-03-01")
        assert report.status == "completed"
        assert report.narrative_source == "synthetic"
        assert report.track_points == extraction.track_points
        assert report.stats.braking_points == len(report.telemetry.braking_points)
        assert report.stats.top_speed.endswith("km/h")

    def test_ai_path_keeps_local_points_when_omitted(self, telemetry_csv_text: str) -> None:
        extraction = extract_track_points(telemetry_csv_text, "csv")
        local = [Problem((1.0, 2.0), "Harsh braking detected", Severity.HIGH, "1.00s")]
        report = assemble_report(
            extraction,
            local,
            track="Monza",
            car_class="GT3",
            game="iRacing",
            raw_text=telemetry_csv_text,
            ai_analysis=_ai_analysis(),
        )
        assert report.narrative_source == "ai"
        assert report.stats.lap_time == "1:40.000"
        assert report.stats.improvement == "0.4s"
        assert report.stats.braking_points == 2
        assert report.recommendations == ["Trail brake into turn 2"]
        assert report.track_points == extraction.track_points
        assert report.problems == local

    def test_ai_supplied_points_take_precedence(self, telemetry_csv_text: str) -> None:
        extraction = extract_track_points(telemetry_csv_text, "csv")
        ai_problems = [Problem((5.0, 5.0), "Missed apex", Severity.LOW)]
        report = assemble_report(
            extraction,
            [],
            track="Monza",
            car_class="GT3",
            game="iRacing",
            raw_text=telemetry_csv_text,
            ai_analysis=_ai_analysis(track_points=[(0.0, 0.0)], problems=ai_problems),
        )
        assert report.track_points == [(0.0, 0.0)]
        assert report.problems == ai_problems


class TestAnalyzeTelemetry:
    def test_csv_without_ai(self, telemetry_csv_text: str) -> None:
        outcome = analyze_telemetry(
            telemetry_csv_text, track="Monza", car_class="GT3", game="ACC"
        )
        assert outcome.valid
        assert outcome.report is not None
        assert outcome.report.narrative_source == "synthetic"
        assert len(outcome.report.track_points) == 200

    def test_synthetic_narrative_is_reproducible(self, telemetry_csv_text: str) -> None:
        a = analyze_telemetry(telemetry_csv_text, track="Monza", car_class="GT3", game="ACC")
        b = analyze_telemetry(telemetry_csv_text, track="Monza", car_class="GT3", game="ACC")
        assert a.report is not None and b.report is not None
        assert a.report.stats.lap_time == b.report.stats.lap_time
        assert a.report.sectors == b.report.sectors
        assert a.report.recommendations == b.report.recommendations
        assert a.report.id != b.report.id

    def test_nested_json(self, telemetry_nested_json_text: str) -> None:
        outcome = analyze_telemetry(
            telemetry_nested_json_text, track="Spa-Francorchamps", car_class="GT3", game="ACC"
        )
        assert outcome.valid
        assert outcome.report is not None
        assert len(outcome.report.track_points) == 30
        assert len(outcome.report.sectors) == 4

    def test_invalid_payload_is_terminal(self) -> None:
        client = _mock_client({})
        outcome = analyze_telemetry(
            '{"telemetry": [', track="Monza", car_class="GT3", game="ACC", ai_client=client
        )
        assert not outcome.valid
        assert outcome.report is None
        assert not outcome.internal_error
        assert outcome.reason.startswith("Error extracting track data:")
        client.messages.create.assert_not_called()

    def test_deeply_nested_json_is_client_error(self) -> None:
        text = '{"telemetry": ' + "[" * 5000 + "]" * 5000 + "}"
        outcome = analyze_telemetry(text, track="Monza", car_class="GT3", game="ACC")
        assert not outcome.valid
        assert not outcome.internal_error
        assert outcome.reason.startswith("Error extracting track data:")

    def test_empty_payload_is_valid(self) -> None:
        outcome = analyze_telemetry("", track="Monza", car_class="GT3", game="ACC")
        assert outcome.valid
        assert outcome.report is not None
        assert outcome.report.track_points == []
        assert outcome.report.stats.top_speed == NOT_AVAILABLE

    def test_ai_reply_used(self, telemetry_csv_text: str) -> None:
        reply = {
            "lapAnalysis": {"currentTime": "1:38.500", "potentialImprovement": "0.3s"},
            "cornerAnalysis": {},
            "brakingPoints": {},
            "recommendations": ["Smoother throttle"],
            "sectors": [],
        }
        outcome = analyze_telemetry(
            telemetry_csv_text,
            track="Monza",
            car_class="GT3",
            game="ACC",
            ai_client=_mock_client(reply),
            params=AnalysisParams(ai_model="some-model"),
        )
        assert outcome.report is not None
        assert outcome.report.narrative_source == "ai"
        assert outcome.report.stats.lap_time == "1:38.500"

    def test_ai_failure_falls_back_to_synthetic(self, telemetry_csv_text: str) -> None:
        client = MagicMock()
        client.messages.create.side_effect = ConnectionError("unreachable")
        outcome = analyze_telemetry(
            telemetry_csv_text, track="Monza", car_class="GT3", game="ACC", ai_client=client
        )
        assert outcome.valid
        assert outcome.report is not None
        assert outcome.report.narrative_source == "synthetic"
        assert client.messages.create.call_count == 1

    def test_unexpected_error_reported(
        self, telemetry_csv_text: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _boom(*args: object, **kwargs: object) -> None:
            raise RuntimeError("disk on fire")

        monkeypatch.setattr("racespace.report.assemble_report", _boom)
        outcome = analyze_telemetry(telemetry_csv_text, track="Monza", car_class="GT3", game="ACC")
        assert not outcome.valid
        assert outcome.internal_error
        assert outcome.reason == "Analysis failed: disk on fire"

    def test_custom_params(self, telemetry_csv_text: str) -> None:
        outcome = analyze_telemetry(
            telemetry_csv_text,
            track="Monza",
            car_class="GT3",
            game="ACC",
            params=AnalysisParams(max_track_points=50),
        )
        assert outcome.report is not None
        assert len(outcome.report.track_points) == 50
