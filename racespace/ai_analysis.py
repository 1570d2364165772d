"""Claude API integration for AI-written telemetry analysis.

The AI reply is optional: every failure (no key, network error, timeout,
malformed JSON, wrong shape) returns ``None`` so the caller can fall back to
the synthetic narrative.  The client is built without SDK retries and with an
explicit timeout so a slow upstream fails closed instead of hanging a request.
"""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from racespace.problems import Problem, Severity
from racespace.smoothing import TrackPoint
from racespace.synthetic import Sector, SectorMistake, TurnSpeed

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_TIMEOUT_S = 30.0
_MAX_TOKENS = 4096
_PROMPT_POINT_SAMPLE = 5

ANALYST_SYSTEM_PROMPT = (
    "You are a professional racing analyst specializing in telemetry data analysis."
)


@dataclass
class AiAnalysis:
    """Structured analysis returned by the AI."""

    current_time: str
    potential_improvement: str
    corner_analysis: dict[str, TurnSpeed]
    braking_points: dict[str, str]
    recommendations: list[str]
    sectors: list[Sector]
    track_points: list[TrackPoint] | None = None
    problems: list[Problem] | None = None
    raw_response: str = field(default="", repr=False)


def _format_problems(problems: Sequence[Problem]) -> str:
    return json.dumps(
        [
            {
                "position": list(p.position),
                "description": p.description,
                "severity": p.severity.value,
                "timeLost": p.time_lost,
            }
            for p in problems
        ]
    )


def build_analysis_prompt(
    track: str,
    car_class: str,
    game: str,
    track_points: Sequence[TrackPoint],
    problems: Sequence[Problem],
) -> str:
    """Build the user prompt embedding a truncated excerpt of the session."""
    excerpt = json.dumps([list(p) for p in track_points[:_PROMPT_POINT_SAMPLE]])
    return f"""Analyze this racing telemetry data for {track} using {car_class} in {game}:
Track Points: {excerpt}... ({len(track_points)} points total)
Problems Detected: {_format_problems(problems)}

Provide detailed racing analysis including:
1. Lap time analysis and potential improvements
2. Speed analysis for key corners
3. Braking points optimization
4. Racing line recommendations
5. Specific areas for improvement

Format the response as a JSON object with the following structure:
{{
  "lapAnalysis": {{ "currentTime": string, "potentialImprovement": string }},
  "cornerAnalysis": {{ "turnNumber": {{ "entry": string, "exit": string }} }},
  "brakingPoints": {{ "turnNumber": string }},
  "recommendations": string[],
  "sectors": [{{ "number": number, "time": string, "mistakes": [] }}]
}}"""


def _extract_json(text: str) -> Any:
    """Pull a JSON value out of *text*, tolerating markdown code fences."""
    json_text = text.strip()
    if "```json" in json_text:
        json_text = json_text.split("```json", 1)[1]
        json_text = json_text.split("```", 1)[0]
    elif "```" in json_text:
        json_text = json_text.split("```", 1)[1]
        json_text = json_text.split("```", 1)[0]

    try:
        return json.loads(json_text.strip())
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            with contextlib.suppress(json.JSONDecodeError):
                return json.loads(text[start : end + 1])
    return None


def _as_point(value: Any) -> TrackPoint | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return None
    return (float(value[0]), float(value[1]))


def _as_problem(value: Any) -> Problem | None:
    if not isinstance(value, dict):
        return None
    position = _as_point(value.get("position"))
    description = value.get("description")
    try:
        severity = Severity(value.get("severity"))
    except ValueError:
        return None
    if position is None or not isinstance(description, str):
        return None
    time_lost = value.get("timeLost")
    return Problem(
        position=position,
        description=description,
        severity=severity,
        time_lost=str(time_lost) if time_lost is not None else None,
    )


def _as_sector(value: Any) -> Sector | None:
    if not isinstance(value, dict) or not isinstance(value.get("number"), int):
        return None
    mistakes_raw = value.get("mistakes", [])
    if not isinstance(mistakes_raw, list):
        return None
    mistakes = []
    for m in mistakes_raw:
        if isinstance(m, str):
            mistakes.append(SectorMistake(description=m, solution="", time_lost=""))
        elif isinstance(m, dict):
            mistakes.append(
                SectorMistake(
                    description=str(m.get("description", "")),
                    solution=str(m.get("solution", "")),
                    time_lost=str(m.get("timeLost", "")),
                )
            )
        else:
            return None
    return Sector(number=value["number"], time=str(value.get("time", "")), mistakes=mistakes)


def _all_or_none(items: list[Any], convert: Any) -> list[Any] | None:
    """Convert every item, or return None if any of them is malformed."""
    out = [convert(item) for item in items]
    if any(o is None for o in out):
        return None
    return out


def parse_ai_response(text: str) -> AiAnalysis | None:
    """Parse and validate the AI's JSON reply; any deviation returns None."""
    data = _extract_json(text)
    if not isinstance(data, dict):
        return None

    lap = data.get("lapAnalysis")
    corners = data.get("cornerAnalysis")
    braking = data.get("brakingPoints")
    recs = data.get("recommendations")
    sectors_raw = data.get("sectors")

    if not isinstance(lap, dict) or not isinstance(lap.get("currentTime"), str):
        return None
    if not isinstance(corners, dict) or not isinstance(braking, dict):
        return None
    if not isinstance(recs, list) or not all(isinstance(r, str) for r in recs):
        return None
    if not isinstance(sectors_raw, list):
        return None

    corner_analysis: dict[str, TurnSpeed] = {}
    for turn, speeds in corners.items():
        if not isinstance(speeds, dict):
            return None
        corner_analysis[str(turn)] = TurnSpeed(
            entry=str(speeds.get("entry", "")), exit=str(speeds.get("exit", ""))
        )

    sectors = _all_or_none(sectors_raw, _as_sector)
    if sectors is None:
        return None

    # Optional overrides for the locally computed trace and problems
    track_points = None
    if "trackPoints" in data:
        if not isinstance(data["trackPoints"], list):
            return None
        track_points = _all_or_none(data["trackPoints"], _as_point)
        if track_points is None:
            return None
    problems = None
    if "problems" in data:
        if not isinstance(data["problems"], list):
            return None
        problems = _all_or_none(data["problems"], _as_problem)
        if problems is None:
            return None

    return AiAnalysis(
        current_time=lap["currentTime"],
        potential_improvement=str(lap.get("potentialImprovement", "")),
        corner_analysis=corner_analysis,
        braking_points={str(k): str(v) for k, v in braking.items()},
        recommendations=recs,
        sectors=sectors,
        track_points=track_points,
        problems=problems,
        raw_response=text,
    )


def create_client(api_key: str, timeout_s: float = DEFAULT_TIMEOUT_S) -> Any:
    """Create an Anthropic client that never retries.

    Returns None if *api_key* is empty.
    """
    import anthropic

    if not api_key:
        return None
    return anthropic.Anthropic(api_key=api_key, max_retries=0, timeout=timeout_s)


def request_ai_analysis(
    prompt: str,
    *,
    client: Any,
    model: str = DEFAULT_MODEL,
) -> AiAnalysis | None:
    """Send *prompt* to the AI and return its parsed analysis, or None on failure."""
    if client is None:
        return None

    try:
        msg = client.messages.create(
            model=model,
            max_tokens=_MAX_TOKENS,
            system=ANALYST_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
    except Exception as e:
        logger.warning("AI analysis call failed: %s", e, exc_info=True)
        return None

    if not msg.content:
        logger.warning("AI analysis returned an empty message")
        return None
    blk = msg.content[0]
    text = blk.text if hasattr(blk, "text") else str(blk)

    analysis = parse_ai_response(text)
    if analysis is None:
        logger.warning("AI analysis reply did not match the expected structure")
    return analysis
