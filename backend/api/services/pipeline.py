"""Pipeline service: runs racespace analysis off the event loop.

Upload bytes -> UTF-8 text -> racespace.report.analyze_telemetry.  The
analysis (including the optional blocking AI call) runs via
asyncio.to_thread().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from racespace.report import AnalysisOutcome, AnalysisParams, analyze_telemetry

logger = logging.getLogger(__name__)


def decode_upload(file_bytes: bytes) -> str:
    """Decode an uploaded file as UTF-8 text.

    Raises ``ValueError`` (``UnicodeDecodeError``) for binary content.
    """
    return file_bytes.decode("utf-8")


async def run_analysis(
    file_bytes: bytes,
    filename: str,
    *,
    track: str,
    car_class: str,
    game: str,
    params: AnalysisParams,
    ai_client: Any = None,
) -> AnalysisOutcome:
    """Analyse one uploaded telemetry file in a worker thread."""
    raw_text = decode_upload(file_bytes)
    logger.info(
        "Analysing %s (%d bytes) for %s / %s / %s", filename, len(file_bytes), track, car_class, game
    )
    return await asyncio.to_thread(
        analyze_telemetry,
        raw_text,
        track=track,
        car_class=car_class,
        game=game,
        params=params,
        ai_client=ai_client,
    )
