"""Finished analysis reports, keyed by analysis id.

Only the most recent ``max_reports`` reports are kept; older ones are
evicted in insertion order.
"""

from __future__ import annotations

import logging

from racespace.report import AnalysisReport

from backend.api.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "analysis:"
_INDEX_KEY = "analysis-index"
DEFAULT_MAX_REPORTS = 500


def store_report(
    store: KeyValueStore, report: AnalysisReport, max_reports: int = DEFAULT_MAX_REPORTS
) -> None:
    """Save *report* under its id, evicting the oldest reports beyond *max_reports*."""
    index: list[str] = list(store.get(_INDEX_KEY) or [])
    store.put(f"{_KEY_PREFIX}{report.id}", report)
    if report.id not in index:
        index.append(report.id)

    while len(index) > max(1, max_reports):
        evicted = index.pop(0)
        store.delete(f"{_KEY_PREFIX}{evicted}")
        logger.debug("Evicted analysis %s from the report store", evicted)
    store.put(_INDEX_KEY, index)


def get_report(store: KeyValueStore, analysis_id: str) -> AnalysisReport | None:
    """Retrieve a report by id, or None if not found."""
    report = store.get(f"{_KEY_PREFIX}{analysis_id}")
    return report if isinstance(report, AnalysisReport) else None
