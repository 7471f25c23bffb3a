"""
Per-query telemetry records.

Telemetry is best effort: building or emitting a record never raises into
the search path.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .retriever import StrategyRun

logger = logging.getLogger(__name__)

QUERY_PREFIX_CHARS = 50


def build_payload(
    query: str,
    run: StrategyRun,
    *,
    fallback_used: bool = False,
    elapsed_ms: Optional[float] = None,
    result_count: Optional[int] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "query": query[:QUERY_PREFIX_CHARS],
        "category": run.category.value if run.category is not None else None,
        "stage_counts": dict(run.stage_counts),
        "stage_timings_ms": dict(run.stage_timings),
        "failed_stages": list(run.failed_stages),
        "fallback_used": fallback_used,
        "degraded": run.degraded,
    }
    if elapsed_ms is not None:
        payload["elapsed_ms"] = elapsed_ms
    if result_count is not None:
        payload["result_count"] = result_count
    return payload


def emit(event: str, payload: Dict[str, Any], level: int = logging.INFO, log: logging.Logger = logger) -> None:
    """Log ``event`` with the payload under ``extra["telemetry"]``."""
    try:
        log.log(level, event, extra={"telemetry": payload})
    except Exception:
        # handlers swallow their own errors; this covers filters and adapters
        pass
