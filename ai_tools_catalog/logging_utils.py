"""One-line structured summaries of scraping runs.

Each run emits a single ``PIPELINE_SUMMARY {json}`` record on the
``pipeline_summary.<name>`` logger so log shippers can chart runs without
reading the catalog database.
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional

SUMMARY_PREFIX = "PIPELINE_SUMMARY"

# Orchestrator summary key -> emitted metric name
OUTCOME_METRICS = {
    "scrapers_run": "scrapers",
    "scrapers_failed": "scrapers_failed",
    "total_tools_added": "tools_added",
    "total_duplicates": "duplicates",
    "total_errors": "errors",
}


@dataclass
class RunSummaryLog:
    pipeline: str
    logger: logging.Logger
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started: float = field(default_factory=time.perf_counter)
    status: str = "success"
    attributes: Dict[str, Any] = field(default_factory=dict)
    metrics: Dict[str, int] = field(default_factory=dict)
    failed_scrapers: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def set_attribute(self, name: str, value: Any) -> None:
        if value is not None:
            self.attributes[name] = value if isinstance(value, (str, int, float, bool)) else str(value)

    def record_outcome(self, summary: Dict[str, Any], details: List[Dict[str, Any]]) -> None:
        """Copy run counters and failed scraper names from an orchestrator result."""
        for key, metric in OUTCOME_METRICS.items():
            self.metrics[metric] = int(summary.get(key) or 0)
        self.failed_scrapers = [entry["scraper"] for entry in details if not entry.get("success")]
        if self.failed_scrapers:
            self.status = "partial"

    def emit(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "pipeline": self.pipeline,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": datetime.now(timezone.utc).isoformat(),
            "duration_seconds": round(max(0.0, time.perf_counter() - self.started), 3),
        }
        if self.attributes:
            payload["attributes"] = self.attributes
        if self.metrics:
            payload["metrics"] = self.metrics
        if self.failed_scrapers:
            payload["failed_scrapers"] = self.failed_scrapers
        if self.error:
            payload["error"] = self.error

        self.logger.info(f"{SUMMARY_PREFIX} {json.dumps(payload, sort_keys=True)}")
        return payload


@contextmanager
def pipeline_summary(pipeline: str, *, logger_name: Optional[str] = None) -> Iterator[RunSummaryLog]:
    """Emit one summary line when the block exits, marking the run as errored if it raised."""
    log = RunSummaryLog(pipeline=pipeline, logger=logging.getLogger(logger_name or f"pipeline_summary.{pipeline}"))
    try:
        yield log
    except Exception as exc:
        log.status = "error"
        log.error = f"{exc.__class__.__name__}: {str(exc)[:200]}"
        log.emit()
        raise
    log.emit()
