"""``metrics.record`` tool mapping business metric names to Prometheus counters."""

from __future__ import annotations

import structlog
from prometheus_client import Counter

from leadflow.observability.metrics import (
    APPROVALS_RESOLVED,
    EVENTS_PROCESSED,
    REVIEW_REQUESTS_SENT,
    STEPS_COMPLETED,
)

logger = structlog.get_logger()

# metric name -> (counter, label names)
METRIC_COUNTERS: dict[str, tuple[Counter, tuple[str, ...]]] = {
    "event_processed": (EVENTS_PROCESSED, ("event_type", "status")),
    "step_completed": (STEPS_COMPLETED, ("agent", "action")),
    "review_request_sent": (REVIEW_REQUESTS_SENT, ()),
    "approval_resolved": (APPROVALS_RESOLVED, ("decision",)),
}


class MetricsRecorder:
    """Record named business metrics.

    Unknown names are logged and ignored; metrics never fail a plan.
    """

    def record(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        """Increment the counter registered under *name*.

        Args:
            name: Metric name, e.g. ``"step_completed"``.
            value: Amount to add.
            tags: Label values; missing labels are recorded as ``"unknown"``.
        """
        tags = tags or {}
        entry = METRIC_COUNTERS.get(name)
        if entry is None:
            logger.warning("unknown_metric", name=name)
            return

        counter, label_names = entry
        if label_names:
            labels = {label: str(tags.get(label, "unknown")) for label in label_names}
            counter.labels(**labels).inc(value)
        else:
            counter.inc(value)
        logger.debug("metric_recorded", name=name, value=value, tags=tags)
