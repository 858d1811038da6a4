"""Prometheus metrics instrumentation for the orchestration engine.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus business metrics.
- Business counters updated by the ``metrics.record`` tool at the point the
  event happens (not by polling the database).
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator

EVENTS_PROCESSED: Counter = Counter(
    "leadflow_events_processed_total",
    "Inbound events that reached a terminal status",
    ["event_type", "status"],
)

STEPS_COMPLETED: Counter = Counter(
    "leadflow_steps_completed_total",
    "Plan steps that completed without suspension",
    ["agent", "action"],
)

REVIEW_REQUESTS_SENT: Counter = Counter(
    "leadflow_review_requests_sent_total",
    "Review requests sent to customers after job completion",
)

APPROVALS_RESOLVED: Counter = Counter(
    "leadflow_approvals_resolved_total",
    "Pending actions resolved by an operator",
    ["decision"],
)

AGENT_FALLBACKS: Counter = Counter(
    "leadflow_agent_fallbacks_total",
    "Agent calls answered by the deterministic template",
    ["agent"],
)

PENDING_APPROVALS: Gauge = Gauge(
    "leadflow_pending_approvals",
    "Actions currently waiting for operator approval",
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
