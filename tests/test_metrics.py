"""Tests for the Prometheus metrics endpoint and business counters."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from leadflow.observability.metrics import (
    EVENTS_PROCESSED,
    PENDING_APPROVALS,
    setup_metrics,
)


@pytest.fixture()
def metrics_client() -> TestClient:
    """TestClient for a minimal app with Prometheus instrumentation."""
    app = FastAPI()

    @app.get("/hello")
    async def hello():
        return {"msg": "hello"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready():
        return {"status": "ready"}

    setup_metrics(app)
    return TestClient(app)


def _extract_value(text: str, sample: str) -> float:
    """Extract the numeric value of one sample line from Prometheus text output."""
    for line in text.splitlines():
        if line.startswith(sample + " "):
            return float(line.split()[-1])
    raise ValueError(f"Metric {sample} not found in output")


def test_metrics_endpoint_returns_prometheus_format(metrics_client: TestClient) -> None:
    metrics_client.get("/hello")
    resp = metrics_client.get("/metrics")
    assert resp.status_code == 200
    assert "http_request" in resp.text
    assert "leadflow_pending_approvals" in resp.text
    assert "leadflow_review_requests_sent_total" in resp.text


def test_excluded_handlers_not_in_metrics(metrics_client: TestClient) -> None:
    """/health and /ready do not show up as handler labels."""
    metrics_client.get("/health")
    metrics_client.get("/ready")
    body = metrics_client.get("/metrics").text
    lines = [
        line for line in body.splitlines() if "http_request_duration" in line and "handler=" in line
    ]
    for line in lines:
        assert '/health"' not in line, f"/health found in metrics: {line}"
        assert '/ready"' not in line, f"/ready found in metrics: {line}"


def test_pending_approvals_gauge_exposed(metrics_client: TestClient) -> None:
    before = REGISTRY.get_sample_value("leadflow_pending_approvals") or 0.0
    try:
        PENDING_APPROVALS.set(4)
        body = metrics_client.get("/metrics").text
        assert _extract_value(body, "leadflow_pending_approvals") == 4.0
    finally:
        PENDING_APPROVALS.set(before)


def test_events_processed_counter_increments(metrics_client: TestClient) -> None:
    sample = 'leadflow_events_processed_total{event_type="web_lead",status="completed"}'
    EVENTS_PROCESSED.labels(event_type="web_lead", status="completed").inc(0)
    initial = _extract_value(metrics_client.get("/metrics").text, sample)

    EVENTS_PROCESSED.labels(event_type="web_lead", status="completed").inc()

    assert _extract_value(metrics_client.get("/metrics").text, sample) == initial + 1.0
