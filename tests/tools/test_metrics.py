"""Tests for the business metrics recorder."""

from __future__ import annotations

from prometheus_client import REGISTRY

from leadflow.tools.metrics import MetricsRecorder


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestMetricsRecorder:
    def test_labelled_counter_increments(self) -> None:
        labels = {"agent": "quote", "action": "generate_quote"}
        before = _sample("leadflow_steps_completed_total", labels)

        MetricsRecorder().record("step_completed", tags=labels)

        assert _sample("leadflow_steps_completed_total", labels) == before + 1

    def test_unlabelled_counter_ignores_tags(self) -> None:
        before = _sample("leadflow_review_requests_sent_total")

        MetricsRecorder().record("review_request_sent", 2, tags={"job_id": "7"})

        assert _sample("leadflow_review_requests_sent_total") == before + 2

    def test_missing_labels_recorded_as_unknown(self) -> None:
        labels = {"event_type": "unknown", "status": "completed"}
        before = _sample("leadflow_events_processed_total", labels)

        MetricsRecorder().record("event_processed", tags={"status": "completed"})

        assert _sample("leadflow_events_processed_total", labels) == before + 1

    def test_unknown_metric_is_ignored(self) -> None:
        MetricsRecorder().record("deals_closed")
