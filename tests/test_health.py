"""Tests for /health and /ready observability endpoints.

Uses FastAPI TestClient with in-memory SQLite connections to verify
liveness and readiness probes without external dependencies.
"""

from __future__ import annotations

import sqlite3

from fastapi import FastAPI
from fastapi.testclient import TestClient

from leadflow.health import register_health_routes

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_app(services: dict | None = None) -> FastAPI:
    """Create a minimal FastAPI app with health routes and given services."""
    app = FastAPI()
    app.state.services = services or {}
    register_health_routes(app)
    return app


# ---------------------------------------------------------------------------
# /health (liveness)
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        response = TestClient(_make_app()).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ---------------------------------------------------------------------------
# /ready (readiness)
# ---------------------------------------------------------------------------


class TestReadyEndpoint:
    """GET /ready readiness probe."""

    def test_ready_returns_200_when_services_ok(self) -> None:
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        client = TestClient(_make_app({"db_conn": conn, "orchestrator": object()}))

        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"database": "ok", "orchestrator": "ok"},
        }
        conn.close()

    def test_ready_returns_503_when_db_missing(self) -> None:
        client = TestClient(_make_app({"db_conn": None, "orchestrator": object()}))

        response = client.get("/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"] == {"database": "fail", "orchestrator": "ok"}

    def test_ready_returns_503_when_orchestrator_missing(self) -> None:
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        client = TestClient(_make_app({"db_conn": conn}))

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"] == {"database": "ok", "orchestrator": "fail"}
        conn.close()

    def test_ready_returns_503_when_db_connection_broken(self) -> None:
        """A closed connection that raises on execute -> database fails."""
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        conn.close()
        client = TestClient(_make_app({"db_conn": conn, "orchestrator": object()}))

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"] == "fail"
