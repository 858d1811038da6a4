"""Tests for the FSM tool, the in-memory system of record, and the HTTP client."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime

import httpx
import pytest
from tenacity import wait_none

from leadflow.audit.logger import AuditLogger
from leadflow.audit.store import query_audit_trail
from leadflow.domain.errors import ExternalToolError
from leadflow.tools.fsm import (
    JOB_DURATION,
    FsmTool,
    HttpFsmClient,
    InMemoryFsm,
    JobRequest,
    LeadRequest,
    generate_slots,
)

START = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
SLOT = datetime(2026, 3, 3, 9, 0, tzinfo=UTC)


def _job(start: datetime = SLOT) -> JobRequest:
    return JobRequest(
        customer_name="Dana",
        customer_phone="+15551234567",
        service_type="lawn mowing",
        scheduled_start=start,
        scheduled_end=start + JOB_DURATION,
    )


class TestGenerateSlots:
    def test_starts_next_day_at_slot_hours(self) -> None:
        slots = generate_slots(START, days=2)

        assert slots == [
            datetime(2026, 3, 3, 9, 0, tzinfo=UTC),
            datetime(2026, 3, 3, 14, 0, tzinfo=UTC),
            datetime(2026, 3, 4, 9, 0, tzinfo=UTC),
            datetime(2026, 3, 4, 14, 0, tzinfo=UTC),
        ]


class TestInMemoryFsm:
    def test_ids_are_sequential(self) -> None:
        fsm = InMemoryFsm()

        assert fsm.create_lead(LeadRequest(phone="1", service_requested="x")) == "lead_0001"
        assert fsm.create_job(_job()) == "job_0001"
        assert fsm.create_job(_job()) == "job_0002"

    def test_booked_slots_are_not_offered(self) -> None:
        fsm = InMemoryFsm()
        fsm.create_job(_job(SLOT))

        slots = fsm.get_available_slots(START, 1)

        assert slots == [datetime(2026, 3, 3, 14, 0, tzinfo=UTC)]


class TestFsmTool:
    def test_create_job_audits(self, conn: sqlite3.Connection, audit: AuditLogger) -> None:
        tool = FsmTool(InMemoryFsm(), audit)

        external_id = tool.create_job(_job(), conversation_id=2)

        assert external_id == "job_0001"
        entries = query_audit_trail(conn, action="fsm.create_job")
        assert entries[0]["entity_id"] == "2"
        assert entries[0]["payload"]["scheduled_start"] == SLOT.isoformat()

    def test_create_lead_failure_wrapped(self, audit: AuditLogger) -> None:
        class BrokenFsm(InMemoryFsm):
            def create_lead(self, lead: LeadRequest) -> str:
                raise RuntimeError("FSM down")

        tool = FsmTool(BrokenFsm(), audit)

        with pytest.raises(ExternalToolError, match="fsm.create_lead failed: FSM down"):
            tool.create_lead(LeadRequest(phone="+15551234567", service_requested="Mulching"))

    def test_no_open_slots_is_an_error(self, audit: AuditLogger) -> None:
        class FullyBooked(InMemoryFsm):
            def get_available_slots(self, start: datetime, days: int) -> list[datetime]:
                return []

        with pytest.raises(ExternalToolError, match="no open slots"):
            FsmTool(FullyBooked(), audit).get_available_slots(START)


class TestHttpFsmClient:
    def _client(self, handler, max_attempts: int = 3) -> HttpFsmClient:
        return HttpFsmClient(
            "https://fsm.example.com",
            "token",
            max_attempts=max_attempts,
            wait=wait_none(),
            transport=httpx.MockTransport(handler),
        )

    def test_create_lead_posts_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": 981})

        client = self._client(handler)
        lead_id = client.create_lead(
            LeadRequest(name="Dana", phone="+15551234567", service_requested="Mulching")
        )

        assert lead_id == "981"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/leads"
        assert json.loads(seen[0].content)["service_requested"] == "Mulching"

    def test_retries_transient_errors(self) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(503)
            return httpx.Response(201, json={"id": "job_9"})

        assert self._client(handler).create_job(_job()) == "job_9"
        assert calls["n"] == 3

    def test_client_errors_not_retried(self) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(400, json={"error": "bad"})

        with pytest.raises(httpx.HTTPStatusError):
            self._client(handler).create_job(_job())
        assert calls["n"] == 1

    def test_gives_up_after_max_attempts(self) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            self._client(handler, max_attempts=2).create_job(_job())
        assert calls["n"] == 2

    def test_parses_availability(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["days"] == "7"
            return httpx.Response(200, json={"slots": ["2026-03-03T09:00:00+00:00"]})

        slots = self._client(handler).get_available_slots(START, 7)

        assert slots == [SLOT]
