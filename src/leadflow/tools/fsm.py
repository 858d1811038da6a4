"""Field service management (FSM) tool: leads, jobs, and availability.

Two clients implement the ``FsmClient`` protocol:

- ``InMemoryFsm``: a local system of record used in development and tests.
- ``HttpFsmClient``: a REST client with a per-call timeout and bounded
  retries on transient errors via :func:`resilient_api_call`.

``FsmTool`` wraps either one, audits each write, and converts any failure
into :class:`ExternalToolError`.
"""

from __future__ import annotations

import itertools
from datetime import datetime, time, timedelta
from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel, ConfigDict
from tenacity.wait import wait_base

from leadflow.audit.logger import AuditLogger
from leadflow.audit.models import AuditAction
from leadflow.domain.errors import ExternalToolError
from leadflow.resilience.retry import resilient_api_call

logger = structlog.get_logger()

SLOT_HOURS: tuple[int, ...] = (9, 14)
JOB_DURATION = timedelta(hours=2)


class LeadRequest(BaseModel):
    """Lead data sent to the FSM system."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    phone: str
    service_requested: str
    email: str | None = None
    address: str | None = None
    notes: str | None = None


class JobRequest(BaseModel):
    """Job data sent to the FSM system."""

    model_config = ConfigDict(frozen=True)

    customer_name: str
    customer_phone: str
    service_type: str
    scheduled_start: datetime
    scheduled_end: datetime
    address: str | None = None
    estimated_price: int | None = None
    notes: str | None = None


class FsmClient(Protocol):
    """Operations the engine needs from a field service system."""

    def create_lead(self, lead: LeadRequest) -> str: ...

    def create_job(self, job: JobRequest) -> str: ...

    def get_available_slots(self, start: datetime, days: int) -> list[datetime]: ...


def generate_slots(start: datetime, days: int = 7) -> list[datetime]:
    """Return the standard appointment slots for the *days* after *start*.

    Slots begin the day after *start*, at each hour in ``SLOT_HOURS``, in the
    same timezone as *start*.
    """
    first_day = (start + timedelta(days=1)).date()
    return [
        datetime.combine(first_day + timedelta(days=offset), time(hour), tzinfo=start.tzinfo)
        for offset in range(days)
        for hour in SLOT_HOURS
    ]


class InMemoryFsm:
    """Local FSM system of record with deterministic ids and slots."""

    def __init__(self) -> None:
        self.leads: dict[str, LeadRequest] = {}
        self.jobs: dict[str, JobRequest] = {}
        self._lead_ids = itertools.count(1)
        self._job_ids = itertools.count(1)

    def create_lead(self, lead: LeadRequest) -> str:
        lead_id = f"lead_{next(self._lead_ids):04d}"
        self.leads[lead_id] = lead
        return lead_id

    def create_job(self, job: JobRequest) -> str:
        job_id = f"job_{next(self._job_ids):04d}"
        self.jobs[job_id] = job
        return job_id

    def get_available_slots(self, start: datetime, days: int) -> list[datetime]:
        booked = {job.scheduled_start for job in self.jobs.values()}
        return [slot for slot in generate_slots(start, days) if slot not in booked]


class HttpFsmClient:
    """REST client for an external FSM system.

    Args:
        base_url: API base URL.
        token: Bearer token.
        timeout: Per-request timeout in seconds.
        max_attempts: Attempts per call, including the first.
        wait: Tenacity wait strategy between attempts (tests pass ``wait_none()``).
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        wait: wait_base | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )
        self._request = resilient_api_call("fsm", attempts=max_attempts, wait=wait)(
            self._request_once
        )

    def _request_once(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = self._client.request(method, path, json=json, params=params)
        response.raise_for_status()
        return response.json()

    def create_lead(self, lead: LeadRequest) -> str:
        data = self._request("POST", "/leads", json=lead.model_dump(mode="json"))
        return str(data["id"])

    def create_job(self, job: JobRequest) -> str:
        data = self._request("POST", "/jobs", json=job.model_dump(mode="json"))
        return str(data["id"])

    def get_available_slots(self, start: datetime, days: int) -> list[datetime]:
        data = self._request(
            "GET", "/availability", params={"start": start.isoformat(), "days": days}
        )
        return [datetime.fromisoformat(slot) for slot in data["slots"]]

    def close(self) -> None:
        self._client.close()


class FsmTool:
    """FSM side of the tool facade.

    Args:
        client: Any ``FsmClient`` implementation.
        audit: Audit logger for tool-call entries.
    """

    def __init__(self, client: FsmClient, audit: AuditLogger) -> None:
        self._client = client
        self._audit = audit

    def create_lead(self, lead: LeadRequest, *, conversation_id: int | None = None) -> str:
        """Create a lead and return the FSM's id for it.

        Raises:
            ExternalToolError: If the FSM call fails.
        """
        try:
            external_id = self._client.create_lead(lead)
        except Exception as exc:
            logger.error("fsm_create_lead_failed", phone=lead.phone, error=str(exc))
            raise ExternalToolError("fsm.create_lead", str(exc)) from exc

        self._audit.log_tool_call(
            AuditAction.FSM_CREATE_LEAD,
            {"external_id": external_id, "service_requested": lead.service_requested},
            entity_type="conversation",
            entity_id=conversation_id,
        )
        return external_id

    def create_job(self, job: JobRequest, *, conversation_id: int | None = None) -> str:
        """Create a job and return the FSM's id for it.

        Raises:
            ExternalToolError: If the FSM call fails.
        """
        try:
            external_id = self._client.create_job(job)
        except Exception as exc:
            logger.error("fsm_create_job_failed", phone=job.customer_phone, error=str(exc))
            raise ExternalToolError("fsm.create_job", str(exc)) from exc

        self._audit.log_tool_call(
            AuditAction.FSM_CREATE_JOB,
            {
                "external_id": external_id,
                "service_type": job.service_type,
                "scheduled_start": job.scheduled_start.isoformat(),
            },
            entity_type="conversation",
            entity_id=conversation_id,
        )
        return external_id

    def get_available_slots(self, start: datetime, days: int = 7) -> list[datetime]:
        """Return open appointment slots after *start*.

        Raises:
            ExternalToolError: If the FSM call fails or no slot is open.
        """
        try:
            slots = self._client.get_available_slots(start, days)
        except Exception as exc:
            raise ExternalToolError("fsm.get_available_slots", str(exc)) from exc
        if not slots:
            raise ExternalToolError("fsm.get_available_slots", "no open slots")
        return slots
