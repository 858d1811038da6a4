"""Audit trail models for tracking orchestration transitions and tool calls.

Each entry records what happened (``action``), who did it (``actor``), the
record it concerns (``entity_type`` / ``entity_id``), and an arbitrary JSON
payload with the details.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class AuditAction(StrEnum):
    """Actions recorded in the audit trail."""

    EVENT_RECEIVED = "event.received"
    CONVERSATION_CREATED = "conversation.created"
    RUNNER_START = "runner.start"
    RUNNER_STOPPED = "runner.stopped"
    RUNNER_STEP_FAILED = "runner.step_failed"
    RUNNER_ERROR = "runner.error"
    RUNNER_COMPLETE = "runner.complete"
    APPROVALS_REQUEST = "approvals.request"
    ACTION_APPROVED = "action.approved"
    ACTION_REJECTED = "action.rejected"
    ACTION_REPLAY_FAILED = "action.replay_failed"
    BOOKING_CONFIRMATION_FAILED = "booking.confirmation_failed"
    COMMS_SEND_SMS = "comms.send_sms"
    COMMS_INBOUND = "comms.inbound"
    FSM_CREATE_LEAD = "fsm.create_lead"
    FSM_CREATE_JOB = "fsm.create_job"


class AuditEntry(BaseModel):
    """A single audit trail entry.

    Only ``action`` is required; transitions carry the plan id as entity,
    tool calls carry the conversation or job they touched.
    """

    action: str
    actor: str = "system"
    entity_type: str | None = None
    entity_id: str | None = None
    payload: dict[str, Any] | None = None
