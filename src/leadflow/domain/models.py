"""Pydantic v2 models for persisted domain records.

Every record is frozen.  The store hands out fresh copies on each read and
update; nothing mutates a record in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from leadflow.domain.payloads import ActionPayload
from leadflow.domain.types import (
    TERMINAL_EVENT_STATUSES,
    ActionType,
    AgentName,
    ApprovalStatus,
    ConversationStatus,
    EventStatus,
    EventType,
    JobStatus,
    LeadStatus,
    MessageRole,
)


class Event(BaseModel):
    """An inbound event as received, moved once to a terminal status."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: EventType
    payload: dict[str, Any]
    status: EventStatus = EventStatus.PROCESSING
    conversation_id: int | None = None
    error: str | None = None
    created_at: datetime
    processed_at: datetime | None = None


class EventReceipt(BaseModel):
    """Idempotency record keyed by the event id.

    ``claimed_at`` is refreshed whenever a stale ``processing`` receipt is
    re-claimed by a retry.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str
    event_type: EventType
    status: EventStatus = EventStatus.PROCESSING
    result: dict[str, Any] | None = None
    claimed_at: datetime
    created_at: datetime
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        """Return True once the receipt has reached completed or failed."""
        return self.status in TERMINAL_EVENT_STATUSES


class Conversation(BaseModel):
    """A thread of messages with one customer, keyed by phone number."""

    model_config = ConfigDict(frozen=True)

    id: int
    customer_phone: str
    customer_name: str | None = None
    source: EventType
    status: ConversationStatus = ConversationStatus.ACTIVE
    agent_type: AgentName = AgentName.INTAKE
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    """A single append-only conversation message."""

    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: int
    role: MessageRole
    content: str
    created_at: datetime


class PendingAction(BaseModel):
    """A side effect held for operator approval.

    ``payload`` carries everything needed to replay the side effect; approval
    never re-derives content from conversation state.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: int
    action_type: ActionType
    description: str
    payload: ActionPayload
    status: ApprovalStatus = ApprovalStatus.PENDING
    notes: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: str | None = None


class Job(BaseModel):
    """A booked unit of work; ``estimated_price`` is in cents."""

    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: int | None = None
    external_id: str | None = None
    customer_name: str
    customer_phone: str
    customer_address: str | None = None
    service_type: str
    scheduled_date: datetime
    estimated_price: int | None = None
    status: JobStatus = JobStatus.SCHEDULED
    notes: str | None = None
    created_at: datetime


class Lead(BaseModel):
    """Local cross-reference to a lead created in the field service system."""

    model_config = ConfigDict(frozen=True)

    id: int
    external_id: str
    conversation_id: int | None = None
    name: str | None = None
    phone: str
    service_requested: str
    notes: str | None = None
    status: LeadStatus = LeadStatus.NEW
    created_at: datetime
