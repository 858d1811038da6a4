"""Plan and step models produced by the planner.

Step inputs are tagged by ``action`` so each executor receives exactly the
fields it needs.  Plans are transient; only their execution trace is
persisted.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from leadflow.domain.types import AgentName, EventType, StepAction

_FROZEN = ConfigDict(frozen=True)


class RespondMissedCallInputs(BaseModel):
    model_config = _FROZEN

    action: Literal["respond_missed_call"] = "respond_missed_call"
    phone: str
    customer_name: str | None = None


class RecordLeadInputs(BaseModel):
    """Open the conversation for a lead and mirror it into the FSM system."""

    model_config = _FROZEN

    action: Literal["record_lead"] = "record_lead"
    phone: str
    source: EventType
    customer_name: str | None = None
    service_requested: str = "General inquiry"
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    summary: str | None = None
    mark_qualified: bool = False
    sync_to_fsm: bool = True


class QualifyLeadInputs(BaseModel):
    """Record the customer's text and run the intake agent on it.

    ``reply_when_qualified`` is set when no later step of the plan answers
    the customer, so the intake reply is sent even for qualified leads.
    """

    model_config = _FROZEN

    action: Literal["qualify_lead"] = "qualify_lead"
    phone: str
    message: str
    customer_name: str | None = None
    reply_when_qualified: bool = False


class DraftQuoteInputs(BaseModel):
    model_config = _FROZEN

    action: Literal["draft_quote"] = "draft_quote"
    phone: str
    service_type: str | None = None
    address: str | None = None
    notes: str | None = None


class ProposeScheduleInputs(BaseModel):
    model_config = _FROZEN

    action: Literal["propose_schedule"] = "propose_schedule"
    phone: str
    service_type: str | None = None
    address: str | None = None
    notes: str | None = None


class RequestReviewInputs(BaseModel):
    model_config = _FROZEN

    action: Literal["request_review"] = "request_review"
    phone: str
    job_id: str
    customer_name: str | None = None
    service_type: str | None = None


StepInputs = Annotated[
    RespondMissedCallInputs
    | RecordLeadInputs
    | QualifyLeadInputs
    | DraftQuoteInputs
    | ProposeScheduleInputs
    | RequestReviewInputs,
    Field(discriminator="action"),
]


class Step(BaseModel):
    """One ordered unit of work dispatched to an agent."""

    model_config = _FROZEN

    step_id: str
    agent: AgentName
    inputs: StepInputs
    requires_approval: bool = False
    description: str

    @property
    def action(self) -> StepAction:
        return StepAction(self.inputs.action)


class Plan(BaseModel):
    """Ordered steps for one event under one policy version."""

    model_config = _FROZEN

    plan_id: str
    event_id: str
    event_type: EventType
    policy_version: str
    steps: tuple[Step, ...] = ()
    stop_reason: str | None = None

    @property
    def should_stop(self) -> bool:
        """Return True if the planner declined to act on the event."""
        return self.stop_reason is not None
