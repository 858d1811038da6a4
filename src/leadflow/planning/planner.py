"""Deterministic supervisor: map an event plus state and policy to a plan.

``plan()`` is a pure function.  It reads nothing but its arguments, uses no
clock or randomness, and derives every id from the event id, so the same
inputs always produce an identical ``Plan``.
"""

from __future__ import annotations

from leadflow.context.builder import StateSnapshot
from leadflow.domain.payloads import (
    InboundEvent,
    InboundSmsPayload,
    JobCompletedPayload,
    MissedCallPayload,
    WebLeadPayload,
)
from leadflow.domain.types import AgentName, ConversationStatus, EventType
from leadflow.planning.models import (
    DraftQuoteInputs,
    Plan,
    ProposeScheduleInputs,
    QualifyLeadInputs,
    RecordLeadInputs,
    RequestReviewInputs,
    RespondMissedCallInputs,
    Step,
    StepInputs,
)
from leadflow.planning.policy import Policy


class _StepBuilder:
    """Numbers steps as they are appended."""

    def __init__(self, plan_id: str) -> None:
        self._plan_id = plan_id
        self.steps: list[Step] = []

    def add(
        self,
        agent: AgentName,
        inputs: StepInputs,
        description: str,
        *,
        requires_approval: bool = False,
    ) -> None:
        self.steps.append(
            Step(
                step_id=f"{self._plan_id}_step_{len(self.steps) + 1}",
                agent=agent,
                inputs=inputs,
                requires_approval=requires_approval,
                description=description,
            )
        )


def plan_id_for(event_id: str) -> str:
    return f"plan_{event_id}"


def _plan_missed_call(
    payload: MissedCallPayload, state: StateSnapshot, policy: Policy, steps: _StepBuilder
) -> str | None:
    if not policy.auto_respond_missed_calls:
        return "Missed-call auto-response is disabled by policy"

    steps.add(
        AgentName.INTAKE,
        RespondMissedCallInputs(phone=payload.phone, customer_name=payload.customer_name),
        "Text the caller back after a missed call",
        requires_approval=not policy.auto_send_messages,
    )
    if policy.sync_leads_to_fsm and state.conversation is None:
        steps.add(
            AgentName.INTAKE,
            RecordLeadInputs(
                phone=payload.phone,
                source=EventType.MISSED_CALL,
                customer_name=payload.customer_name,
                notes="Missed call - auto-created lead",
            ),
            "Create a lead for the new caller",
        )
    return None


def _plan_inbound_sms(
    payload: InboundSmsPayload, state: StateSnapshot, policy: Policy, steps: _StepBuilder
) -> str | None:
    status = state.conversation.status if state.conversation is not None else None
    follow_up_done = status in (ConversationStatus.SCHEDULED, ConversationStatus.COMPLETED)

    steps.add(
        AgentName.INTAKE,
        QualifyLeadInputs(
            phone=payload.phone,
            message=payload.message,
            customer_name=payload.customer_name,
            reply_when_qualified=follow_up_done,
        ),
        "Qualify the customer's message",
        requires_approval=not policy.auto_send_messages,
    )
    if follow_up_done:
        return None

    if status == ConversationStatus.QUALIFIED:
        steps.add(
            AgentName.SCHEDULE,
            ProposeScheduleInputs(phone=payload.phone),
            "Propose an appointment",
            requires_approval=policy.approvals_required_for_booking,
        )
    else:
        steps.add(
            AgentName.QUOTE,
            DraftQuoteInputs(phone=payload.phone),
            "Draft a quote for the requested service",
            requires_approval=not policy.auto_quote_enabled,
        )
    return None


def _plan_web_lead(
    payload: WebLeadPayload, state: StateSnapshot, policy: Policy, steps: _StepBuilder
) -> str | None:
    summary = (
        f"Web lead received: {payload.customer_name} interested in {payload.service_requested}."
    )
    if payload.notes:
        summary = f"{summary} Notes: {payload.notes}"

    steps.add(
        AgentName.INTAKE,
        RecordLeadInputs(
            phone=payload.phone,
            source=EventType.WEB_LEAD,
            customer_name=payload.customer_name,
            service_requested=payload.service_requested,
            email=payload.email,
            address=payload.address,
            notes=payload.notes,
            summary=summary,
            mark_qualified=True,
            sync_to_fsm=policy.sync_leads_to_fsm,
        ),
        "Record the web lead",
    )
    steps.add(
        AgentName.QUOTE,
        DraftQuoteInputs(
            phone=payload.phone,
            service_type=payload.service_requested,
            address=payload.address,
            notes=payload.notes,
        ),
        f"Draft a quote for {payload.service_requested}",
        requires_approval=not policy.auto_quote_enabled,
    )
    steps.add(
        AgentName.SCHEDULE,
        ProposeScheduleInputs(
            phone=payload.phone,
            service_type=payload.service_requested,
            address=payload.address,
            notes=payload.notes,
        ),
        "Propose an appointment",
        requires_approval=policy.approvals_required_for_booking,
    )
    return None


def _plan_job_completed(
    payload: JobCompletedPayload, state: StateSnapshot, policy: Policy, steps: _StepBuilder
) -> str | None:
    steps.add(
        AgentName.REVIEWS,
        RequestReviewInputs(
            phone=payload.phone,
            job_id=payload.job_id,
            customer_name=payload.customer_name,
            service_type=payload.service_type,
        ),
        "Ask the customer for a review",
        requires_approval=not policy.auto_send_messages,
    )
    return None


def plan(event: InboundEvent, state: StateSnapshot, policy: Policy) -> Plan:
    """Build the ordered plan for *event*.

    Args:
        event: The validated inbound event.
        state: Read-only snapshot of the customer's conversation.
        policy: Automation policy deciding approval gates.

    Returns:
        A ``Plan``.  When the planner declines to act (do-not-serve number,
        conversation over its message budget, disabled automation) the plan
        has no steps and a ``stop_reason``.
    """
    plan_id = plan_id_for(event.event_id)
    steps = _StepBuilder(plan_id)
    stop_reason: str | None = None

    if policy.is_phone_blocked(event.phone):
        stop_reason = "Phone number is on the do-not-serve list"
    elif state.message_count >= policy.max_messages_per_conversation:
        stop_reason = (
            f"Conversation has reached {policy.max_messages_per_conversation} messages; "
            "manual follow-up required"
        )
    else:
        payload = event.payload
        if isinstance(payload, MissedCallPayload):
            stop_reason = _plan_missed_call(payload, state, policy, steps)
        elif isinstance(payload, InboundSmsPayload):
            stop_reason = _plan_inbound_sms(payload, state, policy, steps)
        elif isinstance(payload, WebLeadPayload):
            stop_reason = _plan_web_lead(payload, state, policy, steps)
        elif isinstance(payload, JobCompletedPayload):
            stop_reason = _plan_job_completed(payload, state, policy, steps)

    return Plan(
        plan_id=plan_id,
        event_id=event.event_id,
        event_type=event.type,
        policy_version=policy.version,
        steps=tuple(steps.steps),
        stop_reason=stop_reason,
    )
