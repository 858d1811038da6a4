"""Schedule agent: pick an appointment slot and word the proposal."""

from __future__ import annotations

from datetime import datetime

from anthropic import Anthropic

from leadflow.agents.client import INTAKE_MODEL, record_fallback, request_structured
from leadflow.agents.models import ScheduleDecision, ScheduleProposal
from leadflow.agents.prompts import SCHEDULE_SYSTEM_PROMPT, SCHEDULE_USER_PROMPT
from leadflow.domain.errors import AgentError

MAX_ALTERNATIVES = 3

FALLBACK_SCHEDULE_MESSAGE = (
    "Great news! We have availability on {slot}. Would that time work for your {service_type}? "
    "Reply YES to confirm or suggest another time."
)
CONFIRMATION_MESSAGE = (
    "Hi {customer_name}! Your {service_type} appointment with {business_name} is confirmed "
    "for {date} at {time}. We'll send a reminder the day before. Reply CHANGE to reschedule."
)


def format_slot_date(slot: datetime) -> str:
    """Format a slot's date, e.g. ``"Tuesday, March 3"``."""
    return f"{slot:%A, %B} {slot.day}"


def format_slot_time(slot: datetime) -> str:
    """Format a slot's time, e.g. ``"9:00 AM"``."""
    return slot.strftime("%I:%M %p").lstrip("0")


def format_slot(slot: datetime) -> str:
    return f"{format_slot_date(slot)} at {format_slot_time(slot)}"


def format_schedule_confirmation(
    proposed_date: datetime,
    service_type: str,
    business_name: str,
    customer_name: str | None = None,
) -> str:
    """Render the booking confirmation sent once a job is created."""
    return CONFIRMATION_MESSAGE.format(
        customer_name=customer_name or "there",
        service_type=service_type.lower(),
        business_name=business_name,
        date=format_slot_date(proposed_date),
        time=format_slot_time(proposed_date),
    )


def _proposal(
    slots: list[datetime], index: int, message: str, *, can_schedule: bool, needs_confirmation: bool
) -> ScheduleProposal:
    alternatives = tuple(slot for i, slot in enumerate(slots) if i != index)[:MAX_ALTERNATIVES]
    return ScheduleProposal(
        can_schedule=can_schedule,
        proposed_date=slots[index],
        alternatives=alternatives,
        suggested_message=message,
        needs_confirmation=needs_confirmation,
    )


def propose_schedule(
    customer_message: str | None,
    service_type: str,
    slots: list[datetime],
    business_name: str,
    client: Anthropic | None,
    *,
    customer_name: str | None = None,
    model: str = INTAKE_MODEL,
) -> ScheduleProposal:
    """Choose one of *slots* for the customer.

    The model's slot index is clamped into range; without a usable model
    answer the earliest slot is proposed.

    Args:
        customer_message: Latest customer text, if any.
        service_type: The service being booked.
        slots: Open slots, earliest first.  Must not be empty.
        business_name: Name of the business booking the job.
        client: An ``anthropic.Anthropic`` instance, or ``None``.
        customer_name: Customer name if known.
        model: The Anthropic model ID to use.

    Returns:
        A ``ScheduleProposal`` with a concrete ``proposed_date``.

    Raises:
        ValueError: If *slots* is empty.
    """
    if not slots:
        msg = "At least one slot is required to propose a schedule"
        raise ValueError(msg)

    slot_lines = "\n".join(f"{i}. {format_slot(slot)}" for i, slot in enumerate(slots))
    try:
        decision = request_structured(
            client,
            agent="schedule",
            model=model,
            system=SCHEDULE_SYSTEM_PROMPT.format(business_name=business_name),
            prompt=SCHEDULE_USER_PROMPT.format(
                customer_name=customer_name or "Unknown",
                service_type=service_type,
                customer_message=customer_message or "(none)",
                slots=slot_lines,
            ),
            output_format=ScheduleDecision,
        )
    except AgentError as exc:
        record_fallback("schedule", exc)
        message = FALLBACK_SCHEDULE_MESSAGE.format(
            slot=format_slot(slots[0]), service_type=service_type.lower()
        )
        return _proposal(slots, 0, message, can_schedule=True, needs_confirmation=True)

    index = min(max(decision.proposed_date_index, 0), len(slots) - 1)
    return _proposal(
        slots,
        index,
        decision.suggested_message,
        can_schedule=decision.can_schedule,
        needs_confirmation=decision.needs_confirmation,
    )
