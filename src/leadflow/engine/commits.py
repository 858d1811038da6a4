"""Side-effect commits shared by the step runner and approval replay.

A step that runs unattended and an approved pending action end in the same
calls, so replaying a stored payload has exactly the effect the step would
have had.
"""

from __future__ import annotations

from leadflow.agents.schedule import format_schedule_confirmation
from leadflow.domain.errors import StepExecutionError
from leadflow.domain.models import Conversation, Job, Message, PendingAction
from leadflow.domain.payloads import ScheduleJobPayload, SendQuotePayload
from leadflow.domain.types import AgentName, ConversationStatus, MessageRole
from leadflow.store.repository import LeadflowStore
from leadflow.tools import ToolFacade
from leadflow.tools.fsm import JOB_DURATION, JobRequest


def deliver_message(
    tools: ToolFacade,
    store: LeadflowStore,
    conversation: Conversation,
    phone: str,
    text: str,
) -> Message:
    """Send *text* and record it as an ``ai`` message once it is out."""
    tools.comms.send_sms(phone, text, conversation_id=conversation.id)
    return store.add_message(conversation.id, MessageRole.AI, text)


def book_job(
    tools: ToolFacade,
    store: LeadflowStore,
    conversation: Conversation,
    payload: ScheduleJobPayload,
) -> Job:
    """Create the job in the FSM system and locally, and mark the conversation scheduled."""
    start = payload.proposed_date
    customer_name = payload.customer_name or conversation.customer_name or "Customer"
    external_id = tools.fsm.create_job(
        JobRequest(
            customer_name=customer_name,
            customer_phone=payload.phone,
            service_type=payload.service_type,
            scheduled_start=start,
            scheduled_end=start + JOB_DURATION,
            address=payload.address,
            estimated_price=payload.estimated_price,
            notes=payload.notes,
        ),
        conversation_id=conversation.id,
    )
    job = store.create_job(
        conversation_id=conversation.id,
        external_id=external_id,
        customer_name=customer_name,
        customer_phone=payload.phone,
        customer_address=payload.address,
        service_type=payload.service_type,
        scheduled_date=start,
        estimated_price=payload.estimated_price,
        notes=payload.notes,
    )
    store.update_conversation(
        conversation.id, status=ConversationStatus.SCHEDULED, agent_type=AgentName.SCHEDULE
    )
    return job


def confirm_booking(
    tools: ToolFacade,
    store: LeadflowStore,
    conversation: Conversation,
    payload: ScheduleJobPayload,
    business_name: str,
) -> Message:
    """Text the customer the templated booking confirmation."""
    text = format_schedule_confirmation(
        payload.proposed_date,
        payload.service_type,
        business_name,
        payload.customer_name or conversation.customer_name,
    )
    return deliver_message(tools, store, conversation, payload.phone, text)


def replay_action(
    tools: ToolFacade,
    store: LeadflowStore,
    action: PendingAction,
) -> Job | None:
    """Perform the primary side effect stored on *action*.

    Messages are sent verbatim from the payload.  A ``schedule_job`` payload
    books the job; its confirmation is sent separately with
    :func:`confirm_booking`.

    Returns:
        The booked job for ``schedule_job`` actions, else ``None``.

    Raises:
        StepExecutionError: If the action's conversation no longer exists.
        ExternalToolError: If the tool call fails.
    """
    conversation = store.get_conversation(action.conversation_id)
    if conversation is None:
        raise StepExecutionError(f"Conversation {action.conversation_id} not found")

    payload = action.payload
    if isinstance(payload, ScheduleJobPayload):
        return book_job(tools, store, conversation, payload)

    deliver_message(tools, store, conversation, payload.phone, payload.message)
    if isinstance(payload, SendQuotePayload):
        store.update_conversation(conversation.id, agent_type=AgentName.QUOTE)
    return None
