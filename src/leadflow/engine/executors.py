"""Per-agent step executors.

Each executor asks its agent for content, then either commits the side
effect through the tool facade or, when the step requires approval, stores
the fully resolved payload as a pending action and reports a suspension.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from anthropic import Anthropic

from leadflow.agents.intake import generate_missed_call_response, run_intake_agent
from leadflow.agents.models import IntakeResult, QuoteDraft
from leadflow.agents.quote import generate_quote
from leadflow.agents.reviews import generate_review_request
from leadflow.agents.schedule import format_slot, propose_schedule
from leadflow.audit.models import AuditAction
from leadflow.context.builder import BusinessProfile
from leadflow.domain.errors import ExternalToolError, StepExecutionError
from leadflow.domain.models import Conversation, PendingAction
from leadflow.domain.payloads import ScheduleJobPayload, SendQuotePayload, SendSmsPayload
from leadflow.domain.types import (
    AgentName,
    ConversationStatus,
    EventType,
    JobStatus,
    MessageRole,
)
from leadflow.engine.commits import book_job, confirm_booking, deliver_message
from leadflow.planning.models import (
    DraftQuoteInputs,
    ProposeScheduleInputs,
    QualifyLeadInputs,
    RecordLeadInputs,
    RequestReviewInputs,
    RespondMissedCallInputs,
    Step,
)
from leadflow.pricing.rate_cards import format_price
from leadflow.store.repository import LeadflowStore
from leadflow.tools import ToolFacade
from leadflow.tools.fsm import LeadRequest

logger = structlog.get_logger()

DEFAULT_SERVICE = "General service"
SCHEDULING_WINDOW_DAYS = 7
_OPEN_STATUSES = (ConversationStatus.ACTIVE, ConversationStatus.LOST)


@dataclass
class RunContext:
    """Mutable scratchpad shared by the steps of one plan run."""

    conversation: Conversation | None = None
    intake: IntakeResult | None = None
    quote: QuoteDraft | None = None
    lead_external_id: str | None = None


@dataclass(frozen=True)
class StepOutcome:
    """What an executor reports back to the runner."""

    output: dict[str, Any] = field(default_factory=dict)
    pending_action: PendingAction | None = None

    @property
    def suspended(self) -> bool:
        return self.pending_action is not None


class StepExecutors:
    """Dispatch steps to the executor for their agent.

    Args:
        store: The orchestration store.
        tools: The tool facade.
        business: Profile of the business the agents speak for.
        llm_client: Anthropic client, or ``None`` to always use templates.
        clock: Source of "now" for slot lookups.
    """

    def __init__(
        self,
        store: LeadflowStore,
        tools: ToolFacade,
        business: BusinessProfile,
        llm_client: Anthropic | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._tools = tools
        self._business = business
        self._llm = llm_client
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._executors: dict[AgentName, Callable[[Step, RunContext], StepOutcome]] = {
            AgentName.INTAKE: self._run_intake,
            AgentName.QUOTE: self._run_quote,
            AgentName.SCHEDULE: self._run_schedule,
            AgentName.REVIEWS: self._run_reviews,
        }

    def run(self, step: Step, ctx: RunContext) -> StepOutcome:
        """Execute *step* with the executor registered for its agent."""
        return self._executors[step.agent](step, ctx)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_conversation(
        self,
        ctx: RunContext,
        phone: str,
        source: EventType,
        *,
        customer_name: str | None = None,
        status: ConversationStatus = ConversationStatus.ACTIVE,
        agent_type: AgentName = AgentName.INTAKE,
    ) -> Conversation:
        if ctx.conversation is not None and ctx.conversation.customer_phone == phone:
            return ctx.conversation
        conversation, created = self._store.get_or_create_conversation(
            phone, source, customer_name=customer_name, status=status, agent_type=agent_type
        )
        if created:
            self._tools.audit.log_event(
                AuditAction.CONVERSATION_CREATED,
                payload={"phone": phone, "source": source.value},
                entity_type="conversation",
                entity_id=conversation.id,
            )
        ctx.conversation = conversation
        return conversation

    def _require_conversation(self, ctx: RunContext, phone: str) -> Conversation:
        if ctx.conversation is not None:
            return ctx.conversation
        conversation = self._store.get_conversation_by_phone(phone)
        if conversation is None:
            raise StepExecutionError(f"No conversation context for {phone}")
        ctx.conversation = conversation
        return conversation

    def _last_customer_message(self, conversation: Conversation) -> str | None:
        for message in reversed(self._store.list_messages(conversation.id)):
            if message.role == MessageRole.CUSTOMER:
                return message.content
        return None

    def _service_type(
        self, ctx: RunContext, conversation: Conversation, explicit: str | None
    ) -> str:
        if explicit:
            return explicit
        if ctx.intake is not None and ctx.intake.service_type:
            return ctx.intake.service_type
        lead = self._store.get_lead_by_conversation(conversation.id)
        if lead is not None:
            return lead.service_requested
        return DEFAULT_SERVICE

    def _send_or_hold(
        self,
        step: Step,
        conversation: Conversation,
        phone: str,
        text: str,
        description: str,
    ) -> PendingAction | None:
        if step.requires_approval:
            return self._tools.approvals.request_approval(
                conversation.id, SendSmsPayload(phone=phone, message=text), description
            )
        deliver_message(self._tools, self._store, conversation, phone, text)
        return None

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def _run_intake(self, step: Step, ctx: RunContext) -> StepOutcome:
        inputs = step.inputs
        if isinstance(inputs, RespondMissedCallInputs):
            return self._respond_missed_call(step, inputs, ctx)
        if isinstance(inputs, RecordLeadInputs):
            return self._record_lead(inputs, ctx)
        if isinstance(inputs, QualifyLeadInputs):
            return self._qualify_lead(step, inputs, ctx)
        raise StepExecutionError(f"Intake cannot perform '{inputs.action}'")

    def _respond_missed_call(
        self, step: Step, inputs: RespondMissedCallInputs, ctx: RunContext
    ) -> StepOutcome:
        conversation = self._ensure_conversation(
            ctx, inputs.phone, EventType.MISSED_CALL, customer_name=inputs.customer_name
        )
        self._store.add_message(
            conversation.id, MessageRole.SYSTEM, f"Missed call received from {inputs.phone}"
        )
        text = generate_missed_call_response(self._business.name, self._llm)
        held = self._send_or_hold(
            step, conversation, inputs.phone, text, f"Send missed-call reply to {inputs.phone}"
        )
        return StepOutcome(
            output={"conversation_id": conversation.id, "message": text}, pending_action=held
        )

    def _record_lead(self, inputs: RecordLeadInputs, ctx: RunContext) -> StepOutcome:
        status = (
            ConversationStatus.QUALIFIED if inputs.mark_qualified else ConversationStatus.ACTIVE
        )
        agent_type = AgentName.QUOTE if inputs.mark_qualified else AgentName.INTAKE
        conversation = self._ensure_conversation(
            ctx,
            inputs.phone,
            inputs.source,
            customer_name=inputs.customer_name,
            status=status,
            agent_type=agent_type,
        )
        promote = inputs.mark_qualified and conversation.status in _OPEN_STATUSES
        new_name = inputs.customer_name if conversation.customer_name is None else None
        if promote or new_name:
            conversation = self._store.update_conversation(
                conversation.id,
                status=ConversationStatus.QUALIFIED if promote else None,
                agent_type=AgentName.QUOTE if promote else None,
                customer_name=new_name,
            )
            ctx.conversation = conversation
        if inputs.summary:
            self._store.add_message(conversation.id, MessageRole.SYSTEM, inputs.summary)

        output: dict[str, Any] = {"conversation_id": conversation.id}
        if inputs.sync_to_fsm:
            external_id = self._tools.fsm.create_lead(
                LeadRequest(
                    name=inputs.customer_name,
                    phone=inputs.phone,
                    service_requested=inputs.service_requested,
                    email=inputs.email,
                    address=inputs.address,
                    notes=inputs.notes,
                ),
                conversation_id=conversation.id,
            )
            self._store.create_lead(
                external_id=external_id,
                conversation_id=conversation.id,
                phone=inputs.phone,
                service_requested=inputs.service_requested,
                name=inputs.customer_name,
                notes=inputs.notes,
            )
            ctx.lead_external_id = external_id
            output["lead_external_id"] = external_id
        return StepOutcome(output=output)

    def _qualify_lead(self, step: Step, inputs: QualifyLeadInputs, ctx: RunContext) -> StepOutcome:
        conversation = self._ensure_conversation(
            ctx, inputs.phone, EventType.INBOUND_SMS, customer_name=inputs.customer_name
        )
        self._tools.comms.log_inbound(
            "sms", inputs.phone, {"message": inputs.message, "conversation_id": conversation.id}
        )
        self._store.add_message(conversation.id, MessageRole.CUSTOMER, inputs.message)

        intake = run_intake_agent(inputs.message, inputs.phone, self._business, self._llm)
        ctx.intake = intake

        new_name = intake.customer_name if conversation.customer_name is None else None
        new_status = (
            ConversationStatus.QUALIFIED
            if intake.is_qualified and conversation.status in _OPEN_STATUSES
            else None
        )
        if new_name or new_status:
            conversation = self._store.update_conversation(
                conversation.id, status=new_status, customer_name=new_name
            )
            ctx.conversation = conversation

        held = None
        if not intake.is_qualified or inputs.reply_when_qualified:
            held = self._send_or_hold(
                step,
                conversation,
                inputs.phone,
                intake.suggested_response,
                f"Reply to {conversation.customer_name or inputs.phone}",
            )
        return StepOutcome(
            output={
                "is_qualified": intake.is_qualified,
                "service_type": intake.service_type,
                "urgency": intake.urgency,
            },
            pending_action=held,
        )

    # ------------------------------------------------------------------
    # Quote
    # ------------------------------------------------------------------

    def _run_quote(self, step: Step, ctx: RunContext) -> StepOutcome:
        inputs = step.inputs
        if not isinstance(inputs, DraftQuoteInputs):
            raise StepExecutionError(f"Quote cannot perform '{inputs.action}'")

        conversation = self._require_conversation(ctx, inputs.phone)
        if ctx.intake is not None and not ctx.intake.is_qualified:
            return StepOutcome(output={"skipped": True, "reason": "lead not qualified"})

        service_type = self._service_type(ctx, conversation, inputs.service_type)
        address = inputs.address or (ctx.intake.address if ctx.intake else None)
        draft = generate_quote(
            service_type,
            self._business,
            self._llm,
            customer_name=conversation.customer_name,
            address=address,
            notes=inputs.notes or self._last_customer_message(conversation),
        )
        ctx.quote = draft
        price = format_price(draft.estimated_price)
        output: dict[str, Any] = {
            "estimated_price": draft.estimated_price,
            "service_type": service_type,
            "confidence": draft.confidence,
        }

        if step.requires_approval:
            action = self._tools.approvals.request_approval(
                conversation.id,
                SendQuotePayload(
                    phone=inputs.phone,
                    message=draft.suggested_message,
                    estimated_price=draft.estimated_price,
                    service_type=service_type,
                    customer_name=conversation.customer_name,
                ),
                f"Send {price} quote for {service_type} to "
                f"{conversation.customer_name or inputs.phone}",
            )
            self._store.add_message(
                conversation.id,
                MessageRole.SYSTEM,
                f"Quote generated for {price}. Awaiting approval.",
            )
            return StepOutcome(output=output, pending_action=action)

        deliver_message(
            self._tools, self._store, conversation, inputs.phone, draft.suggested_message
        )
        ctx.conversation = self._store.update_conversation(
            conversation.id, agent_type=AgentName.QUOTE
        )
        return StepOutcome(output=output)

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def _run_schedule(self, step: Step, ctx: RunContext) -> StepOutcome:
        inputs = step.inputs
        if not isinstance(inputs, ProposeScheduleInputs):
            raise StepExecutionError(f"Schedule cannot perform '{inputs.action}'")

        conversation = self._require_conversation(ctx, inputs.phone)
        service_type = self._service_type(ctx, conversation, inputs.service_type)
        slots = self._tools.fsm.get_available_slots(self._clock(), SCHEDULING_WINDOW_DAYS)
        proposal = propose_schedule(
            self._last_customer_message(conversation),
            service_type,
            slots,
            self._business.name,
            self._llm,
            customer_name=conversation.customer_name,
        )
        payload = ScheduleJobPayload(
            phone=inputs.phone,
            customer_name=conversation.customer_name,
            service_type=service_type,
            proposed_date=proposal.proposed_date,
            message=proposal.suggested_message,
            estimated_price=ctx.quote.estimated_price if ctx.quote else None,
            address=inputs.address or (ctx.intake.address if ctx.intake else None),
            notes=inputs.notes,
        )
        output: dict[str, Any] = {
            "proposed_date": proposal.proposed_date.isoformat(),
            "service_type": service_type,
        }

        if step.requires_approval:
            slot = format_slot(proposal.proposed_date)
            action = self._tools.approvals.request_approval(
                conversation.id,
                payload,
                f"Book {service_type} for {conversation.customer_name or inputs.phone} on {slot}",
            )
            self._store.add_message(
                conversation.id,
                MessageRole.SYSTEM,
                f"Appointment proposed for {slot}. Awaiting approval.",
            )
            return StepOutcome(output=output, pending_action=action)

        job = book_job(self._tools, self._store, conversation, payload)
        output["job_id"] = job.id
        try:
            confirm_booking(self._tools, self._store, conversation, payload, self._business.name)
        except ExternalToolError as exc:
            # The job stands; only the confirmation text is missing.
            output["warning"] = f"Job booked but confirmation was not sent: {exc}"
            self._tools.audit.log_event(
                AuditAction.BOOKING_CONFIRMATION_FAILED,
                payload={"job_id": job.id, "error": str(exc)},
                entity_type="job",
                entity_id=job.id,
            )
            logger.warning("booking_confirmation_failed", job_id=job.id, error=str(exc))
        ctx.conversation = self._store.get_conversation(conversation.id)
        return StepOutcome(output=output)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def _run_reviews(self, step: Step, ctx: RunContext) -> StepOutcome:
        inputs = step.inputs
        if not isinstance(inputs, RequestReviewInputs):
            raise StepExecutionError(f"Reviews cannot perform '{inputs.action}'")

        job = self._store.get_job(int(inputs.job_id)) if inputs.job_id.isdigit() else None
        if job is not None and job.status != JobStatus.COMPLETED:
            self._store.update_job_status(job.id, JobStatus.COMPLETED)

        conversation = self._ensure_conversation(
            ctx,
            inputs.phone,
            EventType.JOB_COMPLETED,
            customer_name=inputs.customer_name,
            status=ConversationStatus.COMPLETED,
            agent_type=AgentName.REVIEWS,
        )
        customer_name = (
            inputs.customer_name
            or conversation.customer_name
            or (job.customer_name if job else None)
        )
        service_type = inputs.service_type or (job.service_type if job else None)
        text = generate_review_request(
            self._business.name,
            self._llm,
            customer_name=customer_name,
            service_type=service_type,
        )
        held = self._send_or_hold(
            step, conversation, inputs.phone, text, f"Send review request to {inputs.phone}"
        )
        ctx.conversation = self._store.update_conversation(
            conversation.id, status=ConversationStatus.COMPLETED, agent_type=AgentName.REVIEWS
        )
        if held is None:
            self._tools.metrics.record("review_request_sent")
        logger.info("review_requested", job_id=inputs.job_id, held=held is not None)
        return StepOutcome(output={"job_id": inputs.job_id, "message": text}, pending_action=held)
