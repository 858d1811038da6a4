"""Event intake and operator resolution.

``Orchestrator.handle_event`` is the single entry point for inbound events:
validate, claim the idempotency receipt, build context, plan, and run.
``approve_action`` and ``reject_action`` resolve the pending actions a
suspended plan leaves behind.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

import structlog
from anthropic import Anthropic

from leadflow.audit.models import AuditAction
from leadflow.context.builder import BusinessProfile, build_state
from leadflow.domain.errors import (
    DuplicateEventError,
    EventValidationError,
    ExternalToolError,
    PersistenceError,
    StepExecutionError,
)
from leadflow.domain.models import EventReceipt, PendingAction
from leadflow.domain.payloads import (
    InboundEvent,
    ScheduleJobPayload,
    parse_event_payload,
    parse_event_type,
)
from leadflow.domain.types import ApprovalStatus, EventStatus, EventType, PlanState
from leadflow.engine.commits import confirm_booking, replay_action
from leadflow.engine.executors import StepExecutors
from leadflow.engine.models import ExecutionResult, HandleEventResult, ResolutionResult
from leadflow.engine.runner import StepRunner
from leadflow.planning.planner import plan as build_plan
from leadflow.planning.policy import Policy
from leadflow.store.repository import LeadflowStore
from leadflow.tools import ToolFacade

logger = structlog.get_logger()


class Orchestrator:
    """Wire intake, planning, execution, and approvals together.

    Args:
        store: The orchestration store.
        tools: The tool facade.
        business: Profile of the business being served.
        policy: Automation policy applied to every plan.
        llm_client: Anthropic client; ``None`` runs every agent on templates.
        clock: Source of "now" for slot lookups.
        receipt_lease_seconds: Age after which an in-flight receipt may be
            re-claimed by a retry.
    """

    def __init__(
        self,
        store: LeadflowStore,
        tools: ToolFacade,
        business: BusinessProfile,
        policy: Policy,
        llm_client: Anthropic | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        receipt_lease_seconds: int = 300,
    ) -> None:
        self._store = store
        self._tools = tools
        self._business = business
        self._policy = policy
        self._lease = receipt_lease_seconds
        executors = StepExecutors(store, tools, business, llm_client, clock)
        self._runner = StepRunner(executors, tools)

    @property
    def policy(self) -> Policy:
        return self._policy

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def handle_event(
        self,
        event_type: EventType | str,
        payload: dict[str, Any],
        event_id: str | None = None,
    ) -> HandleEventResult:
        """Process one inbound event exactly once.

        Args:
            event_type: One of the ``EventType`` values.
            payload: The raw payload (camelCase or snake_case keys).
            event_id: Caller-supplied idempotency key; generated if absent.

        Returns:
            A ``HandleEventResult``.  A repeated ``event_id`` whose receipt is
            terminal returns ``success=True, replayed=True`` without side
            effects.  Validation failures, in-flight duplicates, and
            persistence failures return ``success=False`` with ``error_kind``
            set.
        """
        try:
            resolved_type = parse_event_type(str(event_type))
            typed_payload = parse_event_payload(resolved_type, payload)
        except EventValidationError as exc:
            logger.warning("event_rejected", event_type=str(event_type), error=str(exc))
            return HandleEventResult(
                success=False, message=str(exc), error_kind="validation", event_id=event_id
            )

        event = InboundEvent(
            event_id=event_id or f"evt_{uuid4().hex}",
            type=resolved_type,
            payload=typed_payload,
        )
        log = logger.bind(event_id=event.event_id, event_type=event.type.value)

        try:
            receipt = self._store.get_event_receipt(event.event_id)
            if receipt is not None and receipt.is_terminal:
                log.info("event_replayed", status=receipt.status)
                return self._replayed(receipt)

            try:
                self._store.claim_event_receipt(event.event_id, event.type, self._lease)
            except DuplicateEventError:
                receipt = self._store.get_event_receipt(event.event_id)
                if receipt is not None and receipt.is_terminal:
                    return self._replayed(receipt)
                log.info("event_in_flight")
                return HandleEventResult(
                    success=False,
                    message="Event is already being processed",
                    error_kind="in_flight",
                    event_id=event.event_id,
                )

            return self._process(event)
        except PersistenceError as exc:
            log.error("event_persistence_failed", error=str(exc))
            return HandleEventResult(
                success=False,
                message=str(exc),
                error_kind="persistence",
                event_id=event.event_id,
            )

    def _process(self, event: InboundEvent) -> HandleEventResult:
        self._store.create_event(
            event.event_id, event.type, event.payload.model_dump(mode="json")
        )
        self._tools.audit.log_event(
            AuditAction.EVENT_RECEIVED,
            payload={"type": event.type.value, "phone": event.phone},
            entity_type="event",
            entity_id=event.event_id,
        )

        state = build_state(self._store, event.phone, self._business)
        plan = build_plan(event, state, self._policy)
        execution = self._runner.execute(plan, state)

        failed = execution.state == PlanState.FAILED
        status = EventStatus.FAILED if failed else EventStatus.COMPLETED
        self._store.finish_event(
            event.event_id,
            status,
            conversation_id=execution.conversation_id,
            error=execution.error,
        )
        self._store.complete_event_receipt(
            event.event_id, status, execution.model_dump(mode="json")
        )
        self._tools.metrics.record(
            "event_processed", tags={"event_type": event.type.value, "status": status.value}
        )
        logger.info(
            "event_processed",
            event_id=event.event_id,
            status=status,
            plan_state=execution.state,
        )
        return self._to_result(execution)

    @staticmethod
    def _message_for(execution: ExecutionResult) -> str:
        if execution.state == PlanState.SUSPENDED:
            return f"Awaiting approval for action {execution.pending_action_id}"
        if execution.state == PlanState.FAILED:
            return f"Plan failed: {execution.error}"
        if execution.stop_reason:
            return execution.stop_reason
        return "Event processed"

    def _to_result(
        self, execution: ExecutionResult, *, replayed: bool = False
    ) -> HandleEventResult:
        return HandleEventResult(
            success=replayed or execution.state != PlanState.FAILED,
            message="Event already processed" if replayed else self._message_for(execution),
            event_id=execution.event_id,
            conversation_id=execution.conversation_id,
            stopped_for_approval=execution.stopped_for_approval,
            pending_action_id=execution.pending_action_id,
            plan_state=execution.state,
            replayed=replayed,
            steps=execution.steps,
        )

    def _replayed(self, receipt: EventReceipt) -> HandleEventResult:
        if receipt.result is None:
            return HandleEventResult(
                success=True,
                message="Event already processed",
                event_id=receipt.event_id,
                replayed=True,
            )
        return self._to_result(ExecutionResult.model_validate(receipt.result), replayed=True)

    # ------------------------------------------------------------------
    # Operator resolution
    # ------------------------------------------------------------------

    def list_pending_actions(
        self, status: ApprovalStatus | None = ApprovalStatus.PENDING
    ) -> list[PendingAction]:
        """Return actions in *status* (all actions when ``None``)."""
        return self._tools.approvals.list_actions(status)

    def approve_action(
        self,
        action_id: int,
        notes: str | None = None,
        resolved_by: str = "operator",
    ) -> ResolutionResult:
        """Approve a pending action and replay its stored payload.

        The approval wins or loses atomically: a concurrent second resolution
        raises ``ActionAlreadyResolvedError`` and performs no side effect.

        Args:
            action_id: The pending action to approve.
            notes: Operator notes stored on the action.
            resolved_by: Operator identifier.

        Returns:
            A ``ResolutionResult``; ``job_id`` is set for booked jobs and
            ``warning`` when a booking confirmation could not be sent.

        Raises:
            ActionNotFoundError: If the action does not exist.
            ActionAlreadyResolvedError: If the action is no longer pending.
            ExternalToolError: If the replayed side effect fails.  The action
                is put back to ``pending``.
            StepExecutionError: If the action's conversation is gone.  The
                action is put back to ``pending``.
            PersistenceError: If the store fails during replay.  The action
                is put back to ``pending`` when the store allows it.
        """
        ledger = self._tools.approvals
        audit = self._tools.audit
        action = ledger.resolve_approval(action_id, True, resolved_by=resolved_by, notes=notes)
        audit.log_action_resolved(action_id, True, resolved_by, notes)
        log = logger.bind(action_id=action_id, action_type=action.action_type.value)

        try:
            job = replay_action(self._tools, self._store, action)
        except (ExternalToolError, StepExecutionError, PersistenceError) as exc:
            log.warning("action_replay_failed", error=str(exc))
            try:
                ledger.reopen(action_id)
            except PersistenceError as reopen_exc:
                log.error("action_reopen_failed", error=str(reopen_exc))
                raise exc from None
            audit.log_event(
                AuditAction.ACTION_REPLAY_FAILED,
                actor=resolved_by,
                payload={"stage": "replay", "error": str(exc)},
                entity_type="pending_action",
                entity_id=action_id,
            )
            raise

        warning: str | None = None
        if isinstance(action.payload, ScheduleJobPayload):
            conversation = self._store.get_conversation(action.conversation_id)
            if conversation is not None:
                try:
                    confirm_booking(
                        self._tools, self._store, conversation, action.payload, self._business.name
                    )
                except ExternalToolError as exc:
                    warning = f"Job booked but confirmation was not sent: {exc}"
                    audit.log_event(
                        AuditAction.ACTION_REPLAY_FAILED,
                        actor=resolved_by,
                        payload={"stage": "confirmation", "error": str(exc)},
                        entity_type="pending_action",
                        entity_id=action_id,
                    )
                    log.warning("booking_confirmation_failed", error=str(exc))

        self._tools.metrics.record("approval_resolved", tags={"decision": "approved"})
        log.info("action_approved", resolved_by=resolved_by)
        return ResolutionResult(
            message="Action approved and executed",
            action=ledger.get(action_id),
            job_id=job.id if job is not None else None,
            warning=warning,
        )

    def reject_action(
        self,
        action_id: int,
        notes: str | None = None,
        resolved_by: str = "operator",
    ) -> ResolutionResult:
        """Reject a pending action; its payload is never executed.

        Raises:
            ActionNotFoundError: If the action does not exist.
            ActionAlreadyResolvedError: If the action is no longer pending.
        """
        action = self._tools.approvals.resolve_approval(
            action_id, False, resolved_by=resolved_by, notes=notes
        )
        self._tools.audit.log_action_resolved(action_id, False, resolved_by, notes)
        self._tools.metrics.record("approval_resolved", tags={"decision": "rejected"})
        logger.info("action_rejected", action_id=action_id, resolved_by=resolved_by)
        return ResolutionResult(message="Action rejected", action=action)
