"""Approval ledger over the pending-action table.

There is one approval resource: a :class:`PendingAction` row.  Steps that
need a human decision call :meth:`ApprovalLedger.request_approval`; operator
decisions go through :meth:`ApprovalLedger.resolve_approval`, which is a
compare-and-set so each action is resolved exactly once.
"""

from __future__ import annotations

import structlog

from leadflow.audit.logger import AuditLogger
from leadflow.audit.models import AuditAction
from leadflow.domain.errors import ActionNotFoundError
from leadflow.domain.models import PendingAction
from leadflow.domain.payloads import ScheduleJobPayload, SendQuotePayload, SendSmsPayload
from leadflow.domain.types import ActionType, ApprovalStatus
from leadflow.observability.metrics import PENDING_APPROVALS
from leadflow.store.repository import LeadflowStore

logger = structlog.get_logger()


class ApprovalLedger:
    """Create and resolve pending actions.

    Args:
        store: The orchestration store.
        audit: Audit logger for approval requests.
    """

    def __init__(self, store: LeadflowStore, audit: AuditLogger) -> None:
        self._store = store
        self._audit = audit

    def request_approval(
        self,
        conversation_id: int,
        payload: SendSmsPayload | SendQuotePayload | ScheduleJobPayload,
        description: str,
    ) -> PendingAction:
        """Hold a fully resolved side effect for operator approval.

        Args:
            conversation_id: Conversation the action belongs to.
            payload: Everything needed to replay the side effect later.
            description: One-line summary shown to the operator.

        Returns:
            The new ``pending`` action.
        """
        action = self._store.create_pending_action(
            conversation_id, ActionType(payload.action_type), description, payload
        )
        self._audit.log_tool_call(
            AuditAction.APPROVALS_REQUEST,
            {"action_type": action.action_type.value, "description": description},
            entity_type="pending_action",
            entity_id=action.id,
        )
        PENDING_APPROVALS.inc()
        logger.info(
            "approval_requested",
            action_id=action.id,
            action_type=action.action_type,
            conversation_id=conversation_id,
        )
        return action

    def resolve_approval(
        self,
        action_id: int,
        approved: bool,
        *,
        resolved_by: str,
        notes: str | None = None,
    ) -> PendingAction:
        """Move a pending action to approved or rejected.

        Raises:
            ActionNotFoundError: If the action does not exist.
            ActionAlreadyResolvedError: If another call resolved it first.
        """
        status = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED
        action = self._store.resolve_pending_action(
            action_id, status, resolved_by=resolved_by, notes=notes
        )
        PENDING_APPROVALS.dec()
        return action

    def reopen(self, action_id: int) -> None:
        """Put an approved action back to pending after its replay failed."""
        self._store.reopen_pending_action(action_id, ApprovalStatus.APPROVED)
        PENDING_APPROVALS.inc()

    def get(self, action_id: int) -> PendingAction:
        action = self._store.get_pending_action(action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        return action

    def list_actions(self, status: ApprovalStatus | None = None) -> list[PendingAction]:
        return self._store.list_pending_actions(status)
