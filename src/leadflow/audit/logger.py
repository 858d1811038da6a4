"""Convenience class for inserting audit trail entries.

Every orchestration transition and every tool call goes through
:class:`AuditLogger`.  The generic :meth:`AuditLogger.log_event` backs the
``audit.log_event(action, actor, payload)`` tool; the typed helpers keep the
entity fields consistent for the common cases.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any

from leadflow.audit.models import AuditAction, AuditEntry
from leadflow.audit.store import insert_audit_entry


class AuditLogger:
    """Typed convenience API for inserting audit entries.

    Args:
        conn: An open SQLite connection to the audit database.
        lock: Lock serializing writes on *conn*; pass the orchestration
            store's lock when both share one connection.
    """

    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock | None = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()

    def log_event(
        self,
        action: str,
        actor: str = "system",
        payload: dict[str, Any] | None = None,
        *,
        entity_type: str | None = None,
        entity_id: str | int | None = None,
    ) -> int:
        """Append an entry to the audit trail.

        Args:
            action: What happened, e.g. ``"runner.start"``.
            actor: Who did it (``"system"`` or an operator id).
            payload: Arbitrary JSON-serializable details.
            entity_type: Kind of record the entry concerns.
            entity_id: Identifier of that record.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            action=str(action),
            actor=actor,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            payload=payload,
        )
        with self._lock:
            return insert_audit_entry(self._conn, entry)

    def log_plan_transition(
        self,
        action: AuditAction,
        plan_id: str,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Log a step-runner transition for *plan_id*.

        Args:
            action: One of the ``runner.*`` actions.
            plan_id: The plan being executed.
            payload: Transition details (step id, reason, error).

        Returns:
            The row ID of the inserted audit entry.
        """
        return self.log_event(action, payload=payload, entity_type="plan", entity_id=plan_id)

    def log_tool_call(
        self,
        tool: AuditAction,
        payload: dict[str, Any],
        *,
        entity_type: str | None = None,
        entity_id: str | int | None = None,
    ) -> int:
        """Log a side-effecting call made through the tool facade."""
        return self.log_event(tool, payload=payload, entity_type=entity_type, entity_id=entity_id)

    def log_action_resolved(
        self,
        action_id: int,
        approved: bool,
        resolved_by: str,
        notes: str | None = None,
    ) -> int:
        """Log an operator's approval or rejection of a pending action.

        Args:
            action_id: The pending action id.
            approved: ``True`` for approval, ``False`` for rejection.
            resolved_by: Operator identifier, recorded as the actor.
            notes: Free-text notes supplied with the decision.

        Returns:
            The row ID of the inserted audit entry.
        """
        action = AuditAction.ACTION_APPROVED if approved else AuditAction.ACTION_REJECTED
        return self.log_event(
            action,
            actor=resolved_by,
            payload={"notes": notes} if notes else None,
            entity_type="pending_action",
            entity_id=action_id,
        )

