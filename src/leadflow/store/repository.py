"""SQLite-backed repository for events, conversations, actions, and jobs.

Mirrors the ``AuditLogger`` pattern: accepts a sqlite3.Connection, uses
parameterized queries exclusively, and commits synchronously after writes.
Every ``sqlite3.Error`` surfaces as :class:`PersistenceError`.

The connection may be shared with other threads and with the audit logger,
so every statement-plus-commit unit runs under one re-entrant lock.  Pass
the same lock to every object that writes through the connection.

Two writes are atomic guards rather than plain inserts:

* :meth:`LeadflowStore.claim_event_receipt` relies on the ``UNIQUE``
  ``event_id`` constraint so only one intake call processes an event.
* :meth:`LeadflowStore.resolve_pending_action` is a compare-and-set on
  ``status = 'pending'`` so an action is resolved exactly once.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel

from leadflow.domain.errors import (
    ActionAlreadyResolvedError,
    ActionNotFoundError,
    DuplicateEventError,
    PersistenceError,
)
from leadflow.domain.models import (
    Conversation,
    Event,
    EventReceipt,
    Job,
    Lead,
    Message,
    PendingAction,
)
from leadflow.domain.types import (
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

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _iso(value: datetime) -> str:
    """Serialize *value* so that lexical order matches chronological order."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class LeadflowStore:
    """Persist and retrieve orchestration records in SQLite.

    Args:
        conn: An open sqlite3.Connection whose database already has the
              orchestration tables (see ``init_store_tables``).
        clock: Source of "now" for timestamps and receipt leases.
        lock: Lock serializing access to *conn*; shared with the audit logger.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Clock | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._clock = clock or _utcnow
        self._lock = lock or threading.RLock()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            with self._lock:
                yield
        except sqlite3.Error as exc:
            logger.error("store_operation_failed", operation=operation, error=str(exc))
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    def _now(self) -> str:
        return _iso(self._clock())

    # ------------------------------------------------------------------
    # Events and receipts
    # ------------------------------------------------------------------

    def create_event(self, event_id: str, event_type: EventType, payload: dict[str, Any]) -> Event:
        """Insert the event record, or return the existing one on retry.

        Args:
            event_id: Caller-supplied or generated event identifier.
            event_type: The validated event type.
            payload: The payload as received.

        Returns:
            The stored ``Event``.
        """
        with self._guard("create_event"):
            self._conn.execute(
                """
                INSERT OR IGNORE INTO events (id, type, payload_json, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (event_id, event_type.value, json.dumps(payload), EventStatus.PROCESSING.value,
                 self._now()),
            )
            self._conn.commit()
        event = self.get_event(event_id)
        if event is None:  # pragma: no cover - row was just written
            raise PersistenceError(f"Event '{event_id}' missing after insert")
        return event

    def get_event(self, event_id: str) -> Event | None:
        with self._guard("get_event"):
            row = self._conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            return None
        data = dict(row)
        data["payload"] = json.loads(data.pop("payload_json"))
        return Event.model_validate(data)

    def finish_event(
        self,
        event_id: str,
        status: EventStatus,
        *,
        conversation_id: int | None = None,
        error: str | None = None,
    ) -> None:
        """Move an event to its terminal status."""
        with self._guard("finish_event"):
            self._conn.execute(
                """
                UPDATE events
                SET status = ?, conversation_id = COALESCE(?, conversation_id),
                    error = ?, processed_at = ?
                WHERE id = ?
                """,
                (status.value, conversation_id, error, self._now(), event_id),
            )
            self._conn.commit()

    def list_events(self, limit: int = 50) -> list[Event]:
        """Return the most recent events, newest first."""
        with self._guard("list_events"):
            rows = self._conn.execute(
                "SELECT * FROM events ORDER BY created_at DESC, rowid DESC LIMIT ?", (limit,)
            ).fetchall()
        events: list[Event] = []
        for row in rows:
            data = dict(row)
            data["payload"] = json.loads(data.pop("payload_json"))
            events.append(Event.model_validate(data))
        return events

    def get_event_receipt(self, event_id: str) -> EventReceipt | None:
        with self._guard("get_event_receipt"):
            row = self._conn.execute(
                "SELECT * FROM event_receipts WHERE event_id = ?", (event_id,)
            ).fetchone()
        if row is None:
            return None
        data = dict(row)
        data.pop("id")
        result_json = data.pop("result_json")
        data["result"] = json.loads(result_json) if result_json is not None else None
        return EventReceipt.model_validate(data)

    def claim_event_receipt(
        self, event_id: str, event_type: EventType, lease_seconds: int = 300
    ) -> EventReceipt:
        """Atomically claim the right to process *event_id*.

        A fresh insert wins outright.  When a receipt already exists, it can
        only be re-claimed if it is still ``processing`` and its claim is
        older than *lease_seconds* (the previous attempt died mid-flight).

        Args:
            event_id: The event identifier.
            event_type: The event type recorded on the receipt.
            lease_seconds: Age after which a ``processing`` claim is stale.

        Returns:
            The claimed receipt.

        Raises:
            DuplicateEventError: If another invocation holds or finished the
                receipt.
        """
        now = self._clock()
        with self._guard("claim_event_receipt"):
            inserted = self._conn.execute(
                """
                INSERT INTO event_receipts (
                    event_id, event_type, status, claimed_at, created_at
                )
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (event_id) DO NOTHING
                """,
                (event_id, event_type.value, EventStatus.PROCESSING.value, _iso(now), _iso(now)),
            )
            self._conn.commit()
            if inserted.rowcount == 0:
                cutoff = now - timedelta(seconds=lease_seconds)
                cursor = self._conn.execute(
                    """
                    UPDATE event_receipts SET claimed_at = ?
                    WHERE event_id = ? AND status = ? AND claimed_at < ?
                    """,
                    (_iso(now), event_id, EventStatus.PROCESSING.value, _iso(cutoff)),
                )
                self._conn.commit()
                if cursor.rowcount == 0:
                    raise DuplicateEventError(event_id)
                logger.info("event_receipt_reclaimed", event_id=event_id)
        receipt = self.get_event_receipt(event_id)
        if receipt is None:  # pragma: no cover - row was just written
            raise PersistenceError(f"Receipt '{event_id}' missing after claim")
        return receipt

    def complete_event_receipt(
        self, event_id: str, status: EventStatus, result: dict[str, Any] | None = None
    ) -> None:
        """Record the terminal status and execution trace on the receipt."""
        with self._guard("complete_event_receipt"):
            self._conn.execute(
                """
                UPDATE event_receipts SET status = ?, result_json = ?, completed_at = ?
                WHERE event_id = ?
                """,
                (status.value, json.dumps(result) if result is not None else None,
                 self._now(), event_id),
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Conversations and messages
    # ------------------------------------------------------------------

    def get_conversation(self, conversation_id: int) -> Conversation | None:
        with self._guard("get_conversation"):
            row = self._conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        return Conversation.model_validate(dict(row)) if row is not None else None

    def get_conversation_by_phone(self, phone: str) -> Conversation | None:
        with self._guard("get_conversation_by_phone"):
            row = self._conn.execute(
                "SELECT * FROM conversations WHERE customer_phone = ?", (phone,)
            ).fetchone()
        return Conversation.model_validate(dict(row)) if row is not None else None

    def get_or_create_conversation(
        self,
        phone: str,
        source: EventType,
        *,
        customer_name: str | None = None,
        status: ConversationStatus = ConversationStatus.ACTIVE,
        agent_type: AgentName = AgentName.INTAKE,
    ) -> tuple[Conversation, bool]:
        """Return the conversation for *phone*, creating it when absent.

        Returns:
            A ``(conversation, created)`` tuple.
        """
        now = self._now()
        with self._guard("get_or_create_conversation"):
            cursor = self._conn.execute(
                """
                INSERT OR IGNORE INTO conversations (
                    customer_phone, customer_name, source, status, agent_type,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (phone, customer_name, source.value, status.value, agent_type.value, now, now),
            )
            self._conn.commit()
        conversation = self.get_conversation_by_phone(phone)
        if conversation is None:  # pragma: no cover - row was just written
            raise PersistenceError(f"Conversation for '{phone}' missing after insert")
        return conversation, cursor.rowcount == 1

    def update_conversation(
        self,
        conversation_id: int,
        *,
        status: ConversationStatus | None = None,
        agent_type: AgentName | None = None,
        customer_name: str | None = None,
    ) -> Conversation:
        """Update the given fields and return the fresh record."""
        assignments: list[str] = ["updated_at = ?"]
        params: list[str | int] = [self._now()]
        if status is not None:
            assignments.append("status = ?")
            params.append(status.value)
        if agent_type is not None:
            assignments.append("agent_type = ?")
            params.append(agent_type.value)
        if customer_name is not None:
            assignments.append("customer_name = ?")
            params.append(customer_name)
        params.append(conversation_id)

        with self._guard("update_conversation"):
            self._conn.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE id = ?", params
            )
            self._conn.commit()
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise PersistenceError(f"Conversation {conversation_id} not found")
        return conversation

    def add_message(self, conversation_id: int, role: MessageRole, content: str) -> Message:
        """Append a message to a conversation."""
        now = self._now()
        with self._guard("add_message"):
            cursor = self._conn.execute(
                """
                INSERT INTO messages (conversation_id, role, content, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (conversation_id, role.value, content, now),
            )
            self._conn.commit()
        return Message(
            id=cursor.lastrowid or 0,
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=datetime.fromisoformat(now),
        )

    def list_messages(self, conversation_id: int) -> list[Message]:
        """Return a conversation's messages in the order they were written."""
        with self._guard("list_messages"):
            rows = self._conn.execute(
                "SELECT * FROM messages WHERE conversation_id = ? ORDER BY id", (conversation_id,)
            ).fetchall()
        return [Message.model_validate(dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Pending actions
    # ------------------------------------------------------------------

    def _pending_action_from_row(self, row: sqlite3.Row) -> PendingAction:
        data = dict(row)
        data["payload"] = json.loads(data.pop("payload_json"))
        return PendingAction.model_validate(data)

    def create_pending_action(
        self,
        conversation_id: int,
        action_type: ActionType,
        description: str,
        payload: BaseModel,
    ) -> PendingAction:
        """Persist a new ``pending`` action with its replayable payload."""
        with self._guard("create_pending_action"):
            cursor = self._conn.execute(
                """
                INSERT INTO pending_actions (
                    conversation_id, action_type, description, payload_json, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (conversation_id, action_type.value, description,
                 payload.model_dump_json(), ApprovalStatus.PENDING.value, self._now()),
            )
            self._conn.commit()
        action = self.get_pending_action(cursor.lastrowid or 0)
        if action is None:  # pragma: no cover - row was just written
            raise PersistenceError("Pending action missing after insert")
        return action

    def get_pending_action(self, action_id: int) -> PendingAction | None:
        with self._guard("get_pending_action"):
            row = self._conn.execute(
                "SELECT * FROM pending_actions WHERE id = ?", (action_id,)
            ).fetchone()
        return self._pending_action_from_row(row) if row is not None else None

    def list_pending_actions(self, status: ApprovalStatus | None = None) -> list[PendingAction]:
        """Return actions (optionally filtered by status), oldest first."""
        with self._guard("list_pending_actions"):
            if status is None:
                rows = self._conn.execute("SELECT * FROM pending_actions ORDER BY id").fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM pending_actions WHERE status = ? ORDER BY id", (status.value,)
                ).fetchall()
        return [self._pending_action_from_row(row) for row in rows]

    def resolve_pending_action(
        self,
        action_id: int,
        status: ApprovalStatus,
        *,
        resolved_by: str,
        notes: str | None = None,
    ) -> PendingAction:
        """Compare-and-set an action from ``pending`` to *status*.

        Raises:
            ActionNotFoundError: If no action has *action_id*.
            ActionAlreadyResolvedError: If the action is no longer pending.
        """
        with self._guard("resolve_pending_action"):
            cursor = self._conn.execute(
                """
                UPDATE pending_actions
                SET status = ?, resolved_by = ?, notes = ?, resolved_at = ?
                WHERE id = ? AND status = ?
                """,
                (status.value, resolved_by, notes, self._now(), action_id,
                 ApprovalStatus.PENDING.value),
            )
            self._conn.commit()
        action = self.get_pending_action(action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        if cursor.rowcount == 0:
            raise ActionAlreadyResolvedError(action_id, action.status)
        return action

    def reopen_pending_action(self, action_id: int, from_status: ApprovalStatus) -> None:
        """Return a resolved action to ``pending`` (used when replay fails)."""
        with self._guard("reopen_pending_action"):
            self._conn.execute(
                """
                UPDATE pending_actions
                SET status = ?, resolved_by = NULL, resolved_at = NULL
                WHERE id = ? AND status = ?
                """,
                (ApprovalStatus.PENDING.value, action_id, from_status.value),
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Jobs and leads
    # ------------------------------------------------------------------

    def create_job(
        self,
        *,
        conversation_id: int | None,
        external_id: str | None,
        customer_name: str,
        customer_phone: str,
        service_type: str,
        scheduled_date: datetime,
        estimated_price: int | None = None,
        customer_address: str | None = None,
        notes: str | None = None,
        status: JobStatus = JobStatus.SCHEDULED,
    ) -> Job:
        """Insert a booked job and return it."""
        with self._guard("create_job"):
            cursor = self._conn.execute(
                """
                INSERT INTO jobs (
                    conversation_id, external_id, customer_name, customer_phone,
                    customer_address, service_type, scheduled_date, estimated_price,
                    status, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (conversation_id, external_id, customer_name, customer_phone, customer_address,
                 service_type, _iso(scheduled_date), estimated_price, status.value, notes,
                 self._now()),
            )
            self._conn.commit()
        job = self.get_job(cursor.lastrowid or 0)
        if job is None:  # pragma: no cover - row was just written
            raise PersistenceError("Job missing after insert")
        return job

    def get_job(self, job_id: int) -> Job | None:
        with self._guard("get_job"):
            row = self._conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return Job.model_validate(dict(row)) if row is not None else None

    def list_jobs(self, conversation_id: int | None = None) -> list[Job]:
        with self._guard("list_jobs"):
            if conversation_id is None:
                rows = self._conn.execute("SELECT * FROM jobs ORDER BY id").fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM jobs WHERE conversation_id = ? ORDER BY id", (conversation_id,)
                ).fetchall()
        return [Job.model_validate(dict(row)) for row in rows]

    def update_job_status(self, job_id: int, status: JobStatus) -> None:
        with self._guard("update_job_status"):
            self._conn.execute("UPDATE jobs SET status = ? WHERE id = ?", (status.value, job_id))
            self._conn.commit()

    def create_lead(
        self,
        *,
        external_id: str,
        conversation_id: int | None,
        phone: str,
        service_requested: str,
        name: str | None = None,
        notes: str | None = None,
        status: LeadStatus = LeadStatus.NEW,
    ) -> Lead:
        """Record the local mirror of a lead created in the FSM system."""
        with self._guard("create_lead"):
            cursor = self._conn.execute(
                """
                INSERT INTO leads (
                    external_id, conversation_id, name, phone, service_requested,
                    notes, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (external_id, conversation_id, name, phone, service_requested, notes,
                 status.value, self._now()),
            )
            self._conn.commit()
            row = self._conn.execute(
                "SELECT * FROM leads WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return Lead.model_validate(dict(row))

    def get_lead_by_conversation(self, conversation_id: int) -> Lead | None:
        with self._guard("get_lead_by_conversation"):
            row = self._conn.execute(
                "SELECT * FROM leads WHERE conversation_id = ? ORDER BY id DESC LIMIT 1",
                (conversation_id,),
            ).fetchone()
        return Lead.model_validate(dict(row)) if row is not None else None
