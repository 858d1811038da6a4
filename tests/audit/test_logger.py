"""Tests for AuditLogger convenience methods."""

from pathlib import Path

from leadflow.audit.logger import AuditLogger
from leadflow.audit.models import AuditAction
from leadflow.audit.store import close_audit_db, init_audit_db, query_audit_trail


class TestAuditLogger:
    """Tests for AuditLogger convenience methods."""

    def _make_logger(self, tmp_path: Path) -> tuple[AuditLogger, object]:
        """Create an AuditLogger with a fresh database."""
        conn = init_audit_db(tmp_path / "leadflow.db")
        return AuditLogger(conn), conn

    def test_log_event_defaults_to_system_actor(self, tmp_path: Path) -> None:
        logger, conn = self._make_logger(tmp_path)
        row_id = logger.log_event(
            AuditAction.EVENT_RECEIVED,
            payload={"type": "missed_call"},
            entity_type="event",
            entity_id="evt_1",
        )
        assert row_id > 0
        results = query_audit_trail(conn, action="event.received")  # type: ignore[arg-type]
        assert len(results) == 1
        assert results[0]["actor"] == "system"
        assert results[0]["entity_id"] == "evt_1"
        assert results[0]["payload"] == {"type": "missed_call"}
        close_audit_db(conn)  # type: ignore[arg-type]

    def test_integer_entity_id_stored_as_text(self, tmp_path: Path) -> None:
        logger, conn = self._make_logger(tmp_path)
        logger.log_event("conversation.created", entity_type="conversation", entity_id=7)
        results = query_audit_trail(  # type: ignore[arg-type]
            conn, entity_type="conversation", entity_id="7"
        )
        assert len(results) == 1
        close_audit_db(conn)  # type: ignore[arg-type]

    def test_log_plan_transition(self, tmp_path: Path) -> None:
        logger, conn = self._make_logger(tmp_path)
        logger.log_plan_transition(AuditAction.RUNNER_STOPPED, "plan_evt_9", {"step_id": "s1"})
        results = query_audit_trail(conn, entity_type="plan")  # type: ignore[arg-type]
        assert results[0]["action"] == "runner.stopped"
        assert results[0]["entity_id"] == "plan_evt_9"
        assert results[0]["payload"]["step_id"] == "s1"
        close_audit_db(conn)  # type: ignore[arg-type]

    def test_log_tool_call(self, tmp_path: Path) -> None:
        logger, conn = self._make_logger(tmp_path)
        logger.log_tool_call(
            AuditAction.FSM_CREATE_JOB,
            {"external_id": "job_0001"},
            entity_type="conversation",
            entity_id=3,
        )
        results = query_audit_trail(conn, action="fsm.create_job")  # type: ignore[arg-type]
        assert results[0]["payload"] == {"external_id": "job_0001"}
        close_audit_db(conn)  # type: ignore[arg-type]

    def test_log_action_resolved_records_operator(self, tmp_path: Path) -> None:
        logger, conn = self._make_logger(tmp_path)
        logger.log_action_resolved(5, True, "dana", "looks good")
        logger.log_action_resolved(6, False, "dana")
        approved = query_audit_trail(conn, action="action.approved")  # type: ignore[arg-type]
        rejected = query_audit_trail(conn, action="action.rejected")  # type: ignore[arg-type]
        assert approved[0]["actor"] == "dana"
        assert approved[0]["entity_id"] == "5"
        assert approved[0]["payload"] == {"notes": "looks good"}
        assert rejected[0]["payload"] is None
        close_audit_db(conn)  # type: ignore[arg-type]
