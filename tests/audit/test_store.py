"""Tests for SQLite audit store: init, insert, query, and SQL injection prevention."""

import time
from pathlib import Path

from leadflow.audit.models import AuditAction, AuditEntry
from leadflow.audit.store import (
    close_audit_db,
    init_audit_db,
    insert_audit_entry,
    query_audit_trail,
)


class TestInitAuditDB:
    """Tests for database initialization."""

    def test_creates_database_file(self, tmp_path: Path):
        db_path = tmp_path / "leadflow.db"
        conn = init_audit_db(db_path)
        assert db_path.exists()
        close_audit_db(conn)

    def test_wal_mode_enabled(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"
        close_audit_db(conn)

    def test_indexes_created(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_audit_%'"
        )
        indexes = {row[0] for row in cursor.fetchall()}
        assert {"idx_audit_action", "idx_audit_entity", "idx_audit_timestamp"} <= indexes
        close_audit_db(conn)


class TestInsertAndQuery:
    """Tests for inserting entries and filtering them back out."""

    def test_round_trips_payload(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        row_id = insert_audit_entry(
            conn,
            AuditEntry(
                action=AuditAction.RUNNER_START,
                entity_type="plan",
                entity_id="plan_evt_1",
                payload={"steps": 2},
            ),
        )

        results = query_audit_trail(conn)

        assert row_id > 0
        assert len(results) == 1
        assert results[0]["action"] == "runner.start"
        assert results[0]["actor"] == "system"
        assert results[0]["payload"] == {"steps": 2}
        close_audit_db(conn)

    def test_filters_by_action_and_entity(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        insert_audit_entry(
            conn, AuditEntry(action="runner.start", entity_type="plan", entity_id="plan_a")
        )
        insert_audit_entry(
            conn, AuditEntry(action="runner.start", entity_type="plan", entity_id="plan_b")
        )
        insert_audit_entry(
            conn, AuditEntry(action="comms.send_sms", entity_type="conversation", entity_id="1")
        )

        by_action = query_audit_trail(conn, action="runner.start")
        by_entity = query_audit_trail(conn, entity_type="plan", entity_id="plan_b")

        assert len(by_action) == 2
        assert len(by_entity) == 1
        assert by_entity[0]["entity_id"] == "plan_b"
        close_audit_db(conn)

    def test_newest_first_and_limit(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        for i in range(3):
            insert_audit_entry(conn, AuditEntry(action="runner.start", entity_id=str(i)))
            time.sleep(0.001)

        results = query_audit_trail(conn, limit=2)

        assert [r["entity_id"] for r in results] == ["2", "1"]
        close_audit_db(conn)

    def test_non_json_payload_values_stored_as_strings(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        insert_audit_entry(
            conn, AuditEntry(action="fsm.create_job", payload={"when": Path("/tmp/x")})
        )

        results = query_audit_trail(conn)

        assert results[0]["payload"] == {"when": "/tmp/x"}
        close_audit_db(conn)

    def test_injection_in_filter_is_treated_as_literal(self, tmp_path: Path):
        conn = init_audit_db(tmp_path / "leadflow.db")
        insert_audit_entry(conn, AuditEntry(action="runner.start"))

        results = query_audit_trail(conn, actor="x' OR '1'='1")

        assert results == []
        assert len(query_audit_trail(conn)) == 1
        close_audit_db(conn)
