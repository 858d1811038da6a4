"""SQLite-backed audit trail store with WAL mode and indexed queries.

Provides functions to initialize the database, insert audit entries, and
query the audit trail with flexible filtering. Uses parameterized queries
exclusively (never string concatenation) to prevent SQL injection.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from leadflow.audit.models import AuditEntry


def init_audit_db(db_path: Path | str) -> sqlite3.Connection:
    """Open the application database with WAL mode and create the audit table.

    The connection is shared with the orchestration store and used from
    worker threads, so thread affinity checks are disabled.

    Args:
        db_path: Path to the SQLite database file (or ``":memory:"``).

    Returns:
        An open sqlite3.Connection with WAL mode enabled.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    init_audit_table(conn)
    return conn


def init_audit_table(conn: sqlite3.Connection) -> None:
    """Create the ``audit_log`` table and its indexes if missing.

    Args:
        conn: An open database connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            action TEXT NOT NULL,
            actor TEXT NOT NULL DEFAULT 'system',
            entity_type TEXT,
            entity_id TEXT,
            payload TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_log (action)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log (entity_type, entity_id)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp)")

    conn.commit()


def insert_audit_entry(conn: sqlite3.Connection, entry: AuditEntry) -> int:
    """Insert an audit entry into the database.

    Serializes the payload dict to a JSON string if present; values that are
    not natively JSON (datetimes, enums) are stored as strings.

    Args:
        conn: An open database connection.
        entry: The audit entry to insert.

    Returns:
        The row ID of the inserted entry.
    """
    payload_json: str | None = None
    if entry.payload is not None:
        payload_json = json.dumps(entry.payload, default=str)

    timestamp = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")

    cursor = conn.execute(
        """
        INSERT INTO audit_log (timestamp, action, actor, entity_type, entity_id, payload)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (timestamp, entry.action, entry.actor, entry.entity_type, entry.entity_id, payload_json),
    )
    conn.commit()
    return cursor.lastrowid or 0


def query_audit_trail(
    conn: sqlite3.Connection,
    *,
    action: str | None = None,
    actor: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Query the audit trail with flexible filtering.

    All filters are optional. Results are ordered newest first.

    Args:
        conn: An open database connection.
        action: Filter by action (exact match, e.g. ``"runner.complete"``).
        actor: Filter by actor (exact match).
        entity_type: Filter by entity type (exact match).
        entity_id: Filter by entity id (exact match).
        from_date: Filter entries on or after this ISO 8601 date.
        to_date: Filter entries on or before this ISO 8601 date.
        limit: Maximum number of results to return (default 50).

    Returns:
        A list of dicts, one per matching audit entry, newest first.
    """
    conn.row_factory = sqlite3.Row

    conditions: list[str] = []
    params: list[str | int] = []

    filters = {
        "action": action,
        "actor": actor,
        "entity_type": entity_type,
        "entity_id": entity_id,
    }
    for column, value in filters.items():
        if value is not None:
            conditions.append(f"{column} = ?")
            params.append(value)

    if from_date is not None:
        conditions.append("timestamp >= ?")
        params.append(from_date)

    if to_date is not None:
        conditions.append("timestamp <= ?")
        params.append(to_date)

    where_clause = ""
    if conditions:
        where_clause = "WHERE " + " AND ".join(conditions)

    query = f"SELECT * FROM audit_log {where_clause} ORDER BY timestamp DESC, id DESC LIMIT ?"
    params.append(limit)

    rows = conn.execute(query, params).fetchall()

    results: list[dict[str, Any]] = []
    for row in rows:
        row_dict = dict(row)
        if row_dict.get("payload") is not None:
            row_dict["payload"] = json.loads(row_dict["payload"])
        results.append(row_dict)

    return results


def close_audit_db(conn: sqlite3.Connection) -> None:
    """Close the database connection.

    Args:
        conn: The database connection to close.
    """
    conn.close()
