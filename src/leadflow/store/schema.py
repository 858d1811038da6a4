"""SQLite schema for the orchestration engine's records.

Follows the same pattern as ``init_audit_db()`` in ``leadflow.audit.store``:
idempotent ``CREATE TABLE IF NOT EXISTS`` DDL plus the indexes the store's
lookups rely on.
"""

from __future__ import annotations

import sqlite3


def init_store_tables(conn: sqlite3.Connection) -> None:
    """Create every orchestration table if it does not already exist.

    The ``UNIQUE`` constraint on ``event_receipts.event_id`` is the
    idempotency guard for event intake, and the one on
    ``conversations.customer_phone`` keeps concurrent intake from opening two
    conversations for the same customer.

    Args:
        conn: An open sqlite3.Connection (WAL mode recommended).
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            payload_json TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'processing',
            conversation_id INTEGER,
            error TEXT,
            created_at TEXT NOT NULL,
            processed_at TEXT
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_events_created ON events (created_at)")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS event_receipts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id TEXT NOT NULL UNIQUE,
            event_type TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'processing',
            result_json TEXT,
            claimed_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            completed_at TEXT
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_phone TEXT NOT NULL UNIQUE,
            customer_name TEXT,
            source TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'active',
            agent_type TEXT NOT NULL DEFAULT 'intake',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id INTEGER NOT NULL REFERENCES conversations (id),
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """)
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages (conversation_id)"
    )

    conn.execute("""
        CREATE TABLE IF NOT EXISTS pending_actions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id INTEGER NOT NULL REFERENCES conversations (id),
            action_type TEXT NOT NULL,
            description TEXT NOT NULL,
            payload_json TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            notes TEXT,
            created_at TEXT NOT NULL,
            resolved_at TEXT,
            resolved_by TEXT
        )
    """)
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_pending_actions_status ON pending_actions (status)"
    )

    conn.execute("""
        CREATE TABLE IF NOT EXISTS jobs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id INTEGER REFERENCES conversations (id),
            external_id TEXT,
            customer_name TEXT NOT NULL,
            customer_phone TEXT NOT NULL,
            customer_address TEXT,
            service_type TEXT NOT NULL,
            scheduled_date TEXT NOT NULL,
            estimated_price INTEGER,
            status TEXT NOT NULL DEFAULT 'scheduled',
            notes TEXT,
            created_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS leads (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            external_id TEXT NOT NULL UNIQUE,
            conversation_id INTEGER REFERENCES conversations (id),
            name TEXT,
            phone TEXT NOT NULL,
            service_requested TEXT NOT NULL,
            notes TEXT,
            status TEXT NOT NULL DEFAULT 'new',
            created_at TEXT NOT NULL
        )
    """)

    conn.commit()
