"""Append-only audit trail for orchestration transitions and tool calls."""

from leadflow.audit.logger import AuditLogger
from leadflow.audit.models import AuditAction, AuditEntry
from leadflow.audit.store import (
    close_audit_db,
    init_audit_db,
    init_audit_table,
    insert_audit_entry,
    query_audit_trail,
)

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditLogger",
    "close_audit_db",
    "init_audit_db",
    "init_audit_table",
    "insert_audit_entry",
    "query_audit_trail",
]
