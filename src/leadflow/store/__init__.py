"""SQLite persistence for orchestration records."""

from leadflow.store.repository import LeadflowStore
from leadflow.store.schema import init_store_tables

__all__ = ["LeadflowStore", "init_store_tables"]
