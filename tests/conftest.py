"""Shared pytest fixtures for the leadflow test suite."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel

from leadflow.audit.logger import AuditLogger
from leadflow.audit.store import init_audit_table
from leadflow.context.builder import BusinessProfile
from leadflow.engine.orchestrator import Orchestrator
from leadflow.planning.policy import Policy
from leadflow.store.repository import LeadflowStore
from leadflow.store.schema import init_store_tables
from leadflow.tools import (
    ApprovalLedger,
    CommsTool,
    FsmTool,
    InMemoryFsm,
    MetricsRecorder,
    ToolFacade,
)

# Monday 08:00 UTC; the first generated slot is Tuesday 09:00.
FIXED_NOW = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


class FakeSmsProvider:
    """SMS provider that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None

    def send(self, to: str, body: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((to, body))
        return f"sms_{len(self.sent):04d}"


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    """In-memory database with the audit and orchestration tables."""
    connection = sqlite3.connect(":memory:", check_same_thread=False)
    init_audit_table(connection)
    init_store_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def db_lock() -> threading.RLock:
    return threading.RLock()


@pytest.fixture
def store(
    conn: sqlite3.Connection, clock: Callable[[], datetime], db_lock: threading.RLock
) -> LeadflowStore:
    return LeadflowStore(conn, clock=clock, lock=db_lock)


@pytest.fixture
def audit(conn: sqlite3.Connection, db_lock: threading.RLock) -> AuditLogger:
    return AuditLogger(conn, lock=db_lock)


@pytest.fixture
def sms() -> FakeSmsProvider:
    return FakeSmsProvider()


@pytest.fixture
def fsm_client() -> InMemoryFsm:
    return InMemoryFsm()


@pytest.fixture
def tools(
    store: LeadflowStore, audit: AuditLogger, sms: FakeSmsProvider, fsm_client: InMemoryFsm
) -> ToolFacade:
    return ToolFacade(
        comms=CommsTool(sms, audit),
        fsm=FsmTool(fsm_client, audit),
        approvals=ApprovalLedger(store, audit),
        audit=audit,
        metrics=MetricsRecorder(),
    )


@pytest.fixture
def business() -> BusinessProfile:
    """A representative landscaping business."""
    return BusinessProfile(
        name="Green Thumb Landscaping",
        services=("Lawn Mowing", "Landscaping", "Tree Trimming"),
        service_area="Springfield",
    )


@pytest.fixture
def policy() -> Policy:
    """Owner-operator defaults: auto-send messages, hold quotes and bookings."""
    return Policy()


@pytest.fixture
def llm_client() -> Callable[..., MagicMock]:
    """Factory for a mocked Anthropic client.

    Pass the structured results the client should return; each call to
    ``messages.parse`` answers with the result whose type matches the
    requested ``output_format``.  Unmatched formats get ``parsed_output=None``
    so the agent falls back to its template.
    """

    def factory(*results: BaseModel) -> MagicMock:
        by_type = {type(result): result for result in results}

        def parse(**kwargs: Any) -> MagicMock:
            response = MagicMock()
            response.parsed_output = by_type.get(kwargs["output_format"])
            return response

        client = MagicMock()
        client.messages.parse.side_effect = parse
        return client

    return factory


@pytest.fixture
def make_orchestrator(
    store: LeadflowStore,
    tools: ToolFacade,
    business: BusinessProfile,
    policy: Policy,
    clock: Callable[[], datetime],
) -> Callable[..., Orchestrator]:
    """Factory building an orchestrator over the shared fixtures."""

    def factory(
        policy_override: Policy | None = None,
        llm: MagicMock | None = None,
        **kwargs: Any,
    ) -> Orchestrator:
        return Orchestrator(
            store,
            tools,
            business,
            policy_override or policy,
            llm,
            clock=clock,
            **kwargs,
        )

    return factory
