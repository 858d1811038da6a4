"""Tests for the messaging tool and its SMS providers."""

from __future__ import annotations

import json
import sqlite3

import httpx
import pytest

from leadflow.audit.logger import AuditLogger
from leadflow.audit.store import query_audit_trail
from leadflow.domain.errors import ExternalToolError
from leadflow.tools.comms import CommsTool, HttpSmsProvider, LoggingSmsProvider


class RecordingProvider:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, to: str, body: str) -> str:
        self.sent.append((to, body))
        return "msg_1"


class FailingProvider:
    def send(self, to: str, body: str) -> str:
        raise ConnectionError("gateway unreachable")


class TestCommsToolSendSms:
    def test_sends_once_and_audits(self, conn: sqlite3.Connection, audit: AuditLogger) -> None:
        provider = RecordingProvider()
        comms = CommsTool(provider, audit)

        result = comms.send_sms("+15551234567", "Hello!", conversation_id=4)

        assert result.message_id == "msg_1"
        assert result.status == "sent"
        assert provider.sent == [("+15551234567", "Hello!")]
        entries = query_audit_trail(conn, action="comms.send_sms")
        assert len(entries) == 1
        assert entries[0]["entity_id"] == "4"
        assert entries[0]["payload"]["body"] == "Hello!"

    def test_provider_failure_raises_tool_error(
        self, conn: sqlite3.Connection, audit: AuditLogger
    ) -> None:
        comms = CommsTool(FailingProvider(), audit)

        with pytest.raises(ExternalToolError) as exc_info:
            comms.send_sms("+15551234567", "Hello!")

        assert exc_info.value.tool == "comms.send_sms"
        assert "gateway unreachable" in str(exc_info.value)
        assert query_audit_trail(conn, action="comms.send_sms") == []

    @pytest.mark.parametrize(("to", "text"), [("", "Hello"), ("+15551234567", "   ")])
    def test_empty_input_rejected(self, audit: AuditLogger, to: str, text: str) -> None:
        provider = RecordingProvider()
        comms = CommsTool(provider, audit)

        with pytest.raises(ExternalToolError):
            comms.send_sms(to, text)

        assert provider.sent == []


class TestCommsToolLogInbound:
    def test_records_inbound_message(self, conn: sqlite3.Connection, audit: AuditLogger) -> None:
        comms = CommsTool(RecordingProvider(), audit)

        inbound_id = comms.log_inbound("sms", "+15551234567", {"message": "hi"})

        assert inbound_id.startswith("in_")
        entries = query_audit_trail(conn, action="comms.inbound")
        assert entries[0]["entity_id"] == inbound_id
        assert entries[0]["payload"] == {"channel": "sms", "from": "+15551234567", "message": "hi"}


class TestProviders:
    def test_logging_provider_returns_id(self) -> None:
        assert LoggingSmsProvider().send("+15551234567", "hi").startswith("sms_")

    def test_http_provider_posts_message(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "gw_42"})

        provider = HttpSmsProvider(
            "https://sms.example.com",
            "secret",
            "+15550000000",
            transport=httpx.MockTransport(handler),
        )

        message_id = provider.send("+15551234567", "Hello!")

        assert message_id == "gw_42"
        assert seen[0].url.path == "/messages"
        assert seen[0].headers["Authorization"] == "Bearer secret"
        assert json.loads(seen[0].content) == {
            "to": "+15551234567",
            "from": "+15550000000",
            "body": "Hello!",
        }

    def test_http_provider_error_status_raises(self) -> None:
        provider = HttpSmsProvider(
            "https://sms.example.com",
            "secret",
            "+15550000000",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )

        with pytest.raises(httpx.HTTPStatusError):
            provider.send("+15551234567", "Hello!")
