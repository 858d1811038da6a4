"""Outbound and inbound messaging tool.

``CommsTool.send_sms`` is best effort: a single attempt, and any provider
failure surfaces as :class:`ExternalToolError` so the step runner halts the
plan.  Delivery itself is delegated to an ``SmsProvider``.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal, Protocol

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from leadflow.audit.logger import AuditLogger
from leadflow.audit.models import AuditAction
from leadflow.domain.errors import ExternalToolError

logger = structlog.get_logger()


class SmsProvider(Protocol):
    """Anything that can deliver a text message and return its id."""

    def send(self, to: str, body: str) -> str: ...


class LoggingSmsProvider:
    """Development provider that logs messages instead of delivering them."""

    def send(self, to: str, body: str) -> str:
        message_id = f"sms_{uuid.uuid4().hex[:12]}"
        logger.info("sms_logged", to=to, body=body, message_id=message_id)
        return message_id


class HttpSmsProvider:
    """Deliver messages through an HTTP SMS gateway.

    Args:
        base_url: Gateway base URL.
        token: Bearer token for the gateway.
        from_number: Sender number configured on the gateway.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        from_number: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._from_number = from_number
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def send(self, to: str, body: str) -> str:
        response = self._client.post(
            "/messages", json={"to": to, "from": self._from_number, "body": body}
        )
        response.raise_for_status()
        return str(response.json()["id"])

    def close(self) -> None:
        self._client.close()


class SendSmsResult(BaseModel):
    """Outcome of a successful ``send_sms`` call."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    to: str
    status: Literal["sent"] = "sent"


class CommsTool:
    """Messaging side of the tool facade.

    Args:
        provider: The delivery provider.
        audit: Audit logger for tool-call entries.
    """

    def __init__(self, provider: SmsProvider, audit: AuditLogger) -> None:
        self._provider = provider
        self._audit = audit

    def send_sms(self, to: str, text: str, *, conversation_id: int | None = None) -> SendSmsResult:
        """Send *text* to *to* exactly once.

        Args:
            to: Recipient phone number.
            text: Message body.
            conversation_id: Conversation the message belongs to, for the audit trail.

        Returns:
            The provider's message id.

        Raises:
            ExternalToolError: If the input is empty or the provider fails.
        """
        if not to or not text.strip():
            raise ExternalToolError("comms.send_sms", "recipient and text are required")

        try:
            message_id = self._provider.send(to, text)
        except Exception as exc:
            logger.error("sms_send_failed", to=to, error=str(exc))
            raise ExternalToolError("comms.send_sms", str(exc)) from exc

        self._audit.log_tool_call(
            AuditAction.COMMS_SEND_SMS,
            {"to": to, "message_id": message_id, "body": text},
            entity_type="conversation",
            entity_id=conversation_id,
        )
        logger.info("sms_sent", to=to, message_id=message_id)
        return SendSmsResult(message_id=message_id, to=to)

    def log_inbound(self, channel: str, sender: str, payload: dict[str, Any]) -> str:
        """Record an inbound customer message and return its tracking id."""
        inbound_id = f"in_{uuid.uuid4().hex[:12]}"
        self._audit.log_tool_call(
            AuditAction.COMMS_INBOUND,
            {"channel": channel, "from": sender, **payload},
            entity_type="inbound",
            entity_id=inbound_id,
        )
        return inbound_id
