"""Tagged payload variants for inbound events and approval-gated actions.

Inbound payloads are parsed at the boundary with :func:`parse_event_payload`,
which selects the variant from the event type and accepts either camelCase
(webhook style) or snake_case keys.  Action payloads are discriminated by
``action_type`` and stored verbatim on the pending action row.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from leadflow.domain.errors import EventValidationError
from leadflow.domain.types import EventType

_INBOUND_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
)


def canonical_phone(raw: str) -> str:
    """Return *raw* as ``+`` followed by digits.

    Ten-digit numbers are taken to be North American and get the ``1``
    country code, so "(555) 123-4567" and "+1 555-123-4567" are the same
    customer.

    Raises:
        ValueError: If *raw* contains no digits.
    """
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise ValueError("phone number must contain digits")
    if len(digits) == 10:
        digits = f"1{digits}"
    return f"+{digits}"


Phone = Annotated[str, Field(min_length=1), AfterValidator(canonical_phone)]


class MissedCallPayload(BaseModel):
    """A call the business did not answer."""

    model_config = _INBOUND_CONFIG

    phone: Phone
    customer_name: str | None = None


class InboundSmsPayload(BaseModel):
    """A text message from a customer."""

    model_config = _INBOUND_CONFIG

    phone: Phone
    message: str = Field(min_length=1)
    customer_name: str | None = None


class WebLeadPayload(BaseModel):
    """A lead submitted through the business's web form."""

    model_config = _INBOUND_CONFIG

    phone: Phone
    customer_name: str = Field(min_length=1)
    email: str | None = None
    service_requested: str = "General inquiry"
    notes: str | None = None
    address: str | None = None


class JobCompletedPayload(BaseModel):
    """Notification that a job has been finished in the field."""

    model_config = _INBOUND_CONFIG

    phone: Phone
    job_id: str = Field(min_length=1)
    customer_name: str | None = None
    service_type: str | None = None

    @field_validator("job_id", mode="before")
    @classmethod
    def coerce_job_id(cls, v: object) -> object:
        """Accept integer job ids from systems that emit them unquoted."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


EventPayload = MissedCallPayload | InboundSmsPayload | WebLeadPayload | JobCompletedPayload

PAYLOAD_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.MISSED_CALL: MissedCallPayload,
    EventType.INBOUND_SMS: InboundSmsPayload,
    EventType.WEB_LEAD: WebLeadPayload,
    EventType.JOB_COMPLETED: JobCompletedPayload,
}


class InboundEvent(BaseModel):
    """A validated event ready for planning."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    type: EventType
    payload: EventPayload

    @property
    def phone(self) -> str:
        """Return the customer phone number every payload carries."""
        return self.payload.phone


def parse_event_type(raw: str) -> EventType:
    """Resolve a raw event type string.

    Raises:
        EventValidationError: If *raw* is not a known event type.
    """
    try:
        return EventType(raw)
    except ValueError:
        raise EventValidationError(
            raw, [{"loc": ("type",), "msg": f"Unknown event type '{raw}'"}]
        ) from None


def parse_event_payload(event_type: EventType, raw: dict[str, Any]) -> EventPayload:
    """Validate *raw* against the payload variant for *event_type*.

    Args:
        event_type: The already-resolved event type.
        raw: The payload as received (camelCase or snake_case keys).

    Returns:
        The typed payload variant.

    Raises:
        EventValidationError: If required fields are missing or malformed.
    """
    model = PAYLOAD_MODELS[event_type]
    try:
        return model.model_validate(raw)  # type: ignore[return-value]
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False)
        raise EventValidationError(str(event_type), errors) from None


# ---------------------------------------------------------------------------
# Approval-gated action payloads
# ---------------------------------------------------------------------------


class SendSmsPayload(BaseModel):
    """A plain outbound text held for approval."""

    model_config = ConfigDict(frozen=True)

    action_type: Literal["send_sms"] = "send_sms"
    phone: str
    message: str


class SendQuotePayload(BaseModel):
    """A drafted quote held for approval; ``estimated_price`` is in cents."""

    model_config = ConfigDict(frozen=True)

    action_type: Literal["send_quote"] = "send_quote"
    phone: str
    message: str
    estimated_price: int = Field(ge=0)
    service_type: str
    customer_name: str | None = None


class ScheduleJobPayload(BaseModel):
    """A proposed booking held for approval."""

    model_config = ConfigDict(frozen=True)

    action_type: Literal["schedule_job"] = "schedule_job"
    phone: str
    customer_name: str | None = None
    service_type: str
    proposed_date: datetime
    message: str
    estimated_price: int | None = None
    address: str | None = None
    notes: str | None = None


ActionPayload = Annotated[
    SendSmsPayload | SendQuotePayload | ScheduleJobPayload,
    Field(discriminator="action_type"),
]
