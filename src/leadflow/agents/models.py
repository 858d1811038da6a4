"""Pydantic models defining structured I/O contracts for the agents.

The ``*Result``/``*Draft``/``*Decision`` models are passed to Anthropic
structured outputs (``client.messages.parse(output_format=...)``), so their
field descriptions double as instructions to the model.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Urgency = Literal["low", "medium", "high"]
Confidence = Literal["low", "medium", "high"]


class IntakeResult(BaseModel):
    """Qualification of an inbound customer message."""

    is_qualified: bool = Field(
        description="True if the customer is asking for a service the business offers"
    )
    customer_name: str | None = Field(default=None, description="Customer name if mentioned")
    service_type: str | None = Field(
        default=None, description="The service requested, e.g. 'lawn mowing'"
    )
    address: str | None = Field(default=None, description="Service address if mentioned")
    urgency: Urgency = Field(default="medium", description="How soon the customer needs help")
    notes: str = Field(default="", description="Anything else relevant to a quote")
    suggested_response: str = Field(
        min_length=1, description="A short, friendly SMS reply to the customer"
    )


class MissedCallReply(BaseModel):
    """Text sent after a missed call."""

    message: str = Field(min_length=1, description="SMS under 160 characters")


class QuoteDraft(BaseModel):
    """A drafted price estimate; ``estimated_price`` is in cents."""

    estimated_price: int = Field(ge=0, description="Estimated price in cents")
    confidence: Confidence = Field(description="Confidence in the estimate")
    breakdown: str = Field(description="Short explanation of how the price was reached")
    suggested_message: str = Field(
        min_length=1, description="SMS presenting the estimate to the customer"
    )
    needs_more_info: bool = Field(
        default=False, description="True if an on-site visit is needed to firm up the price"
    )
    questions_to_ask: list[str] = Field(
        default_factory=list, description="Follow-up questions for the customer"
    )


class ScheduleDecision(BaseModel):
    """Model's choice among the offered appointment slots."""

    can_schedule: bool = Field(description="True if one of the slots fits the customer")
    proposed_date_index: int = Field(description="Zero-based index into the offered slots")
    suggested_message: str = Field(
        min_length=1, description="SMS proposing the chosen slot to the customer"
    )
    needs_confirmation: bool = Field(
        default=True, description="True if the customer must confirm before booking"
    )


class ScheduleProposal(BaseModel):
    """Resolved schedule proposal with concrete datetimes."""

    model_config = ConfigDict(frozen=True)

    can_schedule: bool
    proposed_date: datetime
    alternatives: tuple[datetime, ...] = ()
    suggested_message: str
    needs_confirmation: bool = True


class ReviewRequest(BaseModel):
    """Post-job message asking for a review."""

    message: str = Field(min_length=1, description="Warm SMS asking for a review")
