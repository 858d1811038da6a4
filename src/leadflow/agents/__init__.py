"""Agent adapters: structured model calls with deterministic fallbacks."""

from leadflow.agents.client import (
    DRAFT_MODEL,
    INTAKE_MODEL,
    get_anthropic_client,
    request_structured,
)
from leadflow.agents.intake import generate_missed_call_response, run_intake_agent
from leadflow.agents.models import (
    IntakeResult,
    MissedCallReply,
    QuoteDraft,
    ReviewRequest,
    ScheduleDecision,
    ScheduleProposal,
)
from leadflow.agents.quote import generate_quote
from leadflow.agents.reviews import generate_review_request
from leadflow.agents.schedule import format_schedule_confirmation, propose_schedule

__all__ = [
    "DRAFT_MODEL",
    "INTAKE_MODEL",
    "IntakeResult",
    "MissedCallReply",
    "QuoteDraft",
    "ReviewRequest",
    "ScheduleDecision",
    "ScheduleProposal",
    "format_schedule_confirmation",
    "generate_missed_call_response",
    "generate_quote",
    "generate_review_request",
    "get_anthropic_client",
    "propose_schedule",
    "request_structured",
    "run_intake_agent",
]
