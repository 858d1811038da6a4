"""Intake agent: qualify inbound messages and answer missed calls.

When the model is unavailable the agent still answers deterministically: a
message that names a known service is treated as qualified for that service,
anything else gets a generic acknowledgement.
"""

from __future__ import annotations

from anthropic import Anthropic

from leadflow.agents.client import INTAKE_MODEL, record_fallback, request_structured
from leadflow.agents.models import IntakeResult, MissedCallReply
from leadflow.agents.prompts import INTAKE_SYSTEM_PROMPT, MISSED_CALL_SYSTEM_PROMPT
from leadflow.context.builder import BusinessProfile
from leadflow.domain.errors import AgentError
from leadflow.pricing.rate_cards import DEFAULT_RATE_CARDS

GENERIC_INTAKE_REPLY = (
    "Thank you for reaching out to {business_name}! We received your message and will get "
    "back to you shortly. Is there a specific service you're interested in?"
)
QUALIFIED_INTAKE_REPLY = (
    "Thanks for reaching out to {business_name}! We'd be happy to help with {service_type}. "
    "We'll follow up with an estimate shortly."
)
MISSED_CALL_REPLY = (
    "Hi! Sorry we missed your call at {business_name}. How can we help you today? "
    "Reply here or call us back anytime!"
)


def match_service(message: str, business: BusinessProfile) -> str | None:
    """Return the first known service named in *message*, if any.

    The business's own service list is checked before the rate card keywords.
    """
    normalized = message.lower()
    for service in business.services:
        if service.lower() in normalized:
            return service
    for card in DEFAULT_RATE_CARDS:
        if card.keyword in normalized:
            return card.keyword
    return None


def fallback_intake_result(message: str, business: BusinessProfile) -> IntakeResult:
    """Deterministic qualification used when the model cannot answer."""
    service_type = match_service(message, business)
    if service_type is None:
        return IntakeResult(
            is_qualified=False,
            notes="Automatic qualification unavailable",
            suggested_response=GENERIC_INTAKE_REPLY.format(business_name=business.name),
        )
    return IntakeResult(
        is_qualified=True,
        service_type=service_type,
        notes=message,
        suggested_response=QUALIFIED_INTAKE_REPLY.format(
            business_name=business.name, service_type=service_type.lower()
        ),
    )


def run_intake_agent(
    message: str,
    phone: str,
    business: BusinessProfile,
    client: Anthropic | None,
    *,
    model: str = INTAKE_MODEL,
) -> IntakeResult:
    """Qualify an inbound customer message.

    Args:
        message: The customer's text.
        phone: The customer's phone number (context for the model).
        business: Profile of the business answering.
        client: An ``anthropic.Anthropic`` instance, or ``None``.
        model: The Anthropic model ID to use.

    Returns:
        An ``IntakeResult``; the deterministic fallback on any agent failure.
    """
    system = INTAKE_SYSTEM_PROMPT.format(
        business_name=business.name,
        service_area=business.service_area or "the local area",
        services="\n".join(f"- {s}" for s in business.services) or "- General services",
    )
    try:
        return request_structured(
            client,
            agent="intake",
            model=model,
            system=system,
            prompt=f"Customer message from {phone}:\n\n{message}",
            output_format=IntakeResult,
        )
    except AgentError as exc:
        record_fallback("intake", exc)
        return fallback_intake_result(message, business)


def generate_missed_call_response(
    business_name: str,
    client: Anthropic | None,
    *,
    model: str = INTAKE_MODEL,
) -> str:
    """Draft the SMS sent after a missed call."""
    try:
        reply = request_structured(
            client,
            agent="intake",
            model=model,
            system=MISSED_CALL_SYSTEM_PROMPT.format(business_name=business_name),
            prompt="A customer just called and nobody answered. Write the follow-up text.",
            output_format=MissedCallReply,
            max_tokens=256,
        )
    except AgentError as exc:
        record_fallback("intake", exc)
        return MISSED_CALL_REPLY.format(business_name=business_name)
    return reply.message
