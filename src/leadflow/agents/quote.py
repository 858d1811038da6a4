"""Quote agent: turn a service request into a price estimate."""

from __future__ import annotations

from anthropic import Anthropic

from leadflow.agents.client import DRAFT_MODEL, record_fallback, request_structured
from leadflow.agents.models import QuoteDraft
from leadflow.agents.prompts import QUOTE_SYSTEM_PROMPT, QUOTE_USER_PROMPT
from leadflow.context.builder import BusinessProfile
from leadflow.domain.errors import AgentError
from leadflow.pricing.rate_cards import MIN_PRICE_CENTS, estimate_base_price, format_price

FALLBACK_QUOTE_MESSAGE = (
    "Thanks for your interest! Based on your request for {service_type}, our estimated price "
    "starts at {price}. Would you like to schedule a free on-site estimate?"
)


def fallback_quote(service_type: str) -> QuoteDraft:
    """Rate-card quote used when the model cannot answer."""
    base_price = estimate_base_price(service_type)
    return QuoteDraft(
        estimated_price=base_price,
        confidence="low",
        breakdown=f"Base price for {service_type}",
        suggested_message=FALLBACK_QUOTE_MESSAGE.format(
            service_type=service_type.lower(), price=format_price(base_price)
        ),
        needs_more_info=True,
        questions_to_ask=["What is the approximate size of the property?"],
    )


def generate_quote(
    service_type: str,
    business: BusinessProfile,
    client: Anthropic | None,
    *,
    customer_name: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    model: str = DRAFT_MODEL,
) -> QuoteDraft:
    """Draft a price estimate anchored on the rate card.

    The model may adjust the base price; the result is never below
    ``MIN_PRICE_CENTS``.

    Args:
        service_type: The requested service.
        business: Profile of the business quoting.
        client: An ``anthropic.Anthropic`` instance, or ``None``.
        customer_name: Customer name if known.
        address: Service address if known.
        notes: Free-text details from the customer.
        model: The Anthropic model ID to use.

    Returns:
        A ``QuoteDraft``; the rate-card fallback on any agent failure.
    """
    base_price = estimate_base_price(service_type)
    try:
        draft = request_structured(
            client,
            agent="quote",
            model=model,
            system=QUOTE_SYSTEM_PROMPT.format(
                business_name=business.name,
                service_type=service_type,
                base_price=format_price(base_price),
                base_price_cents=base_price,
            ),
            prompt=QUOTE_USER_PROMPT.format(
                service_type=service_type,
                customer_name=customer_name or "Unknown",
                address=address or "Not provided",
                notes=notes or "None",
            ),
            output_format=QuoteDraft,
        )
    except AgentError as exc:
        record_fallback("quote", exc)
        return fallback_quote(service_type)

    if draft.estimated_price < MIN_PRICE_CENTS:
        draft = draft.model_copy(update={"estimated_price": MIN_PRICE_CENTS})
    return draft
