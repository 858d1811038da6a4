"""Reviews agent: thank the customer and ask for a review after a job."""

from __future__ import annotations

from anthropic import Anthropic

from leadflow.agents.client import INTAKE_MODEL, record_fallback, request_structured
from leadflow.agents.models import ReviewRequest
from leadflow.agents.prompts import REVIEW_SYSTEM_PROMPT
from leadflow.domain.errors import AgentError

FALLBACK_REVIEW_MESSAGE = (
    "Hi {customer_name}! Thanks for choosing {business_name}! We hope you loved your "
    "{service_type}. If you have a moment, we'd really appreciate a review. Thank you!"
)


def generate_review_request(
    business_name: str,
    client: Anthropic | None,
    *,
    customer_name: str | None = None,
    service_type: str | None = None,
    model: str = INTAKE_MODEL,
) -> str:
    """Draft the post-job review request SMS."""
    try:
        request = request_structured(
            client,
            agent="reviews",
            model=model,
            system=REVIEW_SYSTEM_PROMPT.format(business_name=business_name),
            prompt=(
                f"CUSTOMER: {customer_name or 'Unknown'}\n"
                f"SERVICE PERFORMED: {service_type or 'Unknown'}"
            ),
            output_format=ReviewRequest,
            max_tokens=256,
        )
    except AgentError as exc:
        record_fallback("reviews", exc)
        return FALLBACK_REVIEW_MESSAGE.format(
            customer_name=customer_name or "there",
            business_name=business_name,
            service_type=(service_type or "service").lower(),
        )
    return request.message
