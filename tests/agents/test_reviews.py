"""Tests for the reviews agent."""

from __future__ import annotations

from unittest.mock import MagicMock

from leadflow.agents.models import ReviewRequest
from leadflow.agents.reviews import generate_review_request


def test_model_message_used() -> None:
    client = MagicMock()
    client.messages.parse.return_value.parsed_output = ReviewRequest(
        message="Thanks Dana! Mind leaving us a review?"
    )

    message = generate_review_request(
        "Green Thumb", client, customer_name="Dana", service_type="Mulching"
    )

    assert message == "Thanks Dana! Mind leaving us a review?"
    assert "SERVICE PERFORMED: Mulching" in (
        client.messages.parse.call_args.kwargs["messages"][0]["content"]
    )


def test_template_fallback() -> None:
    message = generate_review_request("Green Thumb", None, service_type="Tree Trimming")

    assert message.startswith("Hi there! Thanks for choosing Green Thumb!")
    assert "your tree trimming" in message
