"""Tests for the structured-output call shared by every agent."""

from __future__ import annotations

from unittest.mock import MagicMock

import anthropic
import httpx
import pytest
from prometheus_client import REGISTRY

from leadflow.agents.client import INTAKE_MODEL, record_fallback, request_structured
from leadflow.agents.models import MissedCallReply
from leadflow.domain.errors import AgentError


def _call(client: MagicMock | None) -> MissedCallReply:
    return request_structured(
        client,
        agent="intake",
        model=INTAKE_MODEL,
        system="You are helpful.",
        prompt="Write a text.",
        output_format=MissedCallReply,
    )


class TestRequestStructured:
    def test_returns_parsed_output(self) -> None:
        client = MagicMock()
        client.messages.parse.return_value.parsed_output = MissedCallReply(message="Hi there!")

        assert _call(client).message == "Hi there!"
        kwargs = client.messages.parse.call_args.kwargs
        assert kwargs["model"] == INTAKE_MODEL
        assert kwargs["output_format"] is MissedCallReply
        assert kwargs["messages"] == [{"role": "user", "content": "Write a text."}]

    def test_accepts_dict_output(self) -> None:
        client = MagicMock()
        client.messages.parse.return_value.parsed_output = {"message": "Hello"}

        assert _call(client) == MissedCallReply(message="Hello")

    def test_missing_client(self) -> None:
        with pytest.raises(AgentError, match="no LLM client configured"):
            _call(None)

    def test_api_error_wrapped(self) -> None:
        client = MagicMock()
        client.messages.parse.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )

        with pytest.raises(AgentError) as exc_info:
            _call(client)

        assert exc_info.value.agent == "intake"

    def test_unparseable_output_wrapped(self) -> None:
        client = MagicMock()
        client.messages.parse.side_effect = lambda **_: MissedCallReply.model_validate_json(
            '{"message": "Hi the'
        )

        with pytest.raises(AgentError, match="unparseable structured output"):
            _call(client)

    def test_json_decode_error_wrapped(self) -> None:
        client = MagicMock()
        client.messages.parse.side_effect = ValueError("Expecting value: line 1 column 1")

        with pytest.raises(AgentError, match="unparseable structured output"):
            _call(client)

    def test_empty_output(self) -> None:
        client = MagicMock()
        client.messages.parse.return_value.parsed_output = None

        with pytest.raises(AgentError, match="structured output was empty"):
            _call(client)

    def test_invalid_output(self) -> None:
        client = MagicMock()
        client.messages.parse.return_value.parsed_output = {"message": ""}

        with pytest.raises(AgentError, match="invalid structured output"):
            _call(client)


def test_record_fallback_counts_per_agent() -> None:
    labels = {"agent": "quote"}
    before = REGISTRY.get_sample_value("leadflow_agent_fallbacks_total", labels) or 0.0

    record_fallback("quote", AgentError("quote", "down"))

    assert REGISTRY.get_sample_value("leadflow_agent_fallbacks_total", labels) == before + 1
