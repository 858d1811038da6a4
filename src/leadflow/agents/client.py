"""Anthropic client factory, model configuration, and structured-output call.

Every agent goes through :func:`request_structured`, which turns any provider
failure, missing client, or schema-invalid output into :class:`AgentError`.
Agents catch that error and answer with their deterministic template.
"""

from __future__ import annotations

from typing import TypeVar

import anthropic
import structlog
from anthropic import Anthropic
from pydantic import BaseModel, ValidationError

from leadflow.domain.errors import AgentError
from leadflow.observability.metrics import AGENT_FALLBACKS

logger = structlog.get_logger()

# Model selection: Haiku for fast/cheap extraction, Sonnet for customer-facing drafts
INTAKE_MODEL = "claude-haiku-4-5-20251001"
DRAFT_MODEL = "claude-sonnet-4-5-20250929"

DEFAULT_MAX_TOKENS = 1024

T = TypeVar("T", bound=BaseModel)


def get_anthropic_client(api_key: str | None = None) -> Anthropic:
    """Create an Anthropic client.

    Args:
        api_key: Explicit API key.  When ``None`` the constructor reads
            ``ANTHROPIC_API_KEY`` from the environment.

    Returns:
        Configured Anthropic client instance.
    """
    return Anthropic(api_key=api_key) if api_key else Anthropic()


def request_structured(
    client: Anthropic | None,
    *,
    agent: str,
    model: str,
    system: str,
    prompt: str,
    output_format: type[T],
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> T:
    """Ask the model for a result matching *output_format*.

    Uses Claude's structured outputs (``client.messages.parse()``) and
    re-validates the parsed result against the schema.

    Args:
        client: An ``anthropic.Anthropic`` instance (or compatible mock);
            ``None`` when no API key is configured.
        agent: Agent name, used in errors and logs.
        model: The Anthropic model ID.
        system: System prompt.
        prompt: User message content.
        output_format: Pydantic model the result must satisfy.
        max_tokens: Output token limit.

    Returns:
        A validated instance of *output_format*.

    Raises:
        AgentError: On missing client, provider error, or invalid output.
    """
    if client is None:
        raise AgentError(agent, "no LLM client configured")

    try:
        response = client.messages.parse(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            output_format=output_format,
        )
    except anthropic.APIError as exc:
        raise AgentError(agent, str(exc)) from exc
    except ValueError as exc:
        # includes the pydantic ValidationError raised by the SDK while parsing
        raise AgentError(agent, f"unparseable structured output: {exc}") from exc

    parsed = response.parsed_output
    if parsed is None:
        raise AgentError(agent, "structured output was empty")

    try:
        return output_format.model_validate(parsed)
    except ValidationError as exc:
        raise AgentError(agent, f"invalid structured output ({exc.error_count()} errors)") from exc


def record_fallback(agent: str, error: AgentError) -> None:
    """Count and log a templated fallback answer for *agent*."""
    AGENT_FALLBACKS.labels(agent=agent).inc()
    logger.warning("agent_fallback_used", agent=agent, error=str(error))
