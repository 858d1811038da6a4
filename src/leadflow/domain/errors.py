"""Domain-specific exception classes for the lead orchestration engine."""

from __future__ import annotations

from typing import Any


class LeadflowError(Exception):
    """Base class for all domain errors in the orchestration engine."""


class EventValidationError(LeadflowError):
    """Raised when an inbound event's type or payload is malformed.

    Attributes:
        event_type: The event type as received.
        errors: Structured validation errors (pydantic ``errors()`` format).
    """

    def __init__(self, event_type: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.event_type = event_type
        self.errors = errors or []
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in self.errors
        )
        message = f"Invalid '{event_type}' event"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DuplicateEventError(LeadflowError):
    """Raised when an event receipt with the same id is already claimed.

    Attributes:
        event_id: The duplicated event identifier.
    """

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"Event '{event_id}' has already been received")


class AgentError(LeadflowError):
    """Raised when an agent cannot produce a valid structured result.

    Attributes:
        agent: Name of the agent that failed.
    """

    def __init__(self, agent: str, message: str) -> None:
        self.agent = agent
        super().__init__(f"{agent} agent failed: {message}")


class ExternalToolError(LeadflowError):
    """Raised when a call through the tool facade fails.

    Attributes:
        tool: Dotted tool name, e.g. ``"comms.send_sms"``.
    """

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} failed: {message}")


class StepExecutionError(LeadflowError):
    """Raised when a step's preconditions are not met (e.g. no conversation)."""


class PersistenceError(LeadflowError):
    """Raised when the store cannot read or write a record."""


class InvalidTransitionError(LeadflowError):
    """Raised when an invalid state transition is attempted.

    Attributes:
        current_state: The state the machine was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, current_state: str, event: str) -> None:
        self.current_state = current_state
        self.event = event
        super().__init__(f"Cannot apply event '{event}' in state '{current_state}'")


class ActionNotFoundError(LeadflowError):
    """Raised when a pending action id does not exist."""

    def __init__(self, action_id: int) -> None:
        self.action_id = action_id
        super().__init__("Action not found")


class ActionAlreadyResolvedError(LeadflowError):
    """Raised when a pending action has already been approved or rejected.

    Attributes:
        action_id: The action identifier.
        status: The status the action was already resolved to, when known.
    """

    def __init__(self, action_id: int, status: str | None = None) -> None:
        self.action_id = action_id
        self.status = status
        super().__init__("Action already resolved")
