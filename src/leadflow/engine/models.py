"""Result models returned by the runner, intake, and operator resolution."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from leadflow.domain.models import PendingAction
from leadflow.domain.types import AgentName, PlanState, StepAction, StepState


class StepResult(BaseModel):
    """Trace entry for one executed step."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    agent: AgentName
    action: StepAction
    state: StepState
    output: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    pending_action_id: int | None = None


class ExecutionResult(BaseModel):
    """Outcome of running a plan; stored on the event receipt."""

    model_config = ConfigDict(frozen=True)

    plan_id: str
    event_id: str
    state: PlanState
    policy_version: str
    steps: list[StepResult] = Field(default_factory=list)
    stop_reason: str | None = None
    error: str | None = None
    conversation_id: int | None = None
    pending_action_id: int | None = None

    @property
    def stopped_for_approval(self) -> bool:
        return self.state == PlanState.SUSPENDED


class HandleEventResult(BaseModel):
    """What ``handle_event`` reports back to the caller."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    error_kind: Literal["validation", "in_flight", "persistence"] | None = Field(
        default=None, description="Why the event was not accepted, when success is False"
    )
    event_id: str | None = None
    conversation_id: int | None = None
    stopped_for_approval: bool = False
    pending_action_id: int | None = None
    plan_state: PlanState | None = None
    replayed: bool = False
    steps: list[StepResult] = Field(default_factory=list)


class ResolutionResult(BaseModel):
    """Outcome of approving or rejecting a pending action."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    action: PendingAction
    job_id: int | None = None
    warning: str | None = None
