"""Transition maps for step and plan execution states."""

from enum import StrEnum

from leadflow.domain.types import PlanState, StepState


class RunEvent(StrEnum):
    """Events that move a step or plan between execution states."""

    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"
    SUSPEND = "suspend"
    COMPLETE = "complete"


# All valid (current_state, event) -> next_state mappings for a single step.
STEP_TRANSITIONS: dict[tuple[StepState, str], StepState] = {
    (StepState.PENDING, RunEvent.START): StepState.RUNNING,
    (StepState.RUNNING, RunEvent.SUCCEED): StepState.SUCCEEDED,
    (StepState.RUNNING, RunEvent.FAIL): StepState.FAILED,
    (StepState.RUNNING, RunEvent.SUSPEND): StepState.SUSPENDED,
}

STEP_TERMINAL_STATES: frozenset[StepState] = frozenset(
    {StepState.SUCCEEDED, StepState.FAILED, StepState.SUSPENDED}
)

# A plan starts RUNNING and settles exactly once.
PLAN_TRANSITIONS: dict[tuple[PlanState, str], PlanState] = {
    (PlanState.RUNNING, RunEvent.COMPLETE): PlanState.COMPLETED,
    (PlanState.RUNNING, RunEvent.FAIL): PlanState.FAILED,
    (PlanState.RUNNING, RunEvent.SUSPEND): PlanState.SUSPENDED,
}

PLAN_TERMINAL_STATES: frozenset[PlanState] = frozenset(
    {PlanState.COMPLETED, PlanState.FAILED, PlanState.SUSPENDED}
)
