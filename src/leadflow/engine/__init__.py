"""Step runner, run state machines, and the event orchestrator."""

from leadflow.engine.executors import RunContext, StepExecutors, StepOutcome
from leadflow.engine.machine import RunStateMachine
from leadflow.engine.models import (
    ExecutionResult,
    HandleEventResult,
    ResolutionResult,
    StepResult,
)
from leadflow.engine.orchestrator import Orchestrator
from leadflow.engine.runner import StepRunner
from leadflow.engine.transitions import (
    PLAN_TERMINAL_STATES,
    PLAN_TRANSITIONS,
    STEP_TERMINAL_STATES,
    STEP_TRANSITIONS,
    RunEvent,
)

__all__ = [
    "PLAN_TERMINAL_STATES",
    "PLAN_TRANSITIONS",
    "STEP_TERMINAL_STATES",
    "STEP_TRANSITIONS",
    "ExecutionResult",
    "HandleEventResult",
    "Orchestrator",
    "ResolutionResult",
    "RunContext",
    "RunEvent",
    "RunStateMachine",
    "StepExecutors",
    "StepOutcome",
    "StepResult",
    "StepRunner",
]
