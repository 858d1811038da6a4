"""Tests for the step and plan run state machines."""

import pytest

from leadflow.domain.errors import InvalidTransitionError
from leadflow.domain.types import PlanState, StepState
from leadflow.engine.machine import RunStateMachine
from leadflow.engine.transitions import (
    PLAN_TERMINAL_STATES,
    PLAN_TRANSITIONS,
    STEP_TERMINAL_STATES,
    STEP_TRANSITIONS,
    RunEvent,
)

STEP_PATHS: list[tuple[str, StepState]] = [
    ("succeed", StepState.SUCCEEDED),
    ("fail", StepState.FAILED),
    ("suspend", StepState.SUSPENDED),
]


class TestTransitionMaps:
    def test_every_non_terminal_step_state_has_an_exit(self):
        sources = {state for state, _ in STEP_TRANSITIONS}
        assert sources == set(StepState) - STEP_TERMINAL_STATES

    def test_plan_settles_from_running_only(self):
        assert {state for state, _ in PLAN_TRANSITIONS} == {PlanState.RUNNING}
        assert set(PLAN_TRANSITIONS.values()) == PLAN_TERMINAL_STATES


class TestStepMachine:
    @pytest.mark.parametrize(("event", "expected"), STEP_PATHS, ids=[p[0] for p in STEP_PATHS])
    def test_start_then_settle(self, event: str, expected: StepState):
        sm = RunStateMachine.for_step()
        assert sm.trigger(RunEvent.START) == StepState.RUNNING
        assert sm.trigger(event) == expected
        assert sm.is_terminal is True

    def test_cannot_settle_before_start(self):
        sm = RunStateMachine.for_step()
        with pytest.raises(InvalidTransitionError, match="Cannot apply event 'succeed'"):
            sm.trigger(RunEvent.SUCCEED)
        assert sm.state == StepState.PENDING

    @pytest.mark.parametrize("event", [e.value for e in RunEvent])
    def test_terminal_state_rejects_everything(self, event: str):
        sm = RunStateMachine.for_step()
        sm.trigger(RunEvent.START)
        sm.trigger(RunEvent.SUSPEND)
        with pytest.raises(InvalidTransitionError):
            sm.trigger(event)

    def test_history_records_transitions(self):
        sm = RunStateMachine.for_step()
        sm.trigger(RunEvent.START)
        sm.trigger(RunEvent.FAIL)
        assert sm.history == [
            (StepState.PENDING, "start", StepState.RUNNING),
            (StepState.RUNNING, "fail", StepState.FAILED),
        ]

    def test_history_is_a_copy(self):
        sm = RunStateMachine.for_step()
        sm.history.append(("x", "y", "z"))
        assert sm.history == []

    def test_valid_events(self):
        sm = RunStateMachine.for_step()
        assert sm.get_valid_events() == ["start"]
        sm.trigger(RunEvent.START)
        assert sm.get_valid_events() == ["fail", "succeed", "suspend"]
        sm.trigger(RunEvent.SUCCEED)
        assert sm.get_valid_events() == []


class TestPlanMachine:
    def test_starts_running(self):
        sm = RunStateMachine.for_plan()
        assert sm.state == PlanState.RUNNING
        assert sm.get_valid_events() == ["complete", "fail", "suspend"]

    def test_settles_exactly_once(self):
        sm = RunStateMachine.for_plan()
        sm.trigger(RunEvent.SUSPEND)
        with pytest.raises(InvalidTransitionError):
            sm.trigger(RunEvent.COMPLETE)
        assert sm.state == PlanState.SUSPENDED
