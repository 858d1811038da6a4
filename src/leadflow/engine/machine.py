"""RunStateMachine class with trigger, history, and valid_events."""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, TypeVar

from leadflow.domain.errors import InvalidTransitionError
from leadflow.domain.types import PlanState, StepState
from leadflow.engine.transitions import (
    PLAN_TERMINAL_STATES,
    PLAN_TRANSITIONS,
    STEP_TERMINAL_STATES,
    STEP_TRANSITIONS,
)

S = TypeVar("S", bound=StrEnum)


class RunStateMachine(Generic[S]):
    """Finite state machine for step and plan execution.

    Validates transitions against a transition map and records the full
    history of state changes.  Use :meth:`for_step` or :meth:`for_plan` for
    the two machines the runner needs.

    Usage::

        sm = RunStateMachine.for_step()
        sm.trigger("start")     # -> RUNNING
        sm.trigger("suspend")   # -> SUSPENDED (terminal)
    """

    def __init__(
        self,
        initial_state: S,
        transitions: dict[tuple[S, str], S],
        terminal_states: frozenset[S],
    ) -> None:
        self._state: S = initial_state
        self._transitions = transitions
        self._terminal_states = terminal_states
        self._history: list[tuple[S, str, S]] = []

    @classmethod
    def for_step(cls) -> RunStateMachine[StepState]:
        """Return a machine for one step, starting at PENDING."""
        return RunStateMachine(StepState.PENDING, STEP_TRANSITIONS, STEP_TERMINAL_STATES)

    @classmethod
    def for_plan(cls) -> RunStateMachine[PlanState]:
        """Return a machine for a whole plan, starting at RUNNING."""
        return RunStateMachine(PlanState.RUNNING, PLAN_TRANSITIONS, PLAN_TERMINAL_STATES)

    @property
    def state(self) -> S:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in self._terminal_states

    @property
    def history(self) -> list[tuple[S, str, S]]:
        """Return a copy of the ``(from_state, event, to_state)`` history."""
        return list(self._history)

    def trigger(self, event: str) -> S:
        """Apply an event to the current state and transition.

        Args:
            event: The event string (e.g. ``"start"``).

        Returns:
            The new state after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the current state, or if the machine is in a terminal state.
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._state, event)

        key = (self._state, event)
        if key not in self._transitions:
            raise InvalidTransitionError(self._state, event)

        old_state = self._state
        new_state = self._transitions[key]
        self._history.append((old_state, event, new_state))
        self._state = new_state
        return new_state

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current state."""
        if self.is_terminal:
            return []
        return sorted(event for state, event in self._transitions if state == self._state)
