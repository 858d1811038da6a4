"""Step runner: executes a plan's steps in order under the run state machines."""

from __future__ import annotations

import structlog

from leadflow.audit.models import AuditAction
from leadflow.context.builder import StateSnapshot
from leadflow.domain.errors import LeadflowError, PersistenceError
from leadflow.domain.types import PlanState, StepState
from leadflow.engine.executors import RunContext, StepExecutors, StepOutcome
from leadflow.engine.machine import RunStateMachine
from leadflow.engine.models import ExecutionResult, StepResult
from leadflow.engine.transitions import RunEvent
from leadflow.planning.models import Plan, Step
from leadflow.tools import ToolFacade

logger = structlog.get_logger()


class StepRunner:
    """Run plans step by step.

    Steps run strictly in plan order.  The first step that suspends for
    approval or fails ends the run; later steps never execute.

    Args:
        executors: Per-agent step executors.
        tools: The tool facade, used here for audit and metrics.
    """

    def __init__(self, executors: StepExecutors, tools: ToolFacade) -> None:
        self._executors = executors
        self._tools = tools

    def execute(self, plan: Plan, state: StateSnapshot) -> ExecutionResult:
        """Execute *plan* against the customer's current state.

        Args:
            plan: The plan to run.
            state: Snapshot the plan was built from.

        Returns:
            An ``ExecutionResult`` in a terminal plan state.

        Raises:
            PersistenceError: If the store fails mid-run.  The event is left
                in-flight so it can be retried.
        """
        machine = RunStateMachine.for_plan()
        ctx = RunContext(conversation=state.conversation)
        results: list[StepResult] = []
        audit = self._tools.audit

        audit.log_plan_transition(
            AuditAction.RUNNER_START,
            plan.plan_id,
            {"event_id": plan.event_id, "steps": len(plan.steps)},
        )
        logger.info("plan_started", plan_id=plan.plan_id, steps=len(plan.steps))

        if plan.should_stop:
            machine.trigger(RunEvent.COMPLETE)
            audit.log_plan_transition(
                AuditAction.RUNNER_COMPLETE, plan.plan_id, {"stop_reason": plan.stop_reason}
            )
            logger.info("plan_declined", plan_id=plan.plan_id, reason=plan.stop_reason)
            return self._result(plan, machine.state, results, ctx)

        for step in plan.steps:
            result = self._run_step(plan, step, ctx)
            results.append(result)

            if result.state == StepState.SUSPENDED:
                machine.trigger(RunEvent.SUSPEND)
                audit.log_plan_transition(
                    AuditAction.RUNNER_STOPPED,
                    plan.plan_id,
                    {"step_id": step.step_id, "pending_action_id": result.pending_action_id},
                )
                return self._result(
                    plan, machine.state, results, ctx, pending_action_id=result.pending_action_id
                )
            if result.state == StepState.FAILED:
                machine.trigger(RunEvent.FAIL)
                return self._result(plan, machine.state, results, ctx, error=result.error)

        machine.trigger(RunEvent.COMPLETE)
        audit.log_plan_transition(
            AuditAction.RUNNER_COMPLETE, plan.plan_id, {"steps": len(results)}
        )
        logger.info("plan_completed", plan_id=plan.plan_id)
        return self._result(plan, machine.state, results, ctx)

    def _run_step(self, plan: Plan, step: Step, ctx: RunContext) -> StepResult:
        machine = RunStateMachine.for_step()
        machine.trigger(RunEvent.START)
        log = logger.bind(plan_id=plan.plan_id, step_id=step.step_id, action=step.action)

        try:
            outcome: StepOutcome = self._executors.run(step, ctx)
        except PersistenceError:
            raise
        except LeadflowError as exc:
            machine.trigger(RunEvent.FAIL)
            self._tools.audit.log_plan_transition(
                AuditAction.RUNNER_STEP_FAILED,
                plan.plan_id,
                {"step_id": step.step_id, "error": str(exc)},
            )
            log.warning("step_failed", error=str(exc))
            return self._step_result(step, machine.state, error=str(exc))
        except Exception as exc:
            machine.trigger(RunEvent.FAIL)
            self._tools.audit.log_plan_transition(
                AuditAction.RUNNER_ERROR,
                plan.plan_id,
                {"step_id": step.step_id, "error": f"{type(exc).__name__}: {exc}"},
            )
            log.exception("step_error")
            return self._step_result(step, machine.state, error=f"Unexpected error: {exc}")

        if outcome.suspended:
            machine.trigger(RunEvent.SUSPEND)
            log.info("step_suspended", pending_action_id=outcome.pending_action.id)
            return self._step_result(
                step,
                machine.state,
                output=outcome.output,
                pending_action_id=outcome.pending_action.id,
            )

        machine.trigger(RunEvent.SUCCEED)
        self._tools.metrics.record(
            "step_completed", tags={"agent": step.agent.value, "action": step.action.value}
        )
        log.info("step_succeeded")
        return self._step_result(step, machine.state, output=outcome.output)

    @staticmethod
    def _step_result(
        step: Step,
        state: StepState,
        *,
        output: dict | None = None,
        error: str | None = None,
        pending_action_id: int | None = None,
    ) -> StepResult:
        return StepResult(
            step_id=step.step_id,
            agent=step.agent,
            action=step.action,
            state=state,
            output=output or {},
            error=error,
            pending_action_id=pending_action_id,
        )

    @staticmethod
    def _result(
        plan: Plan,
        state: PlanState,
        steps: list[StepResult],
        ctx: RunContext,
        *,
        error: str | None = None,
        pending_action_id: int | None = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            plan_id=plan.plan_id,
            event_id=plan.event_id,
            state=state,
            policy_version=plan.policy_version,
            steps=steps,
            stop_reason=plan.stop_reason,
            error=error,
            conversation_id=ctx.conversation.id if ctx.conversation else None,
            pending_action_id=pending_action_id,
        )
