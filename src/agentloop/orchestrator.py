from __future__ import annotations

import asyncio
import logging

from agentloop.backends.base import AgentBackend
from agentloop.config import AgentLoopConfig
from agentloop.errors import ConfigError, StepTransitionError, WorkflowCancelledError
from agentloop.models import (
    STEP_TRANSITIONS,
    AgentOptions,
    Plan,
    PlanStep,
    StepStatus,
    WorkflowResult,
)
from agentloop.progress import ProgressCallback, ProgressEmitter
from agentloop.specialists import CoderAgent, PlannerAgent, ReviewerAgent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 3


class CancellationToken:
    """Cooperative cancellation flag checked between collaborator calls."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "Workflow cancelled.") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise WorkflowCancelledError(self.reason)


class Orchestrator:
    """Drives planner -> (coder <-> reviewer)* per step for one task at a time.

    The instance holds configuration only. Everything belonging to a run (the
    plan, the code accumulator, the progress sink) lives inside
    ``run_workflow``, so concurrent runs on one instance do not interfere.
    """

    def __init__(
        self,
        planner: PlannerAgent,
        coder: CoderAgent,
        reviewer: ReviewerAgent,
        *,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        thread_feedback: bool = False,
    ) -> None:
        if max_iterations < 1:
            raise ConfigError(f"max_iterations must be at least 1, got {max_iterations}.")
        self.planner = planner
        self.coder = coder
        self.reviewer = reviewer
        self.max_iterations = max_iterations
        self.thread_feedback = thread_feedback

    @staticmethod
    def _set_status(step: PlanStep, status: StepStatus) -> None:
        if status not in STEP_TRANSITIONS[step.status]:
            raise StepTransitionError(
                f"Step '{step.id}' cannot move from {step.status} to {status}."
            )
        step.status = status

    @classmethod
    def _fail_running_steps(cls, plan: Plan) -> None:
        for step in plan.steps:
            if step.status == "running":
                cls._set_status(step, "failed")

    async def _run_step(
        self,
        step: PlanStep,
        task: str,
        options: AgentOptions,
        progress: ProgressEmitter,
        token: CancellationToken,
        fragments: list[str],
    ) -> bool:
        self._set_status(step, "running")
        progress.emit("System", f"Starting step {step.id}: {step.description}", "info", step.id)

        feedback: str | None = None
        for iteration in range(1, self.max_iterations + 1):
            token.raise_if_cancelled()
            step.attempts = iteration
            progress.emit(
                "Coder",
                f"Implementing step {step.id} (attempt {iteration}/{self.max_iterations}).",
                "working",
                step.id,
            )
            code = await self.coder.implement_step(step, task, options, feedback=feedback)

            token.raise_if_cancelled()
            progress.emit("Reviewer", f"Reviewing code for step {step.id}.", "working", step.id)
            review = await self.reviewer.review_code(code, task, options)
            step.feedback = review.feedback

            if review.approved:
                self._set_status(step, "completed")
                fragments.append(code)
                progress.emit("Reviewer", f"Step {step.id} approved.", "completed", step.id)
                logger.info("Step %s approved on attempt %d", step.id, iteration)
                return True

            progress.emit(
                "Reviewer",
                f"Step {step.id} rejected. Feedback: {review.feedback or 'none given'}",
                "info",
                step.id,
            )
            logger.info("Step %s rejected on attempt %d", step.id, iteration)
            if self.thread_feedback:
                feedback = review.feedback

        self._set_status(step, "failed")
        progress.emit(
            "System",
            f"Step {step.id} failed after {self.max_iterations} attempt(s).",
            "failed",
            step.id,
        )
        logger.warning("Step %s exhausted its %d attempt(s)", step.id, self.max_iterations)
        return False

    async def run_workflow(
        self,
        task: str,
        known_files: list[str],
        options: AgentOptions,
        on_progress: ProgressCallback | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> WorkflowResult:
        progress = ProgressEmitter(on_progress)
        token = cancel_token or CancellationToken()
        plan: Plan | None = None
        fragments: list[str] = []
        all_completed = True

        logger.info("Starting multi-agent workflow for task: %s", task[:200])
        progress.emit("System", "Starting multi-agent workflow.", "info")
        try:
            token.raise_if_cancelled()
            progress.emit(
                "Planner", "Analyzing the task and creating an execution plan.", "working"
            )
            plan = await self.planner.create_plan(task, list(known_files), options)
            progress.emit("Planner", f"Created a plan with {len(plan.steps)} step(s).", "completed")

            for step in plan.steps:
                if not await self._run_step(step, task, options, progress, token, fragments):
                    all_completed = False
                    break
        except (Exception, asyncio.CancelledError) as exc:
            if plan is not None:
                self._fail_running_steps(plan)
            logger.error("Multi-agent workflow failed: %s", exc)
            progress.emit("System", f"Workflow error: {exc}", "failed")
            raise

        combined_code = "\n".join(fragments).strip()
        if not all_completed:
            logger.warning(
                "Workflow stopped early; %d of %d step(s) completed",
                len(plan.completed_steps()),
                len(plan.steps),
            )
            return WorkflowResult(plan=plan, combined_code=combined_code, status="partially_failed")

        progress.emit("System", "Multi-agent workflow completed successfully.", "completed")
        logger.info("Workflow completed with %d step(s)", len(plan.steps))
        return WorkflowResult(plan=plan, combined_code=combined_code, status="completed")


def build_orchestrator(
    backend: AgentBackend, config: AgentLoopConfig | None = None
) -> Orchestrator:
    config = config or AgentLoopConfig.default()
    return Orchestrator(
        PlannerAgent(backend),
        CoderAgent(backend),
        ReviewerAgent(backend),
        max_iterations=config.workflow.max_iterations,
        thread_feedback=config.workflow.thread_feedback,
    )
