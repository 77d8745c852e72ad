from __future__ import annotations


class AgentLoopError(RuntimeError):
    """Base class for errors raised by the orchestration engine."""


class ConfigError(AgentLoopError):
    """Raised when configuration values are invalid."""


class PlanningError(AgentLoopError):
    """Raised when the planner response holds no usable step list."""

    def __init__(self, message: str, *, raw_response: str | None = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class ReviewParseError(AgentLoopError):
    """Raised inside the reviewer when its response cannot be parsed."""


class StepTransitionError(AgentLoopError):
    """Raised on an illegal plan step status transition."""


class WorkflowCancelledError(AgentLoopError):
    """Raised when a run observes its cancellation token."""
