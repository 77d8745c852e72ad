"""Multi-agent task orchestration: plan, implement, review."""

from agentloop.errors import (
    AgentLoopError,
    ConfigError,
    PlanningError,
    StepTransitionError,
    WorkflowCancelledError,
)
from agentloop.models import (
    AgentOptions,
    Plan,
    PlanStep,
    ProgressUpdate,
    ReviewResult,
    WorkflowResult,
)

__version__ = "0.1.0"

__all__ = [
    "AgentLoopError",
    "AgentOptions",
    "ConfigError",
    "Plan",
    "PlanStep",
    "PlanningError",
    "ProgressUpdate",
    "ReviewResult",
    "StepTransitionError",
    "WorkflowCancelledError",
    "WorkflowResult",
    "__version__",
]
