from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

StepStatus = Literal["pending", "running", "completed", "failed"]
ProgressStatus = Literal["info", "working", "completed", "failed"]
AgentName = Literal["System", "Planner", "Coder", "Reviewer"]
WorkflowStatus = Literal["completed", "partially_failed"]

STEP_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"running"}),
    "running": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


@dataclass(slots=True)
class AgentOptions:
    """Execution context handed through to the backend untouched."""

    provider: str = ""
    model: str = ""
    api_keys: dict[str, str] = field(default_factory=dict)
    provider_settings: dict[str, Any] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class PlanStep:
    id: str
    description: str
    affected_files: list[str] = field(default_factory=list)
    status: StepStatus = "pending"
    attempts: int = 0
    feedback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "affectedFiles": list(self.affected_files),
            "status": self.status,
            "attempts": self.attempts,
            "feedback": self.feedback,
        }


@dataclass(slots=True)
class Plan:
    steps: list[PlanStep] = field(default_factory=list)

    def step(self, step_id: str) -> PlanStep | None:
        for item in self.steps:
            if item.id == step_id:
                return item
        return None

    def completed_steps(self) -> list[PlanStep]:
        return [item for item in self.steps if item.status == "completed"]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": [item.to_dict() for item in self.steps]}


@dataclass(slots=True)
class ReviewResult:
    approved: bool
    feedback: str | None = None


@dataclass(slots=True)
class ProgressUpdate:
    agent_name: AgentName
    message: str
    status: ProgressStatus
    step_id: str | None = None


@dataclass(slots=True)
class WorkflowResult:
    plan: Plan
    combined_code: str
    status: WorkflowStatus = "completed"

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "plan": self.plan.to_dict(),
            "combinedCode": self.combined_code,
        }
