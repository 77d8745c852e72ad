from __future__ import annotations

import logging
from typing import Any

from agentloop.errors import PlanningError
from agentloop.models import AgentOptions, Plan, PlanStep
from agentloop.parsing import parse_json_block
from agentloop.specialists.base import SpecialistAgent

logger = logging.getLogger(__name__)


def _looks_like_plan(value: Any) -> bool:
    # A bare list only counts when it holds step objects; echoed file lists do not.
    if isinstance(value, dict):
        return isinstance(value.get("steps"), list)
    return bool(value) and all(isinstance(item, dict) for item in value)


class PlannerAgent(SpecialistAgent):
    role = "planner"
    prompt_file = "planner.md"
    fallback_prompt = """
You are a Project Planner Agent. Break the task into ordered implementation steps.
Output a JSON object: {"steps": [{"id": "1", "description": "...", "affectedFiles": ["..."]}]}
You produce plans, not code.
""".strip()

    @staticmethod
    def build_prompt(task: str, known_files: list[str]) -> str:
        files = ", ".join(known_files) if known_files else "(none)"
        return f"Task: {task}\nAvailable Files: {files}\n\nReturn the execution plan as JSON."

    async def create_plan(
        self, task: str, known_files: list[str], options: AgentOptions
    ) -> Plan:
        response = await self._generate(self.build_prompt(task, known_files), options)
        result = parse_json_block(response, expect=(dict, list), predicate=_looks_like_plan)
        if not result.ok:
            raise PlanningError(
                f"Planner response contained no parseable step list: {result.error}",
                raw_response=response,
            )
        plan = Plan(steps=self._steps_from_payload(result.value, response))
        logger.info("Planner produced %d step(s)", len(plan.steps))
        return plan

    @staticmethod
    def _steps_from_payload(payload: Any, response: str) -> list[PlanStep]:
        raw_steps = payload["steps"] if isinstance(payload, dict) else payload
        steps: list[PlanStep] = []
        seen: set[str] = set()
        for position, raw in enumerate(raw_steps, start=1):
            if not isinstance(raw, dict):
                raise PlanningError(
                    f"Plan step {position} is not an object.", raw_response=response
                )
            raw_id = raw.get("id", position)
            step_id = str(raw_id).strip() if raw_id is not None else str(position)
            if not step_id:
                step_id = str(position)
            if step_id in seen:
                raise PlanningError(f"Duplicate plan step id '{step_id}'.", raw_response=response)
            seen.add(step_id)

            description = raw.get("description")
            if not isinstance(description, str) or not description.strip():
                raise PlanningError(
                    f"Plan step '{step_id}' has no description.", raw_response=response
                )

            files = raw.get("affectedFiles", raw.get("affected_files", []))
            if not isinstance(files, list):
                files = [files] if files else []

            # Whatever status the model echoed back, planning always starts fresh.
            steps.append(
                PlanStep(
                    id=step_id,
                    description=description.strip(),
                    affected_files=[str(path) for path in files],
                    status="pending",
                )
            )
        return steps
