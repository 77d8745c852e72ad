from __future__ import annotations

from agentloop.models import AgentOptions, PlanStep
from agentloop.specialists.base import SpecialistAgent


class CoderAgent(SpecialistAgent):
    role = "coder"
    prompt_file = "coder.md"
    fallback_prompt = """
You are a Coder Agent. Implement exactly the plan step you are given.
Respond with the complete code changes for every affected file.
""".strip()

    @staticmethod
    def build_prompt(step: PlanStep, task: str, feedback: str | None = None) -> str:
        files = ", ".join(step.affected_files) if step.affected_files else "(none)"
        prompt = (
            f"Original Task: {task}\n"
            f"Current Step: {step.description}\n"
            f"Affected Files: {files}\n\n"
            "Please implement the changes for this step."
        )
        if feedback:
            prompt += f"\n\nReviewer feedback on the previous attempt:\n{feedback}"
        return prompt

    async def implement_step(
        self,
        step: PlanStep,
        task: str,
        options: AgentOptions,
        *,
        feedback: str | None = None,
    ) -> str:
        return await self._generate(self.build_prompt(step, task, feedback), options)
