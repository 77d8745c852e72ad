from __future__ import annotations

from agentloop.models import AgentOptions
from agentloop.specialists.base import SpecialistAgent

PROJECT_PLAN_SECTIONS = (
    "Overview",
    "Features",
    "Architecture",
    "File Structure",
    "Implementation Plan",
)


class DocumenterAgent(SpecialistAgent):
    role = "documenter"
    prompt_file = "documenter.md"
    fallback_prompt = """
You are a Senior Project Planner and Technical Writer.
Produce concise, accurate markdown documents.
""".strip()

    async def project_plan(
        self, description: str, tech_stack: list[str], options: AgentOptions
    ) -> str:
        prompt = (
            "Create a comprehensive PROJECT_PLAN.md for:\n\n"
            f"Description: {description}\n"
            f"Tech Stack: {', '.join(tech_stack) if tech_stack else '(unspecified)'}\n\n"
            f"Sections: {', '.join(PROJECT_PLAN_SECTIONS)}.\n"
            "Output the markdown content."
        )
        return await self._generate(prompt, options)

    async def architecture_docs(self, files: list[str], options: AgentOptions) -> str:
        file_list = "\n".join(files) if files else "(no files)"
        prompt = f"Analyze these files and generate ARCHITECTURE.md:\n{file_list}"
        return await self._generate(prompt, options)
