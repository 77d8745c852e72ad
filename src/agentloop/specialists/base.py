from __future__ import annotations

from importlib import resources

from agentloop.backends.base import AgentBackend
from agentloop.models import AgentOptions


class SpecialistAgent:
    """One model-backed role. Holds configuration only, never per-run state."""

    role: str = "specialist"
    prompt_file: str | None = None
    fallback_prompt: str = "You are a software specialist."

    def __init__(self, backend: AgentBackend) -> None:
        self.backend = backend
        self.system_prompt = self._load_system_prompt()

    def _load_system_prompt(self) -> str:
        if not self.prompt_file:
            return self.fallback_prompt.strip()
        try:
            prompt_path = resources.files("agentloop.prompts").joinpath(self.prompt_file)
            return prompt_path.read_text(encoding="utf-8").strip()
        except (FileNotFoundError, ModuleNotFoundError):
            return self.fallback_prompt.strip()

    async def _generate(self, user_prompt: str, options: AgentOptions) -> str:
        return await self.backend.generate(self.system_prompt, user_prompt, options)
