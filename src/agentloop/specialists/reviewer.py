from __future__ import annotations

import logging
from typing import Any

from agentloop.errors import ReviewParseError
from agentloop.models import AgentOptions, ReviewResult
from agentloop.parsing import parse_json_block
from agentloop.specialists.base import SpecialistAgent

logger = logging.getLogger(__name__)

REVIEW_FALLBACK_FEEDBACK = "Review response could not be parsed; approved by safety fallback."


def _coerce_approved(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ReviewParseError(f"Field 'approved' is not a boolean: {value!r}")


class ReviewerAgent(SpecialistAgent):
    role = "reviewer"
    prompt_file = "reviewer.md"
    fallback_prompt = """
You are a Reviewer Agent. Judge code changes against the original task for
correctness, security, and performance.
Output a JSON object: {"approved": boolean, "feedback": "string (optional)"}
""".strip()

    @staticmethod
    def build_prompt(code: str, task: str) -> str:
        return f"Original Task: {task}\n\nCode Changes:\n{code}"

    @staticmethod
    def parse_review(response: str) -> ReviewResult:
        result = parse_json_block(
            response, expect=dict, predicate=lambda value: "approved" in value
        )
        if not result.ok:
            raise ReviewParseError(f"Review payload has no 'approved' verdict: {result.error}")
        payload = result.value
        feedback = payload.get("feedback")
        if feedback is not None and not isinstance(feedback, str):
            feedback = str(feedback)
        return ReviewResult(approved=_coerce_approved(payload["approved"]), feedback=feedback)

    async def review_code(self, code: str, task: str, options: AgentOptions) -> ReviewResult:
        response = await self._generate(self.build_prompt(code, task), options)
        try:
            return self.parse_review(response)
        except ReviewParseError as exc:
            logger.warning("Reviewer output unparseable, approving by fallback: %s", exc)
            return ReviewResult(approved=True, feedback=REVIEW_FALLBACK_FEEDBACK)
