from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from openai import OpenAI, OpenAIError

from agentloop.backends.base import AgentBackend, BackendExecutionError
from agentloop.models import AgentOptions

logger = logging.getLogger(__name__)


class OpenAIBackend(AgentBackend):
    """Responses API backend; one request per call, yielded as a single chunk."""

    def __init__(self, *, model: str = "gpt-5-codex", client: Any | None = None) -> None:
        self.model = model
        self._client = client

    def _client_for(self, options: AgentOptions) -> Any:
        api_key = options.api_keys.get("openai")
        if api_key:
            return OpenAI(api_key=api_key)
        if self._client is None:
            self._client = OpenAI()
        return self._client

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if payload is None:
            return ""
        output_text = getattr(payload, "output_text", None)
        if isinstance(output_text, str):
            return output_text
        if isinstance(payload, dict):
            value = payload.get("output_text")
            if isinstance(value, str):
                return value
        return str(output_text or "")

    async def execute(
        self,
        system_prompt: str,
        user_prompt: str,
        options: AgentOptions,
    ) -> AsyncIterator[str]:
        model_name = options.model.strip() if options.model.strip() else self.model

        def _request() -> Any:
            client = self._client_for(options)
            return client.responses.create(
                model=model_name,
                input=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )

        logger.debug("Requesting OpenAI response (model=%s)", model_name)
        try:
            payload = await asyncio.to_thread(_request)
        except OpenAIError as exc:
            raise BackendExecutionError(
                f"OpenAI request failed: {exc}",
                backend="openai",
                retriable=True,
            ) from exc

        content = self._extract_text(payload).strip()
        if content:
            yield content
