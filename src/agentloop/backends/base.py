from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from agentloop.models import AgentOptions


class BackendExecutionError(RuntimeError):
    """Raised when a text generation call fails at the provider level."""

    def __init__(
        self,
        message: str,
        *,
        backend: str | None = None,
        exit_code: int | None = None,
        retriable: bool = True,
    ) -> None:
        super().__init__(message)
        self.backend = backend
        self.exit_code = exit_code
        self.retriable = retriable


class BackendTimeoutError(BackendExecutionError):
    """Raised when a generation call exceeds the configured timeout."""


class BackendProcessError(BackendExecutionError):
    """Raised when a backend process cannot be started or read."""


class AgentBackend(ABC):
    @abstractmethod
    async def execute(
        self,
        system_prompt: str,
        user_prompt: str,
        options: AgentOptions,
    ) -> AsyncIterator[str]:
        """Run one generation request and stream textual chunks."""

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: AgentOptions,
    ) -> str:
        chunks: list[str] = []
        async for chunk in self.execute(system_prompt, user_prompt, options):
            chunks.append(chunk)
        return "".join(chunks).strip()
