from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from agentloop.backends.base import AgentBackend, BackendExecutionError, BackendProcessError
from agentloop.models import AgentOptions

logger = logging.getLogger(__name__)


class ClaudeCodeBackend(AgentBackend):
    """Runs the ``claude`` CLI in print mode and streams its text output.

    The system prompt travels through a temporary file named by ``CLAUDE_MD``;
    ``AgentOptions.model`` selects ``--model`` and ``AgentOptions.env`` is
    layered over the inherited environment.
    """

    def __init__(self, binary: str = "claude", working_directory: Path | None = None) -> None:
        self.binary = binary
        self.working_directory = working_directory

    def build_command(self, user_prompt: str, model: str | None = None) -> list[str]:
        command = [self.binary, "-p", user_prompt, "--output-format", "stream-json"]
        if model and model.strip():
            command.extend(["--model", model.strip()])
        return command

    def build_env(self, options: AgentOptions, system_prompt_path: str) -> dict[str, str]:
        env = os.environ.copy()
        env.update(options.env)
        env["CLAUDE_MD"] = system_prompt_path
        return env

    @staticmethod
    def _text_of(event: dict[str, Any]) -> str:
        content = event.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(
                item["text"]
                for item in content
                if isinstance(item, dict) and isinstance(item.get("text"), str)
            )
        delta = event.get("delta")
        return delta if isinstance(delta, str) else ""

    @staticmethod
    def _is_unterminated(raw: str) -> bool:
        return raw.count("{") > raw.count("}") or raw.count("[") > raw.count("]")

    @classmethod
    async def _stream_text(cls, stdout: asyncio.StreamReader) -> AsyncIterator[str]:
        # Events may be split across lines; plain lines pass through as text.
        pending = ""
        async for raw_line in stdout:
            line = raw_line.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            candidate = pending + line
            try:
                event = json.loads(candidate)
            except json.JSONDecodeError:
                if cls._is_unterminated(candidate):
                    pending = candidate
                    continue
                pending = ""
                yield line
                continue
            pending = ""
            if isinstance(event, dict):
                text = cls._text_of(event)
                if text:
                    yield text
        if pending:
            yield pending

    async def _spawn(self, command: list[str], env: dict[str, str]) -> asyncio.subprocess.Process:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.working_directory) if self.working_directory else None,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise BackendProcessError(
                f"Claude binary not found: {self.binary}", backend="claude", retriable=False
            ) from exc
        if process.stdout is None:
            raise BackendProcessError(
                "Claude backend did not expose stdout.", backend="claude", retriable=False
            )
        return process

    async def execute(
        self,
        system_prompt: str,
        user_prompt: str,
        options: AgentOptions,
    ) -> AsyncIterator[str]:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".md", encoding="utf-8") as prompt_file:
            prompt_file.write(system_prompt)
            prompt_file.flush()

            command = self.build_command(user_prompt, options.model)
            logger.debug("Starting claude CLI (model=%s)", options.model or "default")
            process = await self._spawn(command, self.build_env(options, prompt_file.name))

            exited = False
            try:
                async for text in self._stream_text(process.stdout):
                    yield text
                return_code = await process.wait()
                exited = True
            finally:
                if not exited:
                    # Consumer stopped reading before the CLI exited.
                    logger.debug("Terminating claude CLI (pid=%s)", process.pid)
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                    await process.wait()

            stderr_output = ""
            if process.stderr is not None:
                stderr_output = (
                    (await process.stderr.read()).decode("utf-8", errors="replace").strip()
                )
            if return_code != 0:
                raise BackendExecutionError(
                    f"Claude backend failed with exit code {return_code}: {stderr_output}",
                    backend="claude",
                    exit_code=return_code,
                    retriable=True,
                )
