from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import click

from agentloop import __version__
from agentloop.backends import (
    AgentBackend,
    BackendExecutionError,
    ClaudeCodeBackend,
    OpenAIBackend,
    ResilientBackend,
    RetryPolicy,
)
from agentloop.config import AgentLoopConfig, BackendName, load_config, save_config
from agentloop.errors import AgentLoopError
from agentloop.logging_config import setup_logging
from agentloop.models import ProgressUpdate
from agentloop.orchestrator import build_orchestrator
from agentloop.specialists import DocumenterAgent

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "agentloop.toml"


def _resolve_config_path(config_value: str) -> Path:
    config_path = Path(config_value)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return config_path.resolve()


def _load(config_value: str, log_level: str | None) -> AgentLoopConfig:
    try:
        config = load_config(_resolve_config_path(config_value))
    except AgentLoopError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(log_level or config.logging.level, config.logging.log_file or None)
    return config


def _build_single_backend(backend_name: BackendName, working_directory: Path) -> AgentBackend:
    if backend_name == "openai":
        return OpenAIBackend()
    return ClaudeCodeBackend(working_directory=working_directory)


def _log_backend_event(event: dict[str, Any]) -> None:
    if event.get("event") == "backend_attempt_failed":
        logger.warning(
            "Backend %s attempt %s failed: %s",
            event.get("backend"),
            event.get("attempt"),
            event.get("error"),
        )


def _build_backend(config: AgentLoopConfig, working_directory: Path) -> AgentBackend:
    policy = RetryPolicy(
        max_retries=max(0, int(config.backend.max_retries)),
        backoff_seconds=max(0.0, float(config.backend.retry_backoff_seconds)),
        timeout_seconds=max(5.0, float(config.backend.timeout_seconds)),
    )
    return ResilientBackend(
        primary_name=config.backend.primary,
        primary_backend=_build_single_backend(config.backend.primary, working_directory),
        fallback_name=config.backend.fallback,
        fallback_backend=_build_single_backend(config.backend.fallback, working_directory),
        retry_policy=policy,
        event_hook=_log_backend_event,
    )


def _echo_progress(update: ProgressUpdate) -> None:
    step = f" step={update.step_id}" if update.step_id else ""
    click.echo(f"[{update.agent_name}] {update.status}{step}: {update.message}", err=True)


@click.group()
@click.version_option(__version__, prog_name="agentloop")
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Plan, implement and review coding tasks with cooperating agents."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@cli.command("init")
@click.option("--backend", type=click.Choice(["claude", "openai"]), default=None)
@click.option("--config", "config_value", default=DEFAULT_CONFIG, show_default=True)
def init_command(backend: str | None, config_value: str) -> None:
    config_path = _resolve_config_path(config_value)
    try:
        config = load_config(config_path)
    except AgentLoopError as exc:
        raise click.ClickException(str(exc)) from exc
    if backend:
        config.backend.primary = backend  # type: ignore[assignment]
        config.backend.fallback = "openai" if backend == "claude" else "claude"
    save_config(config_path, config)
    click.echo(f"Config: {config_path}")
    click.echo(f"Backend: {config.backend.primary} (fallback {config.backend.fallback})")


@cli.command("run")
@click.argument("task")
@click.option("--file", "files", multiple=True, help="Known project file; repeatable.")
@click.option("--config", "config_value", default=DEFAULT_CONFIG, show_default=True)
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def run_command(
    ctx: click.Context, task: str, files: tuple[str, ...], config_value: str, as_json: bool
) -> None:
    config = _load(config_value, ctx.obj.get("log_level"))
    orchestrator = build_orchestrator(_build_backend(config, Path.cwd()), config)
    try:
        result = asyncio.run(
            orchestrator.run_workflow(
                task, list(files), config.agent_options(), on_progress=_echo_progress
            )
        )
    except (AgentLoopError, BackendExecutionError) as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        completed = len(result.plan.completed_steps())
        total = len(result.plan.steps)
        click.echo(f"Status: {result.status} ({completed}/{total} steps)", err=True)
        if result.combined_code:
            click.echo(result.combined_code)
    if not result.succeeded:
        ctx.exit(1)


@cli.command("backend")
@click.argument("backend_name", type=click.Choice(["claude", "openai"]))
@click.option("--config", "config_value", default=DEFAULT_CONFIG, show_default=True)
def backend_command(backend_name: str, config_value: str) -> None:
    config_path = _resolve_config_path(config_value)
    try:
        config = load_config(config_path)
    except AgentLoopError as exc:
        raise click.ClickException(str(exc)) from exc
    config.backend.primary = backend_name  # type: ignore[assignment]
    save_config(config_path, config)
    click.echo(f"Primary backend set to {backend_name}.")


@cli.command("project-plan")
@click.argument("description")
@click.option("--tech", "tech_stack", multiple=True, help="Technology in the stack; repeatable.")
@click.option("--config", "config_value", default=DEFAULT_CONFIG, show_default=True)
@click.pass_context
def project_plan_command(
    ctx: click.Context, description: str, tech_stack: tuple[str, ...], config_value: str
) -> None:
    config = _load(config_value, ctx.obj.get("log_level"))
    documenter = DocumenterAgent(_build_backend(config, Path.cwd()))
    try:
        content = asyncio.run(
            documenter.project_plan(description, list(tech_stack), config.agent_options())
        )
    except BackendExecutionError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(content)


@cli.command("arch-docs")
@click.option("--file", "files", multiple=True, help="Project file to describe; repeatable.")
@click.option("--config", "config_value", default=DEFAULT_CONFIG, show_default=True)
@click.pass_context
def arch_docs_command(ctx: click.Context, files: tuple[str, ...], config_value: str) -> None:
    config = _load(config_value, ctx.obj.get("log_level"))
    documenter = DocumenterAgent(_build_backend(config, Path.cwd()))
    try:
        content = asyncio.run(documenter.architecture_docs(list(files), config.agent_options()))
    except BackendExecutionError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(content)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
