from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, get_args

from agentloop.errors import ConfigError
from agentloop.models import AgentOptions

BackendName = Literal["claude", "openai"]

_FIELD_TYPES: dict[str, dict[str, type | tuple[type, ...]]] = {
    "backend": {
        "primary": str,
        "fallback": str,
        "max_retries": int,
        "retry_backoff_seconds": (int, float),
        "timeout_seconds": (int, float),
    },
    "agents": {"provider": str, "model": str},
    "workflow": {"max_iterations": int, "thread_feedback": bool},
    "logging": {"level": str, "log_file": str},
}


@dataclass(slots=True)
class BackendConfig:
    primary: BackendName = "claude"
    fallback: BackendName = "openai"
    max_retries: int = 1
    retry_backoff_seconds: float = 0.5
    timeout_seconds: float = 90.0


@dataclass(slots=True)
class AgentsConfig:
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5"


@dataclass(slots=True)
class WorkflowConfig:
    max_iterations: int = 3
    thread_feedback: bool = False


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    log_file: str = ""


@dataclass(slots=True)
class AgentLoopConfig:
    backend: BackendConfig = field(default_factory=BackendConfig)
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> AgentLoopConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> AgentLoopConfig:
        try:
            config = cls(
                backend=BackendConfig(**data.get("backend", {})),
                agents=AgentsConfig(**data.get("agents", {})),
                workflow=WorkflowConfig(**data.get("workflow", {})),
                logging=LoggingConfig(**data.get("logging", {})),
            )
        except TypeError as exc:
            raise ConfigError(f"Unknown configuration key: {exc}") from exc
        config.validate()
        return config

    def validate(self) -> None:
        self._validate_types()
        known_backends = get_args(BackendName)
        for slot in ("primary", "fallback"):
            name = getattr(self.backend, slot)
            if name not in known_backends:
                raise ConfigError(
                    f"Unsupported {slot} backend '{name}'. Expected one of {known_backends}."
                )
        if self.backend.max_retries < 0:
            raise ConfigError("backend.max_retries must not be negative.")
        if self.backend.retry_backoff_seconds < 0:
            raise ConfigError("backend.retry_backoff_seconds must not be negative.")
        if self.backend.timeout_seconds <= 0:
            raise ConfigError("backend.timeout_seconds must be positive.")
        if self.workflow.max_iterations < 1:
            raise ConfigError("workflow.max_iterations must be at least 1.")

    def _validate_types(self) -> None:
        for section, expected_types in _FIELD_TYPES.items():
            values = getattr(self, section)
            for key, expected in expected_types.items():
                value = getattr(values, key)
                # bool is an int subclass; only thread_feedback may hold one.
                if isinstance(value, bool) and expected is not bool:
                    valid = False
                else:
                    valid = isinstance(value, expected)
                if not valid:
                    raise ConfigError(
                        f"{section}.{key} has invalid type {type(value).__name__}: {value!r}"
                    )

    def agent_options(self) -> AgentOptions:
        return AgentOptions(provider=self.agents.provider, model=self.agents.model)

    def to_dict(self) -> dict:
        return {
            "backend": {
                "primary": self.backend.primary,
                "fallback": self.backend.fallback,
                "max_retries": self.backend.max_retries,
                "retry_backoff_seconds": self.backend.retry_backoff_seconds,
                "timeout_seconds": self.backend.timeout_seconds,
            },
            "agents": {
                "provider": self.agents.provider,
                "model": self.agents.model,
            },
            "workflow": {
                "max_iterations": self.workflow.max_iterations,
                "thread_feedback": self.workflow.thread_feedback,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
            },
        }


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        rendered = f"{value:.3f}".rstrip("0").rstrip(".")
        return rendered if rendered else "0"
    return json.dumps(str(value), ensure_ascii=False)


def dumps_toml(config: AgentLoopConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    for section in ("backend", "agents", "workflow", "logging"):
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def load_config(path: Path) -> AgentLoopConfig:
    if not path.exists():
        return AgentLoopConfig.default()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    return AgentLoopConfig.from_dict(data)


def save_config(path: Path, config: AgentLoopConfig) -> None:
    path.write_text(dumps_toml(config), encoding="utf-8")
