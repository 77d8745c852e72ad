from agentloop.backends.base import (
    AgentBackend,
    BackendExecutionError,
    BackendProcessError,
    BackendTimeoutError,
)
from agentloop.backends.claude import ClaudeCodeBackend
from agentloop.backends.openai_sdk import OpenAIBackend
from agentloop.backends.resilient import ResilientBackend, RetryPolicy

__all__ = [
    "AgentBackend",
    "BackendExecutionError",
    "BackendProcessError",
    "BackendTimeoutError",
    "ClaudeCodeBackend",
    "OpenAIBackend",
    "ResilientBackend",
    "RetryPolicy",
]
