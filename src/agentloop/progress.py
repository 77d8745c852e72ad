from __future__ import annotations

import logging
from collections.abc import Callable

from agentloop.models import AgentName, ProgressStatus, ProgressUpdate

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]


def _noop(update: ProgressUpdate) -> None:
    _ = update


class ProgressEmitter:
    """Fire-and-forget delivery of progress updates for a single run.

    Exceptions raised by the callback are logged and dropped so that an
    observer can never abort the workflow it is watching.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback or _noop

    def emit(
        self,
        agent_name: AgentName,
        message: str,
        status: ProgressStatus,
        step_id: str | None = None,
    ) -> None:
        update = ProgressUpdate(
            agent_name=agent_name, message=message, status=status, step_id=step_id
        )
        logger.debug("[%s/%s] %s", agent_name, status, message)
        try:
            self._callback(update)
        except Exception as exc:
            logger.warning("Progress callback failed for %s/%s: %s", agent_name, status, exc)


class ProgressRecorder:
    """Callback that keeps every update it receives, in order."""

    def __init__(self) -> None:
        self.updates: list[ProgressUpdate] = []

    def __call__(self, update: ProgressUpdate) -> None:
        self.updates.append(update)

    def pairs(self) -> list[tuple[str, str]]:
        return [(item.agent_name, item.status) for item in self.updates]
