import logging

import pytest

from agentloop.models import ProgressUpdate
from agentloop.progress import ProgressEmitter, ProgressRecorder


def test_emitter_without_callback_is_a_noop() -> None:
    ProgressEmitter().emit("System", "hello", "info")


def test_emitter_delivers_structured_updates_in_order() -> None:
    recorder = ProgressRecorder()
    emitter = ProgressEmitter(recorder)

    emitter.emit("System", "start", "info")
    emitter.emit("Coder", "working on 1", "working", step_id="1")

    assert recorder.updates == [
        ProgressUpdate(agent_name="System", message="start", status="info"),
        ProgressUpdate(agent_name="Coder", message="working on 1", status="working", step_id="1"),
    ]
    assert recorder.pairs() == [("System", "info"), ("Coder", "working")]


def test_emitter_swallows_and_logs_callback_errors(caplog: pytest.LogCaptureFixture) -> None:
    def _broken(update: ProgressUpdate) -> None:
        raise ValueError(f"cannot render {update.message}")

    emitter = ProgressEmitter(_broken)
    with caplog.at_level(logging.WARNING, logger="agentloop.progress"):
        emitter.emit("Reviewer", "approved", "completed", step_id="2")

    assert "cannot render approved" in caplog.text
