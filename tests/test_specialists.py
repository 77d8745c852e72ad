import asyncio
from collections.abc import AsyncIterator

import pytest

from agentloop.backends.base import AgentBackend, BackendExecutionError
from agentloop.errors import PlanningError, ReviewParseError
from agentloop.models import AgentOptions, PlanStep
from agentloop.specialists import (
    REVIEW_FALLBACK_FEEDBACK,
    CoderAgent,
    DocumenterAgent,
    PlannerAgent,
    ReviewerAgent,
)

OPTIONS = AgentOptions(provider="stub", model="stub-model", api_keys={"stub": "secret"})


class FakeBackend(AgentBackend):
    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str, AgentOptions]] = []

    async def execute(
        self, system_prompt: str, user_prompt: str, options: AgentOptions
    ) -> AsyncIterator[str]:
        self.calls.append((system_prompt, user_prompt, options))
        if self.error is not None:
            raise self.error
        # Split the response to exercise chunk joining.
        middle = len(self.response) // 2
        yield self.response[:middle]
        yield self.response[middle:]


def test_planner_extracts_plan_from_prose_and_forces_pending() -> None:
    backend = FakeBackend(
        "Sure! Here is my plan:\n```json\n"
        '{"steps": [{"id": 1, "description": "Add route", "affectedFiles": ["app.py"], '
        '"status": "completed"}, {"id": "2", "description": "Add test", "status": "failed"}]}'
        "\n```\nLet me know."
    )
    planner = PlannerAgent(backend)

    plan = asyncio.run(planner.create_plan("Add health check", ["app.py", "tests.py"], OPTIONS))

    assert [step.id for step in plan.steps] == ["1", "2"]
    assert [step.status for step in plan.steps] == ["pending", "pending"]
    assert plan.steps[0].affected_files == ["app.py"]
    assert plan.steps[1].affected_files == []
    assert len(backend.calls) == 1
    _, user_prompt, options = backend.calls[0]
    assert "Task: Add health check" in user_prompt
    assert "app.py, tests.py" in user_prompt
    assert options is OPTIONS


def test_planner_accepts_bare_step_list() -> None:
    backend = FakeBackend('[{"id": "a", "description": "first", "affected_files": ["x.py"]}]')

    plan = asyncio.run(PlannerAgent(backend).create_plan("t", [], OPTIONS))

    assert plan.steps[0].id == "a"
    assert plan.steps[0].affected_files == ["x.py"]


def test_planner_ignores_brackets_in_leading_prose() -> None:
    backend = FakeBackend(
        'Plan [draft]: {"steps": [{"id": "1", "description": "use {braces} in text"}]}'
    )

    plan = asyncio.run(PlannerAgent(backend).create_plan("t", [], OPTIONS))

    assert plan.steps[0].description == "use {braces} in text"


def test_planner_accepts_empty_step_list() -> None:
    plan = asyncio.run(PlannerAgent(FakeBackend('{"steps": []}')).create_plan("t", [], OPTIONS))

    assert plan.steps == []


def test_planner_skips_echoed_file_list_before_plan() -> None:
    backend = FakeBackend(
        'I looked at ["server.ts", "app.py"] and propose:\n'
        '{"steps": [{"id": "1", "description": "add endpoint", "affectedFiles": ["server.ts"]}]}'
    )

    plan = asyncio.run(PlannerAgent(backend).create_plan("t", ["server.ts"], OPTIONS))

    assert [step.id for step in plan.steps] == ["1"]
    assert plan.steps[0].affected_files == ["server.ts"]


@pytest.mark.parametrize(
    "response",
    [
        "No plan today.",
        "",
        '{"summary": "nothing to do"}',
        '{"steps": [{"id": "1", "description": ""}]}',
        '{"steps": [{"id": "1", "description": "a"}, {"id": "1", "description": "b"}]}',
        '{"steps": ["just a string"]}',
        '["server.ts"]',
    ],
)
def test_planner_rejects_unusable_responses(response: str) -> None:
    planner = PlannerAgent(FakeBackend(response))

    with pytest.raises(PlanningError) as exc_info:
        asyncio.run(planner.create_plan("t", [], OPTIONS))

    assert exc_info.value.raw_response is not None


def test_planner_loads_packaged_system_prompt() -> None:
    planner = PlannerAgent(FakeBackend())

    assert "Project Planner Agent" in planner.system_prompt
    assert "affectedFiles" in planner.system_prompt


def test_coder_prompt_carries_step_and_task() -> None:
    backend = FakeBackend("<file path='app.py'>print('ok')</file>")
    coder = CoderAgent(backend)
    step = PlanStep(id="1", description="Add route", affected_files=["app.py", "urls.py"])

    code = asyncio.run(coder.implement_step(step, "Add health check", OPTIONS))

    assert code == "<file path='app.py'>print('ok')</file>"
    _, user_prompt, _ = backend.calls[0]
    assert "Original Task: Add health check" in user_prompt
    assert "Current Step: Add route" in user_prompt
    assert "Affected Files: app.py, urls.py" in user_prompt
    assert "Reviewer feedback" not in user_prompt


def test_coder_includes_feedback_only_when_given() -> None:
    step = PlanStep(id="1", description="Add route")

    prompt = CoderAgent.build_prompt(step, "task", feedback="handle 404")

    assert "Reviewer feedback on the previous attempt:\nhandle 404" in prompt


def test_coder_propagates_backend_errors_unmodified() -> None:
    error = BackendExecutionError("invalid api key", backend="fake", retriable=False)
    coder = CoderAgent(FakeBackend(error=error))

    with pytest.raises(BackendExecutionError) as exc_info:
        asyncio.run(coder.implement_step(PlanStep(id="1", description="x"), "t", OPTIONS))

    assert exc_info.value is error


def test_agents_are_deterministic_for_identical_inputs() -> None:
    backend = FakeBackend('{"approved": false, "feedback": "missing tests"}')
    reviewer = ReviewerAgent(backend)
    coder = CoderAgent(backend)
    step = PlanStep(id="1", description="x")

    first = asyncio.run(reviewer.review_code("code", "task", OPTIONS))
    second = asyncio.run(reviewer.review_code("code", "task", OPTIONS))
    code_a = asyncio.run(coder.implement_step(step, "task", OPTIONS))
    code_b = asyncio.run(coder.implement_step(step, "task", OPTIONS))

    assert first == second
    assert code_a == code_b
    assert backend.calls[0] == backend.calls[1]


def test_reviewer_parses_rejection_with_feedback() -> None:
    backend = FakeBackend(
        'Review complete.\n{"approved": false, "feedback": "SQL injection in handler"}'
    )

    review = asyncio.run(ReviewerAgent(backend).review_code("code", "task", OPTIONS))

    assert review.approved is False
    assert review.feedback == "SQL injection in handler"
    _, user_prompt, _ = backend.calls[0]
    assert "Original Task: task" in user_prompt
    assert "Code Changes:\ncode" in user_prompt


def test_reviewer_accepts_string_booleans() -> None:
    review = ReviewerAgent.parse_review('{"approved": "False"}')

    assert review.approved is False
    assert review.feedback is None


def test_reviewer_skips_quoted_json_before_verdict() -> None:
    review = ReviewerAgent.parse_review(
        'The handler returns {"status": "ok"} on success.\n'
        '{"approved": false, "feedback": "missing auth check"}'
    )

    assert review.approved is False
    assert review.feedback == "missing auth check"


@pytest.mark.parametrize(
    "response",
    ["Looks good to me!", '{"feedback": "no verdict"}', '{"approved": "maybe"}', "[true]"],
)
def test_reviewer_falls_back_to_approval_when_unparseable(response: str) -> None:
    with pytest.raises(ReviewParseError):
        ReviewerAgent.parse_review(response)

    review = asyncio.run(ReviewerAgent(FakeBackend(response)).review_code("c", "t", OPTIONS))

    assert review.approved is True
    assert review.feedback == REVIEW_FALLBACK_FEEDBACK


def test_reviewer_propagates_backend_errors() -> None:
    reviewer = ReviewerAgent(FakeBackend(error=BackendExecutionError("network down")))

    with pytest.raises(BackendExecutionError, match="network down"):
        asyncio.run(reviewer.review_code("c", "t", OPTIONS))


def test_documenter_project_plan_and_architecture_docs() -> None:
    backend = FakeBackend("# Project Plan")
    documenter = DocumenterAgent(backend)

    plan = asyncio.run(documenter.project_plan("todo app", ["fastapi", "react"], OPTIONS))
    docs = asyncio.run(documenter.architecture_docs(["src/app.py", "src/db.py"], OPTIONS))

    assert plan == "# Project Plan"
    assert docs == "# Project Plan"
    plan_prompt = backend.calls[0][1]
    docs_prompt = backend.calls[1][1]
    assert "Description: todo app" in plan_prompt
    assert "Tech Stack: fastapi, react" in plan_prompt
    assert "File Structure" in plan_prompt
    assert "ARCHITECTURE.md" in docs_prompt
    assert "src/app.py\nsrc/db.py" in docs_prompt
