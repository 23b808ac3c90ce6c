"""Tests for the warroom CLI."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from tests.lab.helpers import FakeExecutor, fail, reply
from warroom.cli import main
from warroom.lab.settings import _get_settings_cached

EXECUTOR = FakeExecutor(lambda c: reply("**Rating:** PASS"))
FAILING_EXECUTOR = FakeExecutor(lambda c: fail("no credits"))


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.delenv("WARROOM_EXECUTOR", raising=False)
    monkeypatch.setattr("warroom.lab.log.setup_logging", lambda level: None)
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()

    def _invoke(*args: str, **kwargs):
        return runner.invoke(main, ["--data-root", str(tmp_path), *args], **kwargs)

    return _invoke


def _events(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def project_id(invoke) -> str:
    persona = invoke("personas", "add-template", "qa-engineer")
    assert persona.exit_code == 0, persona.output
    created = invoke("projects", "create", "Todo App", "--description", "todos", "--persona", "qa-engineer")
    assert created.exit_code == 0, created.output
    return created.output.strip().splitlines()[-1]


def test_templates_are_listed(invoke) -> None:
    result = invoke("personas", "templates")

    assert result.exit_code == 0
    assert "qa-engineer" in result.output
    assert "[engineering] Software Architect" in result.output


def test_unknown_template_is_an_error(invoke) -> None:
    result = invoke("personas", "add-template", "astronaut")

    assert result.exit_code == 1
    assert "UnknownTemplateError" in result.output


def test_project_lifecycle(invoke, project_id) -> None:
    assert project_id == "todo-app"

    listed = invoke("personas", "list")
    assert "qa-engineer\tQA Engineer" in listed.output

    projects = invoke("projects", "list")
    assert "todo-app\tTodo App (1 personas)" in projects.output

    shown = json.loads(invoke("projects", "show", "todo-app").output)
    assert shown["project"]["name"] == "Todo App"
    assert [p["id"] for p in shown["personas"]] == ["qa-engineer"]
    assert shown["pipeline_count"] == 0


def test_project_with_unknown_persona_is_rejected(invoke) -> None:
    result = invoke("projects", "create", "Todo App", "--persona", "ghost")

    assert result.exit_code == 1
    assert "PersonaNotFoundError" in result.output
    assert "todo-app" not in invoke("projects", "list").output


def test_show_missing_project(invoke) -> None:
    result = invoke("projects", "show", "missing")

    assert result.exit_code == 1
    assert "ProjectNotFoundError" in result.output


def test_run_prints_events_and_persists(invoke, project_id) -> None:
    result = invoke("run", project_id, "Add due dates", "--executor", "tests.lab.test_cli:EXECUTOR")

    assert result.exit_code == 0, result.output
    events = _events(result.output)
    assert events[0]["type"] == "pipeline_started"
    assert events[-1]["type"] == "pipeline_completed"
    assert events[-1]["status"] == "completed"
    pipeline_id = events[0]["pipelineId"]

    listed = invoke("pipelines", "list", project_id)
    assert f"{pipeline_id}\tcompleted\tAdd due dates" in listed.output

    shown = json.loads(invoke("pipelines", "show", project_id, pipeline_id).output)
    assert [p["type"] for p in shown["phases"]] == ["think", "build", "review"]

    cleared = invoke("pipelines", "clear", project_id, "--yes")
    assert "Deleted 1 pipelines." in cleared.output
    assert invoke("pipelines", "show", project_id, pipeline_id).exit_code == 1


def test_failed_run_exits_non_zero(invoke, project_id) -> None:
    result = invoke("run", project_id, "Add due dates", "--executor", "tests.lab.test_cli:FAILING_EXECUTOR")

    assert result.exit_code == 1
    assert _events(result.output)[-1]["type"] == "pipeline_error"


def test_run_requires_an_executor(invoke, project_id) -> None:
    result = invoke("run", project_id, "Add due dates")

    assert result.exit_code == 2
    assert "No executor configured" in result.output


def test_delete_single_pipeline(invoke, project_id) -> None:
    run = invoke("run", project_id, "x", "--max-iterations", "0", "--executor", "tests.lab.test_cli:EXECUTOR")
    pipeline_id = _events(run.output)[0]["pipelineId"]

    assert invoke("pipelines", "delete", project_id, pipeline_id).exit_code == 0
    assert invoke("pipelines", "delete", project_id, pipeline_id).exit_code == 1
