"""Unit tests for persona, project and pipeline managers."""

from __future__ import annotations

import pytest

from warroom.lab.managers import generate_slug
from warroom.lab.managers.personas import (
    PersonaNotFoundError,
    create_from_template,
    create_persona,
    delete_persona,
    get_persona,
    list_personas,
    resolve_personas,
    save_persona,
)
from warroom.lab.managers.pipelines import (
    PipelineNotFoundError,
    create_pipeline,
    delete_all_pipelines,
    delete_pipeline,
    get_pipeline,
    list_pipelines,
)
from warroom.lab.managers.projects import (
    ProjectNotFoundError,
    create_project,
    delete_project,
    get_project,
    list_projects,
    load_project,
    save_project,
)
from warroom.lab.models import PersonaCreate, PipelineStatus, ProjectCreate
from warroom.lab.templates import UnknownTemplateError


def _persona_body(name: str = "Security Reviewer") -> PersonaCreate:
    return PersonaCreate(
        name=name,
        role="Finds vulnerabilities",
        mindset="Assume breach.",
        knowledge="OWASP",
        evaluation_criteria="- No injection",
    )


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("name", "existing", "expected"),
    [
        ("Security Reviewer", [], "security-reviewer"),
        ("  Ünïcode & Stuff!! ", [], "n-code-stuff"),
        ("!!!", [], "untitled"),
        ("QA", ["qa"], "qa-1"),
        ("QA", ["qa", "qa-1", "qa-2"], "qa-3"),
    ],
)
def test_generate_slug(name, existing, expected) -> None:
    assert generate_slug(name, existing) == expected


# ---------------------------------------------------------------------------
# Personas
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_create_persona_defaults_icon_and_dedupes_id(store) -> None:
    first = await create_persona(store, _persona_body())
    second = await create_persona(store, _persona_body())

    assert first.id == "security-reviewer"
    assert second.id == "security-reviewer-1"
    assert first.icon == "🤖"
    assert await get_persona(store, first.id) == first


@pytest.mark.anyio
async def test_persona_crud(store) -> None:
    zed = await create_persona(store, _persona_body("Zed"))
    await create_persona(store, _persona_body("amy"))

    assert [p.name for p in await list_personas(store)] == ["amy", "Zed"]

    zed.role = "Changed"
    before = zed.updated_at
    await save_persona(store, zed)
    reloaded = await get_persona(store, zed.id)
    assert reloaded.role == "Changed"
    assert reloaded.updated_at >= before

    await delete_persona(store, zed.id)
    with pytest.raises(PersonaNotFoundError):
        await get_persona(store, zed.id)
    with pytest.raises(PersonaNotFoundError):
        await delete_persona(store, zed.id)


@pytest.mark.anyio
async def test_list_personas_skips_corrupt_files(store) -> None:
    await create_persona(store, _persona_body())
    broken = store.root / "personas" / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert [p.id for p in await list_personas(store)] == ["security-reviewer"]


@pytest.mark.anyio
async def test_resolve_personas_keeps_order_and_drops_missing(store) -> None:
    a = await create_persona(store, _persona_body("A"))
    b = await create_persona(store, _persona_body("B"))

    resolved = await resolve_personas(store, [b.id, "gone", a.id])
    assert [p.id for p in resolved] == [b.id, a.id]


@pytest.mark.anyio
async def test_create_from_template(store) -> None:
    persona = await create_from_template(store, "qa-engineer")

    assert persona.id == "qa-engineer"
    assert persona.name == "QA Engineer"
    assert persona.icon == "🔍"
    assert persona.model is None

    with pytest.raises(UnknownTemplateError):
        await create_from_template(store, "astronaut")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_project_crud(store) -> None:
    older = await create_project(store, ProjectCreate(name="Todo App", description="todos"))
    newer = await create_project(store, ProjectCreate(name="Chat", description="chat"))

    assert older.id == "todo-app"
    assert [p.id for p in await list_projects(store)] == [newer.id, older.id]

    await save_project(store, older)
    assert [p.id for p in await list_projects(store)] == [older.id, newer.id]

    await delete_project(store, older.id)
    with pytest.raises(ProjectNotFoundError):
        await get_project(store, older.id)
    with pytest.raises(ProjectNotFoundError):
        await delete_project(store, older.id)


@pytest.mark.anyio
async def test_load_project_resolves_personas_and_history(store) -> None:
    persona = await create_persona(store, _persona_body())
    project = await create_project(
        store, ProjectCreate(name="Todo App", description="todos", persona_ids=[persona.id, "deleted"])
    )

    loaded = await load_project(store, project.id)
    assert [p.id for p in loaded.personas] == [persona.id]
    assert loaded.pipeline_count == 0
    assert loaded.latest_pipeline_status is None

    latest = await create_pipeline(store, project.id, "first")
    latest.status = PipelineStatus.THINKING
    await store.write_pipeline(latest)

    loaded = await load_project(store, project.id)
    assert loaded.pipeline_count == 1
    assert loaded.latest_pipeline_status == PipelineStatus.THINKING


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_create_pipeline_validates_input(store) -> None:
    project = await create_project(store, ProjectCreate(name="Todo App", description="todos"))

    with pytest.raises(ProjectNotFoundError):
        await create_pipeline(store, "missing", "prompt")
    with pytest.raises(ValueError, match="empty"):
        await create_pipeline(store, project.id, "   ")
    with pytest.raises(ValueError, match="max_iterations"):
        await create_pipeline(store, project.id, "prompt", max_iterations=-1)

    pipeline = await create_pipeline(store, project.id, "Add due dates", max_iterations=3)
    assert pipeline.status == PipelineStatus.PENDING
    assert pipeline.max_iterations == 3
    assert pipeline.id.startswith("run-")
    assert await get_pipeline(store, project.id, pipeline.id) == pipeline


@pytest.mark.anyio
async def test_pipeline_listing_and_deletion(store) -> None:
    project = await create_project(store, ProjectCreate(name="Todo App", description="todos"))
    first = await create_pipeline(store, project.id, "one")
    second = await create_pipeline(store, project.id, "two")
    third = await create_pipeline(store, project.id, "three")

    assert [p.id for p in await list_pipelines(store, project.id)] == [third.id, second.id, first.id]

    await delete_pipeline(store, project.id, first.id)
    with pytest.raises(PipelineNotFoundError):
        await get_pipeline(store, project.id, first.id)
    with pytest.raises(PipelineNotFoundError):
        await delete_pipeline(store, project.id, first.id)

    assert await delete_all_pipelines(store, project.id) == 2
    assert await list_pipelines(store, project.id) == []
