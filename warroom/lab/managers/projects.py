"""Project CRUD operations.

A project groups the personas that staff its pipelines.  ``load_project``
returns the project with its personas resolved and a summary of its
pipeline history.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from warroom.lab.managers import generate_slug
from warroom.lab.managers.personas import resolve_personas
from warroom.lab.models.lab import LoadedProject, Project, ProjectCreate, utcnow
from warroom.lab.store.base import LabStore


class ProjectNotFoundError(LookupError):
    """Raised when a project is not found."""


async def create_project(store: LabStore, body: ProjectCreate) -> Project:
    project_id = generate_slug(body.name, await store.list_project_ids())
    project = Project(id=project_id, **body.model_dump())
    await store.write_project(project)
    logger.info("Created project {!r} ({})", project.name, project_id)
    return project


async def get_project(store: LabStore, project_id: str) -> Project:
    """Get a project by ID.  Raises ``ProjectNotFoundError`` if missing."""
    try:
        return await store.read_project(project_id)
    except FileNotFoundError:
        raise ProjectNotFoundError(project_id) from None


async def list_projects(store: LabStore) -> list[Project]:
    """All readable projects, most recently updated first."""
    projects: list[Project] = []
    for project_id in await store.list_project_ids():
        try:
            projects.append(await store.read_project(project_id))
        except (FileNotFoundError, ValidationError):
            logger.warning("Skipping unreadable project {}", project_id)
    return sorted(projects, key=lambda p: p.updated_at, reverse=True)


async def save_project(store: LabStore, project: Project) -> Project:
    project.updated_at = utcnow()
    await store.write_project(project)
    return project


async def delete_project(store: LabStore, project_id: str) -> None:
    """Delete a project and all of its pipelines."""
    if not await store.delete_project(project_id):
        raise ProjectNotFoundError(project_id)
    logger.info("Deleted project {}", project_id)


async def load_project(store: LabStore, project_id: str) -> LoadedProject:
    project = await get_project(store, project_id)
    personas = await resolve_personas(store, project.persona_ids)
    pipeline_ids = await store.list_pipeline_ids(project_id)

    latest_status = None
    if pipeline_ids:
        # Pipeline ids sort by creation time.
        try:
            latest = await store.read_pipeline(project_id, pipeline_ids[-1])
            latest_status = latest.status
        except (FileNotFoundError, ValidationError):
            logger.warning("Latest pipeline {} of project {} is unreadable", pipeline_ids[-1], project_id)

    return LoadedProject(
        project=project,
        personas=personas,
        pipeline_count=len(pipeline_ids),
        latest_pipeline_status=latest_status,
    )
