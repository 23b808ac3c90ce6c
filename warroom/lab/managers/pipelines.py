"""Pipeline record operations.

Running a pipeline is ``warroom.lab.execution.run_pipeline``'s job; this
module only creates pending records and reads, lists and deletes stored ones.
"""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from warroom.lab.managers.projects import get_project
from warroom.lab.models.pipeline import Pipeline
from warroom.lab.store.base import LabStore


class PipelineNotFoundError(LookupError):
    """Raised when a pipeline is not found."""


async def create_pipeline(store: LabStore, project_id: str, prompt: str, *, max_iterations: int = 2) -> Pipeline:
    """Persist a new ``pending`` pipeline for an existing project.

    Raises ``ProjectNotFoundError`` if the project is missing and ``ValueError``
    for an empty prompt or a negative iteration budget.
    """
    await get_project(store, project_id)
    if not prompt.strip():
        raise ValueError("Pipeline prompt must not be empty")
    if max_iterations < 0:
        raise ValueError("max_iterations must be >= 0")

    pipeline = Pipeline(project_id=project_id, prompt=prompt, max_iterations=max_iterations)
    await store.write_pipeline(pipeline)
    logger.info("Created pipeline {} for project {}", pipeline.id, project_id)
    return pipeline


async def get_pipeline(store: LabStore, project_id: str, pipeline_id: str) -> Pipeline:
    """Raises ``PipelineNotFoundError`` if missing."""
    try:
        return await store.read_pipeline(project_id, pipeline_id)
    except FileNotFoundError:
        raise PipelineNotFoundError(pipeline_id) from None


async def list_pipelines(store: LabStore, project_id: str) -> list[Pipeline]:
    """A project's readable pipelines, newest first."""
    pipelines: list[Pipeline] = []
    for pipeline_id in await store.list_pipeline_ids(project_id):
        try:
            pipelines.append(await store.read_pipeline(project_id, pipeline_id))
        except (FileNotFoundError, ValidationError):
            logger.warning("Skipping unreadable pipeline {}/{}", project_id, pipeline_id)
    return sorted(pipelines, key=lambda p: p.created_at, reverse=True)


async def delete_pipeline(store: LabStore, project_id: str, pipeline_id: str) -> None:
    if not await store.delete_pipeline(project_id, pipeline_id):
        raise PipelineNotFoundError(pipeline_id)
    logger.info("Deleted pipeline {}/{}", project_id, pipeline_id)


async def delete_all_pipelines(store: LabStore, project_id: str) -> int:
    """Delete every pipeline of a project.  Returns the number deleted."""
    deleted = 0
    for pipeline_id in await store.list_pipeline_ids(project_id):
        if await store.delete_pipeline(project_id, pipeline_id):
            deleted += 1
    logger.info("Deleted {} pipelines of project {}", deleted, project_id)
    return deleted
