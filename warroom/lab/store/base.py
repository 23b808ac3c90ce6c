"""Lab store interface.

The lab store persists three kinds of small JSON documents: personas,
projects, and pipelines.  Pipelines are overwritten wholesale after every
mutation while they run, so ``write_pipeline`` must never expose a partially
written document to a concurrent reader.  The interface is async so a remote
backend can slot in without touching the orchestrator.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from warroom.lab.models.lab import Persona, Project
from warroom.lab.models.pipeline import Pipeline


@runtime_checkable
class LabStore(Protocol):
    """Async protocol for reading and writing lab records.

    Storage layout::

        {root}/lab/personas/{persona_id}.json
        {root}/lab/projects/{project_id}/project.json
        {root}/lab/projects/{project_id}/pipelines/{pipeline_id}.json
    """

    # -- Personas --------------------------------------------------------------

    async def write_persona(self, persona: Persona) -> None: ...

    async def read_persona(self, persona_id: str) -> Persona:
        """Raises ``FileNotFoundError`` if not found."""
        ...

    async def list_persona_ids(self) -> list[str]: ...

    async def delete_persona(self, persona_id: str) -> bool:
        """Return ``False`` if the persona did not exist."""
        ...

    # -- Projects --------------------------------------------------------------

    async def write_project(self, project: Project) -> None: ...

    async def read_project(self, project_id: str) -> Project:
        """Raises ``FileNotFoundError`` if not found."""
        ...

    async def list_project_ids(self) -> list[str]: ...

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project and all its pipelines.  ``False`` if missing."""
        ...

    # -- Pipelines -------------------------------------------------------------

    async def write_pipeline(self, pipeline: Pipeline) -> None:
        """Overwrite the whole pipeline document (keyed by project and pipeline id)."""
        ...

    async def read_pipeline(self, project_id: str, pipeline_id: str) -> Pipeline:
        """Raises ``FileNotFoundError`` if not found."""
        ...

    async def list_pipeline_ids(self, project_id: str) -> list[str]:
        """Pipeline ids sorted ascending (creation order)."""
        ...

    async def delete_pipeline(self, project_id: str, pipeline_id: str) -> bool: ...
