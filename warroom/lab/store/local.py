"""Local filesystem lab store.

Stores lab records as JSON files under a data root with optional namespace
prefix::

    {data_root}/{prefix}/lab/personas/{persona_id}.json
    {data_root}/{prefix}/lab/projects/{project_id}/project.json
    {data_root}/{prefix}/lab/projects/{project_id}/pipelines/{pipeline_id}.json

When prefix is None, the path collapses to ``{data_root}/lab/...``.

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  A crash mid-write leaves the previous
document in place, so a reader always sees the last complete snapshot.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread
from pydantic import BaseModel

from warroom.lab.models.lab import Persona, Project
from warroom.lab.models.pipeline import Pipeline


class LocalLabStore:
    """Local filesystem implementation of the LabStore protocol."""

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "lab"

    @property
    def root(self) -> Path:
        return self._base

    def _persona_path(self, persona_id: str) -> Path:
        return self._base / "personas" / f"{persona_id}.json"

    def _project_dir(self, project_id: str) -> Path:
        return self._base / "projects" / project_id

    def _pipelines_dir(self, project_id: str) -> Path:
        return self._project_dir(project_id) / "pipelines"

    def _pipeline_path(self, project_id: str, pipeline_id: str) -> Path:
        return self._pipelines_dir(project_id) / f"{pipeline_id}.json"

    # -- Personas --------------------------------------------------------------

    async def write_persona(self, persona: Persona) -> None:
        await _write_model(self._persona_path(persona.id), persona)

    async def read_persona(self, persona_id: str) -> Persona:
        raw = await to_thread.run_sync(partial(_read_file, self._persona_path(persona_id)))
        return Persona.model_validate_json(raw)

    async def list_persona_ids(self) -> list[str]:
        return await to_thread.run_sync(partial(_list_stems, self._base / "personas"))

    async def delete_persona(self, persona_id: str) -> bool:
        return await to_thread.run_sync(partial(_unlink, self._persona_path(persona_id)))

    # -- Projects --------------------------------------------------------------

    async def write_project(self, project: Project) -> None:
        await _write_model(self._project_dir(project.id) / "project.json", project)

    async def read_project(self, project_id: str) -> Project:
        raw = await to_thread.run_sync(partial(_read_file, self._project_dir(project_id) / "project.json"))
        return Project.model_validate_json(raw)

    async def list_project_ids(self) -> list[str]:
        return await to_thread.run_sync(partial(_list_dirs, self._base / "projects"))

    async def delete_project(self, project_id: str) -> bool:
        return await to_thread.run_sync(partial(_rmtree, self._project_dir(project_id)))

    # -- Pipelines -------------------------------------------------------------

    async def write_pipeline(self, pipeline: Pipeline) -> None:
        await _write_model(self._pipeline_path(pipeline.project_id, pipeline.id), pipeline)

    async def read_pipeline(self, project_id: str, pipeline_id: str) -> Pipeline:
        raw = await to_thread.run_sync(partial(_read_file, self._pipeline_path(project_id, pipeline_id)))
        return Pipeline.model_validate_json(raw)

    async def list_pipeline_ids(self, project_id: str) -> list[str]:
        return await to_thread.run_sync(partial(_list_stems, self._pipelines_dir(project_id)))

    async def delete_pipeline(self, project_id: str, pipeline_id: str) -> bool:
        return await to_thread.run_sync(partial(_unlink, self._pipeline_path(project_id, pipeline_id)))


# -- Sync helpers (run in thread pool) -----------------------------------------


async def _write_model(path: Path, model: BaseModel) -> None:
    # Serialize on the event loop so the snapshot reflects the caller's state
    # at the time of the call, not whatever it is when the thread runs.
    data = model.model_dump_json(indent=2)
    await to_thread.run_sync(partial(_atomic_write, path, data))


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    The temp file is created in the same directory so ``os.replace`` is
    atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")


def _list_stems(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.json"))


def _list_dirs(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_dir())


def _unlink(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def _rmtree(path: Path) -> bool:
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True
