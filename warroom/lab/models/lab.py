"""Persona and project records.

Personas and projects are simple file-backed documents.  They are read once
when a pipeline starts; the pipeline works on its own snapshot.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from warroom.lab.models.enums import PipelineStatus, TemplateCategory


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


# -- Persona -----------------------------------------------------------------


class PersonaCreate(BaseModel):
    """Input for creating a persona (id and timestamps are generated)."""

    name: str
    role: str
    icon: str | None = None
    mindset: str
    knowledge: str
    evaluation_criteria: str
    model: str | None = Field(default=None, description="Executor-specific model identifier")


class Persona(BaseModel):
    """A distinct mindset on the team: how it thinks, what it knows, how it judges."""

    id: str
    name: str
    role: str
    icon: str = "🤖"
    mindset: str
    knowledge: str
    evaluation_criteria: str
    model: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PersonaTemplate(PersonaCreate):
    """Pre-built persona definition users can instantiate."""

    template_id: str
    category: TemplateCategory


# -- Project -----------------------------------------------------------------


class ProjectCreate(BaseModel):
    name: str
    description: str
    goals: list[str] = Field(default_factory=list)
    repository: str | None = None
    working_directory: str | None = None
    persona_ids: list[str] = Field(default_factory=list)


class Project(BaseModel):
    """Groups personas and pipelines around a shared goal."""

    id: str
    name: str
    description: str
    goals: list[str] = Field(default_factory=list)
    repository: str | None = None
    working_directory: str | None = None
    persona_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class LoadedProject(BaseModel):
    """A project with its personas resolved and pipeline history summarised."""

    project: Project
    personas: list[Persona] = Field(default_factory=list)
    pipeline_count: int = 0
    latest_pipeline_status: PipelineStatus | None = None
