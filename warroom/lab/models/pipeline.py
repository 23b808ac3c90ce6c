"""Pipeline, phase and agent-run records.

A ``Pipeline`` is persisted as one JSON document and overwritten wholesale
after every mutation.  Only ``PipelineRecorder`` mutates a running pipeline.
"""

from __future__ import annotations

import secrets
import time
import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from warroom.lab.models.enums import AgentRunStatus, PhaseStatus, PhaseType, PipelineStatus
from warroom.lab.models.lab import utcnow

PHASE_LABELS: dict[PhaseType, str] = {
    PhaseType.THINK: "Think — Parallel Briefs",
    PhaseType.BUILD: "Build — Implementation",
    PhaseType.REVIEW: "Review — Quality Check",
    PhaseType.ITERATE: "Iterate — Fix Issues",
    PhaseType.SYNTHESIZE: "Synthesize — Plan",
}


def new_pipeline_id() -> str:
    """``run-<epoch ms>-<8 hex>``: sorts by creation time."""
    return f"run-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


# -- Usage -------------------------------------------------------------------


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0


# -- Agent run ---------------------------------------------------------------


class AgentRun(BaseModel):
    """One persona's (or the builder's) contribution within a phase."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    persona_id: str
    persona_name: str
    persona_icon: str
    status: AgentRunStatus = AgentRunStatus.PENDING
    output: str | None = None
    token_usage: TokenUsage | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (AgentRunStatus.COMPLETED, AgentRunStatus.FAILED)


# -- Phase -------------------------------------------------------------------


class Phase(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: PhaseType
    label: str = ""
    status: PhaseStatus = PhaseStatus.PENDING
    agents: list[AgentRun] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def model_post_init(self, __context: object) -> None:
        if not self.label:
            self.label = PHASE_LABELS.get(self.type, self.type.value)

    def find_run(self, run_id: str) -> AgentRun:
        for run in self.agents:
            if run.id == run_id:
                return run
        msg = f"Agent run '{run_id}' not found in phase '{self.id}'"
        raise LookupError(msg)


# -- Pipeline ----------------------------------------------------------------


class Pipeline(BaseModel):
    """One end-to-end War Room execution for a single task prompt."""

    id: str = Field(default_factory=new_pipeline_id)
    project_id: str
    prompt: str
    status: PipelineStatus = PipelineStatus.PENDING
    phases: list[Phase] = Field(default_factory=list)
    iteration: int = 0
    max_iterations: int = Field(default=2, ge=0)
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
