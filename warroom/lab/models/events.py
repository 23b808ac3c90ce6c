"""Pipeline event models.

``PipelineEvent`` is a tagged union discriminated on ``type``.  Events are
ephemeral projections of pipeline mutations for live observers; they are
never persisted.  The wire form is camelCase JSON with unset fields omitted::

    {"type": "phase_started", "pipelineId": "run-...", "phaseId": "...", "phaseType": "think", "phaseIndex": 0}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from warroom.lab.models.enums import PipelineStatus
from warroom.lab.models.pipeline import TokenUsage


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    pipeline_id: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EventUsage(BaseModel):
    """Token usage as carried on the wire; built from a recorded ``TokenUsage``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0

    @classmethod
    def from_usage(cls, usage: TokenUsage | None) -> EventUsage | None:
        if usage is None:
            return None
        return cls.model_validate(usage.model_dump())


class PipelineStarted(_Event):
    type: Literal["pipeline_started"] = "pipeline_started"


class PhaseStarted(_Event):
    type: Literal["phase_started"] = "phase_started"
    phase_id: str
    phase_type: str
    phase_index: int


class AgentStarted(_Event):
    type: Literal["agent_started"] = "agent_started"
    phase_index: int
    agent_run_id: str
    persona_id: str
    persona_name: str
    persona_icon: str


class AgentProgress(_Event):
    type: Literal["agent_progress"] = "agent_progress"
    phase_index: int
    agent_run_id: str
    persona_id: str
    text: str
    active_tool: str | None = None
    tool_call_count: int | None = None


class AgentCompleted(_Event):
    type: Literal["agent_completed"] = "agent_completed"
    phase_index: int
    agent_run_id: str
    persona_id: str
    output: str
    token_usage: EventUsage | None = None


class AgentFailed(_Event):
    type: Literal["agent_failed"] = "agent_failed"
    phase_index: int
    agent_run_id: str
    persona_id: str
    error: str


class PhaseCompleted(_Event):
    type: Literal["phase_completed"] = "phase_completed"
    phase_index: int
    phase_type: str


class PipelineCompleted(_Event):
    type: Literal["pipeline_completed"] = "pipeline_completed"
    status: PipelineStatus
    total_cost_usd: float | None = None
    total_tokens: int | None = None


class PipelineError(_Event):
    type: Literal["pipeline_error"] = "pipeline_error"
    error: str


class PipelineCancelled(_Event):
    """Same shape as ``PipelineError``; distinguished by ``type`` only."""

    type: Literal["pipeline_cancelled"] = "pipeline_cancelled"
    error: str


PipelineEvent = Annotated[
    PipelineStarted
    | PhaseStarted
    | AgentStarted
    | AgentProgress
    | AgentCompleted
    | AgentFailed
    | PhaseCompleted
    | PipelineCompleted
    | PipelineError
    | PipelineCancelled,
    Field(discriminator="type"),
]

PipelineEventAdapter: TypeAdapter[PipelineEvent] = TypeAdapter(PipelineEvent)

TERMINAL_EVENT_TYPES = frozenset({"pipeline_completed", "pipeline_error", "pipeline_cancelled"})


def parse_event(data: dict[str, Any]) -> PipelineEvent:
    """Parse a wire-format (camelCase) event back into its variant."""
    return PipelineEventAdapter.validate_python(data)
