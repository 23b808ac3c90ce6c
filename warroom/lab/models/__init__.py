"""Data models for the lab."""

from warroom.lab.models.enums import (
    AgentRole,
    AgentRunStatus,
    ExecutionErrorCode,
    PhaseStatus,
    PhaseType,
    PipelineStatus,
    TemplateCategory,
)
from warroom.lab.models.events import (
    AgentCompleted,
    AgentFailed,
    AgentProgress,
    AgentStarted,
    EventUsage,
    PhaseCompleted,
    PhaseStarted,
    PipelineCancelled,
    PipelineCompleted,
    PipelineError,
    PipelineEvent,
    PipelineStarted,
    parse_event,
)
from warroom.lab.models.execution import (
    AgentConfig,
    CompleteEvent,
    ErrorEvent,
    ExecutionError,
    ExecutionResult,
    ExecutionUsage,
    ExecutorEvent,
    StatusEvent,
    TextDeltaEvent,
    ToolResultEvent,
    ToolStartEvent,
)
from warroom.lab.models.lab import (
    LoadedProject,
    Persona,
    PersonaCreate,
    PersonaTemplate,
    Project,
    ProjectCreate,
)
from warroom.lab.models.pipeline import PHASE_LABELS, AgentRun, Phase, Pipeline, TokenUsage

__all__ = [
    "PHASE_LABELS",
    "AgentCompleted",
    "AgentConfig",
    "AgentFailed",
    "AgentProgress",
    "AgentRole",
    "AgentRun",
    "AgentRunStatus",
    "AgentStarted",
    "CompleteEvent",
    "ErrorEvent",
    "EventUsage",
    "ExecutionError",
    "ExecutionErrorCode",
    "ExecutionResult",
    "ExecutionUsage",
    "ExecutorEvent",
    "LoadedProject",
    "Persona",
    "PersonaCreate",
    "PersonaTemplate",
    "Phase",
    "PhaseCompleted",
    "PhaseStarted",
    "PhaseStatus",
    "PhaseType",
    "Pipeline",
    "PipelineCancelled",
    "PipelineCompleted",
    "PipelineError",
    "PipelineEvent",
    "PipelineStarted",
    "PipelineStatus",
    "Project",
    "ProjectCreate",
    "StatusEvent",
    "TemplateCategory",
    "TextDeltaEvent",
    "TokenUsage",
    "ToolResultEvent",
    "ToolStartEvent",
    "parse_event",
]
