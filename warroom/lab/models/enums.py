"""Shared enumerations used across the lab."""

from __future__ import annotations

from enum import StrEnum

# -- Pipeline ----------------------------------------------------------------


class PipelineStatus(StrEnum):
    """Durable pipeline status persisted with the pipeline record."""

    PENDING = "pending"
    THINKING = "thinking"
    SYNTHESIZING = "synthesizing"  # reserved, never entered by the state machine
    BUILDING = "building"
    REVIEWING = "reviewing"
    ITERATING = "iterating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_PIPELINE


_TERMINAL_PIPELINE = frozenset({PipelineStatus.COMPLETED, PipelineStatus.FAILED, PipelineStatus.CANCELLED})


# -- Phase -------------------------------------------------------------------


class PhaseType(StrEnum):
    THINK = "think"
    SYNTHESIZE = "synthesize"
    BUILD = "build"
    REVIEW = "review"
    ITERATE = "iterate"

    @property
    def is_parallel(self) -> bool:
        """Think and review fan out over every persona; the rest run one agent."""
        return self in (PhaseType.THINK, PhaseType.REVIEW)


class PhaseStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# -- Agent run ---------------------------------------------------------------


class AgentRunStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentRole(StrEnum):
    """Who an agent run acts as."""

    PERSONA = "persona"
    BUILDER = "builder"


# -- Executor ----------------------------------------------------------------


class ExecutionErrorCode(StrEnum):
    EXECUTION_ERROR = "execution_error"
    UNRESPONSIVE = "unresponsive"
    STREAM_ENDED = "stream_ended"
    CANCELLED = "cancelled"


# -- Templates ---------------------------------------------------------------


class TemplateCategory(StrEnum):
    PRODUCT = "product"
    DESIGN = "design"
    ENGINEERING = "engineering"
    QUALITY = "quality"
    RESEARCH = "research"
