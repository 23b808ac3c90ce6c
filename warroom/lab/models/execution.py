"""Executor boundary models.

An agent execution reports progress as a stream of ``ExecutorEvent`` values
and finishes with an ``ExecutionResult``.  These mirror what the executor
adapter produces; the orchestrator never looks inside an execution.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from warroom.lab.models.enums import AgentRole, ExecutionErrorCode

# -- Config ------------------------------------------------------------------


class AgentConfig(BaseModel):
    """Everything an executor needs to start one agent run."""

    role: AgentRole = AgentRole.PERSONA
    prompt: str
    persona_id: str
    persona_name: str
    persona_icon: str
    model: str | None = Field(default=None, description="Passed through; the adapter owns the fallback")
    read_only: bool = True


# -- Result ------------------------------------------------------------------


class ExecutionUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class ExecutionError(BaseModel):
    code: ExecutionErrorCode = ExecutionErrorCode.EXECUTION_ERROR
    message: str


class ExecutionResult(BaseModel):
    success: bool
    response: str | None = None
    usage: ExecutionUsage | None = None
    error: ExecutionError | None = None

    @classmethod
    def failure(cls, message: str, code: ExecutionErrorCode = ExecutionErrorCode.EXECUTION_ERROR) -> ExecutionResult:
        return cls(success=False, error=ExecutionError(code=code, message=message))


# -- Progress events ---------------------------------------------------------


class StatusEvent(BaseModel):
    type: Literal["status"] = "status"
    message: str


class TextDeltaEvent(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class ToolStartEvent(BaseModel):
    type: Literal["tool_start"] = "tool_start"
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    name: str | None = None


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    result: ExecutionResult


ExecutorEvent = Annotated[
    StatusEvent | TextDeltaEvent | ToolStartEvent | ToolResultEvent | ErrorEvent | CompleteEvent,
    Field(discriminator="type"),
]
