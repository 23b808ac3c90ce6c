"""Pipeline execution: state machine, phase coordination, streaming and events."""

from warroom.lab.execution.adapter import AgentExecution, AgentExecutor, load_executor
from warroom.lab.execution.emitter import BufferedEventSink, EventCallback, EventEmitter
from warroom.lab.execution.pipeline import PipelineStateMachine, run_pipeline
from warroom.lab.execution.recorder import InvalidTransitionError, PipelineRecorder

__all__ = [
    "AgentExecution",
    "AgentExecutor",
    "BufferedEventSink",
    "EventCallback",
    "EventEmitter",
    "InvalidTransitionError",
    "PipelineRecorder",
    "PipelineStateMachine",
    "load_executor",
    "run_pipeline",
]
