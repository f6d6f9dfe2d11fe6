"""Workflow orchestration engine for the travel approval workflow.

This package drives the travel workers through one of four topologies
(round-robin, sequential, concurrent, handoff), containing worker failures
and pausing at human approval checkpoints.

Key components:
- WorkerInvoker: runs one worker call under a deadline, degrading to a fallback
- ProgressEmitter: ordered per-run stream of progress events
- HandoffGraph: LangGraph StateGraph for the conditional handoff pipeline
- Orchestrator: topology selection, context threading and the run boundary
"""

from app.core.langgraph.workflow.emitter import (
    EmitterClosedError,
    ProgressEmitter,
)
from app.core.langgraph.workflow.errors import (
    OrchestratorFault,
    RosterError,
    TranscriptError,
)
from app.core.langgraph.workflow.graph import (
    HandoffGraph,
    is_policy_violation,
)
from app.core.langgraph.workflow.invoker import WorkerInvoker
from app.core.langgraph.workflow.orchestrator import (
    SEQUENTIAL_PIPELINE,
    Orchestrator,
)
from app.core.langgraph.workflow.schema import (
    EventKind,
    OutcomeKind,
    ProgressEvent,
    RunContext,
    StepOutcome,
    Transcript,
    TranscriptEntry,
    WorkflowTopology,
)

__all__ = [
    "EmitterClosedError",
    "EventKind",
    "HandoffGraph",
    "Orchestrator",
    "OrchestratorFault",
    "OutcomeKind",
    "ProgressEmitter",
    "ProgressEvent",
    "RosterError",
    "RunContext",
    "SEQUENTIAL_PIPELINE",
    "StepOutcome",
    "Transcript",
    "TranscriptEntry",
    "TranscriptError",
    "WorkerInvoker",
    "WorkflowTopology",
    "is_policy_violation",
]
