"""Schemas for the travel workflow endpoints."""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from app.core.langgraph.workflow.schema import (
    ProgressEvent,
    WorkflowTopology,
)


class WorkflowRunResponse(BaseModel):
    """Response model for a workflow run executed to completion.

    Attributes:
        topology: The topology the run used.
        result: The final aggregated transcript.
        events: Every progress event of the run, in emission order.
    """

    topology: WorkflowTopology
    result: Optional[str] = None
    events: List[ProgressEvent] = Field(default_factory=list)


class WorkerInfo(BaseModel):
    """A worker in the default roster."""

    name: str
    description: str


class WorkerListResponse(BaseModel):
    """Response model for listing workers."""

    workers: List[WorkerInfo]
    total: int
