"""This file contains the schemas for the application."""

from app.schemas.approval import (
    ApprovalActionRequest,
    ApprovalActionResponse,
    ApprovalCheckpointResponse,
    ApprovalListResponse,
)
from app.schemas.workflow import (
    WorkerInfo,
    WorkerListResponse,
    WorkflowRunResponse,
)

__all__ = [
    "ApprovalActionRequest",
    "ApprovalActionResponse",
    "ApprovalCheckpointResponse",
    "ApprovalListResponse",
    "WorkerInfo",
    "WorkerListResponse",
    "WorkflowRunResponse",
]
