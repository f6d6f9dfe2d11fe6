"""Schemas for Human-in-the-Loop approval endpoints."""

from datetime import datetime
from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from app.core.langgraph.hitl import (
    ApprovalAction,
    ApprovalStatus,
)


class ApprovalActionRequest(BaseModel):
    """Request body for resolving an approval checkpoint."""

    action: ApprovalAction = Field(..., description="'approve' to resume the run, 'cancel' to stop it")
    note: Optional[str] = Field(default=None, max_length=1000, description="Optional reviewer note")


class ApprovalActionResponse(BaseModel):
    """Response model for a submitted decision."""

    checkpoint_id: str
    accepted: bool = True


class ApprovalCheckpointResponse(BaseModel):
    """Response model for a single open checkpoint."""

    id: str
    run_id: Optional[str] = None
    phase: str
    transcript_snapshot: str = ""
    status: ApprovalStatus
    created_at: datetime


class ApprovalListResponse(BaseModel):
    """Response model for listing open checkpoints."""

    checkpoints: List[ApprovalCheckpointResponse]
    total: int
