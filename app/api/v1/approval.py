"""Approval API endpoints for Human-in-the-Loop workflows.

Provides endpoints for listing open approval checkpoints and for submitting
the decision that resumes or cancels a paused run.
"""

from typing import Optional

from fastapi import (
    APIRouter,
    HTTPException,
    Query,
    Request,
)

from app.core.config import settings
from app.core.langgraph.hitl import (
    ApprovalDecision,
    approval_gate,
)
from app.core.limiter import limiter
from app.core.logging import logger
from app.schemas.approval import (
    ApprovalActionRequest,
    ApprovalActionResponse,
    ApprovalCheckpointResponse,
    ApprovalListResponse,
)

router = APIRouter()


@router.get("/pending", response_model=ApprovalListResponse)
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["approvals"][0])
async def list_pending_approvals(
    request: Request,
    run_id: Optional[str] = Query(default=None, description="Only checkpoints of this run"),
):
    """List open approval checkpoints.

    Args:
        request: The FastAPI request object for rate limiting.
        run_id: Optional run id filter.

    Returns:
        ApprovalListResponse: Open checkpoints, oldest first.
    """
    pending = approval_gate.get_pending(run_id=run_id)
    return ApprovalListResponse(
        checkpoints=[ApprovalCheckpointResponse(**c.model_dump()) for c in pending],
        total=len(pending),
    )


@router.post("/{checkpoint_id}", response_model=ApprovalActionResponse)
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["approvals"][0])
async def submit_decision(
    request: Request,
    checkpoint_id: str,
    body: ApprovalActionRequest,
):
    """Approve or cancel a paused workflow run.

    Args:
        request: The FastAPI request object for rate limiting.
        checkpoint_id: Id carried by the run's ``awaiting_input`` event.
        body: The decision and an optional note.

    Returns:
        ApprovalActionResponse: Confirmation that the decision was accepted.
    """
    accepted = approval_gate.resolve(checkpoint_id, ApprovalDecision(action=body.action, note=body.note))
    if not accepted:
        raise HTTPException(status_code=404, detail="Approval checkpoint not found or already resolved")

    logger.info(
        "approval_decision_submitted_via_api",
        checkpoint_id=checkpoint_id,
        action=body.action.value,
    )
    return ApprovalActionResponse(checkpoint_id=checkpoint_id, accepted=True)
