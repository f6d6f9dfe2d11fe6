"""Human-in-the-Loop (HITL) module for approval checkpoints.

Provides the approval gate that pauses a workflow run until a reviewer
approves or cancels it, with a bounded wait.
"""

from app.core.langgraph.hitl.manager import (
    AUTO_TIMEOUT_NOTE,
    ApprovalAction,
    ApprovalCheckpoint,
    ApprovalDecision,
    ApprovalGate,
    ApprovalStatus,
    approval_gate,
)

__all__ = [
    "AUTO_TIMEOUT_NOTE",
    "ApprovalAction",
    "ApprovalCheckpoint",
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalStatus",
    "approval_gate",
]
