"""Approval gate for Human-in-the-Loop workflow checkpoints.

Manages checkpoints that pause a workflow run until a human reviewer
approves or cancels it. Each checkpoint resolves exactly once: by an explicit
decision, or by the wait timing out, which approves automatically.
"""

import asyncio
import threading
import uuid
from datetime import (
    datetime,
    timezone,
)
from enum import Enum
from typing import (
    Dict,
    List,
    Optional,
    Tuple,
)

from pydantic import (
    BaseModel,
    Field,
)

from app.core.config import settings
from app.core.logging import logger
from app.core.metrics import (
    approval_checkpoints_open,
    approval_decisions_total,
)

AUTO_TIMEOUT_NOTE = "auto-timeout"


class ApprovalAction(str, Enum):
    """Decision a reviewer can take at a checkpoint."""

    APPROVE = "approve"
    CANCEL = "cancel"


class ApprovalStatus(str, Enum):
    """Lifecycle status of a checkpoint. Every status except PENDING is terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    AUTO_APPROVED = "auto_approved"


class ApprovalDecision(BaseModel):
    """A reviewer's decision for one checkpoint."""

    action: ApprovalAction
    note: Optional[str] = None


class ApprovalCheckpoint(BaseModel):
    """A pause point awaiting an external approval decision.

    Attributes:
        id: Unique identifier, used by clients to submit a decision.
        run_id: The workflow run that opened this checkpoint.
        phase: Label of the pipeline phase the run paused after.
        transcript_snapshot: Transcript text at the moment of pausing.
        status: Current status.
        decision: The decision, once resolved.
        created_at: When the checkpoint was opened.
        resolved_at: When the checkpoint reached a terminal status.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: Optional[str] = Field(default=None, description="Workflow run ID")
    phase: str = Field(..., description="Phase label, e.g. 'PolicyCompliance'")
    transcript_snapshot: str = Field(default="", description="Transcript at pause time")
    status: ApprovalStatus = Field(default=ApprovalStatus.PENDING)
    decision: Optional[ApprovalDecision] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = Field(default=None)


class ApprovalGate:
    """Registry of open approval checkpoints shared by all runs.

    Registry mutations are guarded by a lock so that ``open`` and ``resolve``
    are atomic with respect to each other, including when ``resolve`` is
    called from another thread. Entries are removed as soon as they resolve.
    """

    def __init__(self):
        """Initialize an empty gate."""
        self._lock = threading.Lock()
        self._checkpoints: Dict[str, ApprovalCheckpoint] = {}
        self._events: Dict[str, asyncio.Event] = {}
        self._waiter_loops: Dict[str, asyncio.AbstractEventLoop] = {}

    def open(
        self,
        phase: str,
        transcript_snapshot: str = "",
        run_id: Optional[str] = None,
    ) -> ApprovalCheckpoint:
        """Register a new unresolved checkpoint.

        Args:
            phase: Label of the phase the run paused after.
            transcript_snapshot: Transcript text at pause time.
            run_id: Optional id of the owning run.

        Returns:
            ApprovalCheckpoint: The registered checkpoint.
        """
        checkpoint = ApprovalCheckpoint(phase=phase, transcript_snapshot=transcript_snapshot, run_id=run_id)
        with self._lock:
            self._checkpoints[checkpoint.id] = checkpoint
            self._events[checkpoint.id] = asyncio.Event()
        approval_checkpoints_open.inc()

        logger.info(
            "approval_checkpoint_opened",
            checkpoint_id=checkpoint.id,
            run_id=run_id,
            phase=phase,
        )
        return checkpoint

    async def wait(self, checkpoint: ApprovalCheckpoint, timeout: Optional[float] = None) -> ApprovalDecision:
        """Suspend the calling run until the checkpoint is resolved.

        Only the calling coroutine is suspended; other runs keep executing.

        Args:
            checkpoint: A checkpoint returned by ``open``.
            timeout: Seconds to wait; defaults to ``settings.APPROVAL_TIMEOUT_SECONDS``.

        Returns:
            ApprovalDecision: The submitted decision, or ``approve`` with note
            ``auto-timeout`` when nobody decided in time.
        """
        timeout = timeout if timeout is not None else settings.APPROVAL_TIMEOUT_SECONDS

        with self._lock:
            event = self._events.get(checkpoint.id)
            if event is not None:
                self._waiter_loops[checkpoint.id] = asyncio.get_running_loop()

        if event is None:
            # Resolved before anyone waited on it
            return self._decision_of(checkpoint)

        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            decision = ApprovalDecision(action=ApprovalAction.APPROVE, note=AUTO_TIMEOUT_NOTE)
            if self._finalize(checkpoint.id, decision, ApprovalStatus.AUTO_APPROVED):
                logger.warning(
                    "approval_checkpoint_auto_approved",
                    checkpoint_id=checkpoint.id,
                    run_id=checkpoint.run_id,
                    timeout=timeout,
                )
                return decision
            # A resolve landed between the timeout firing and the registry update
            return self._decision_of(checkpoint)
        except asyncio.CancelledError:
            if self.discard(checkpoint.id):
                logger.info("approval_checkpoint_discarded", checkpoint_id=checkpoint.id, run_id=checkpoint.run_id)
            raise

        return self._decision_of(checkpoint)

    def resolve(self, checkpoint_id: str, decision: ApprovalDecision) -> bool:
        """Resolve an open checkpoint and wake its waiter.

        Args:
            checkpoint_id: The checkpoint id.
            decision: The reviewer's decision.

        Returns:
            bool: True if this call resolved the checkpoint; False if the id is
            unknown or already resolved.
        """
        status = ApprovalStatus.APPROVED if decision.action == ApprovalAction.APPROVE else ApprovalStatus.CANCELLED
        resolved = self._finalize(checkpoint_id, decision, status)

        if resolved:
            logger.info(
                "approval_checkpoint_resolved",
                checkpoint_id=checkpoint_id,
                action=decision.action.value,
                note=decision.note,
            )
        else:
            logger.warning("approval_checkpoint_not_found", checkpoint_id=checkpoint_id)
        return resolved

    def discard(self, checkpoint_id: str) -> bool:
        """Drop a checkpoint without a decision, e.g. when its run goes away."""
        with self._lock:
            checkpoint = self._checkpoints.pop(checkpoint_id, None)
            self._events.pop(checkpoint_id, None)
            self._waiter_loops.pop(checkpoint_id, None)
        if checkpoint is None:
            return False
        approval_checkpoints_open.dec()
        return True

    def get_checkpoint(self, checkpoint_id: str) -> Optional[ApprovalCheckpoint]:
        """Get an open checkpoint by id.

        Args:
            checkpoint_id: The checkpoint id.

        Returns:
            Optional[ApprovalCheckpoint]: The checkpoint if it is still open.
        """
        with self._lock:
            return self._checkpoints.get(checkpoint_id)

    def get_pending(self, run_id: Optional[str] = None) -> List[ApprovalCheckpoint]:
        """List open checkpoints, optionally filtered by run.

        Args:
            run_id: Optional run id to filter by.

        Returns:
            List[ApprovalCheckpoint]: Open checkpoints, oldest first.
        """
        with self._lock:
            pending = list(self._checkpoints.values())
        if run_id:
            pending = [c for c in pending if c.run_id == run_id]
        return sorted(pending, key=lambda c: c.created_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._checkpoints)

    # ─── Internals ────────────────────────────────────────────────

    def _finalize(self, checkpoint_id: str, decision: ApprovalDecision, status: ApprovalStatus) -> bool:
        """Atomically move a checkpoint to a terminal status and remove it."""
        with self._lock:
            checkpoint = self._checkpoints.pop(checkpoint_id, None)
            if checkpoint is None:
                return False
            event = self._events.pop(checkpoint_id, None)
            loop = self._waiter_loops.pop(checkpoint_id, None)
            checkpoint.status = status
            checkpoint.decision = decision
            checkpoint.resolved_at = datetime.now(timezone.utc)

        approval_checkpoints_open.dec()
        approval_decisions_total.labels(status=status.value).inc()

        if event is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(event.set)
        return True

    @staticmethod
    def _decision_of(checkpoint: ApprovalCheckpoint) -> ApprovalDecision:
        if checkpoint.decision is None:
            raise KeyError(f"Approval checkpoint '{checkpoint.id}' is no longer open and has no decision")
        return checkpoint.decision


# Global approval gate instance
approval_gate = ApprovalGate()
