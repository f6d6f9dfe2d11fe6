"""Exceptions raised by the workflow orchestration engine.

Worker timeouts and failures are not exceptions at this level: the invoker
turns them into degraded step outcomes. What remains here are faults of the
orchestrator itself, which end a run with an ``error`` event.
"""

from typing import Optional


class OrchestratorFault(Exception):
    """Unhandled fault during context assembly or topology logic."""

    def __init__(self, message: str, run_id: Optional[str] = None, **context):
        """Initialize the fault with optional run correlation.

        Args:
            message: Error message.
            run_id: Id of the run where the fault occurred.
            **context: Additional context information.
        """
        super().__init__(message)
        self.run_id = run_id
        self.context = context


class TranscriptError(OrchestratorFault):
    """Attempt to write the transcript out of order."""


class RosterError(OrchestratorFault):
    """A topology needs a worker that the run's roster does not contain."""
