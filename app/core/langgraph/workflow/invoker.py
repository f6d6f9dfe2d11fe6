"""Worker Invoker: runs one worker call under a deadline.

Success, timeout and exceptions are all folded into a ``StepOutcome`` so a
slow or failing worker degrades to its fallback string instead of stalling
or crashing the run.
"""

import asyncio
import time
from typing import Optional

from app.core.config import settings
from app.core.langgraph.agents.workers import BaseWorker
from app.core.langgraph.workflow.schema import (
    NO_OUTPUT_PLACEHOLDER,
    OutcomeKind,
    StepOutcome,
)
from app.core.logging import logger
from app.core.metrics import worker_step_duration_seconds


class WorkerInvoker:
    """Races worker calls against a per-step deadline.

    Publishes no events and never touches a transcript; the Orchestrator
    decides what to do with the returned outcome.
    """

    def __init__(self, deadline: Optional[float] = None):
        """Initialize the invoker.

        Args:
            deadline: Default per-step deadline in seconds.
        """
        self.deadline = deadline if deadline is not None else settings.STEP_TIMEOUT_SECONDS

    async def invoke(self, worker: BaseWorker, context: str, deadline: Optional[float] = None) -> StepOutcome:
        """Execute a single worker call and normalize its result.

        Args:
            worker: The worker to run.
            context: Textual context handed to the worker.
            deadline: Seconds to wait before falling back; defaults to the invoker's deadline.

        Returns:
            StepOutcome: Success with the worker text, Timeout with the fallback
            string, or Failure with the error message and fallback string.
        """
        timeout = deadline if deadline is not None else self.deadline
        started = time.monotonic()
        task = asyncio.ensure_future(worker.run(context))

        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            self._abandon(task, worker)
            raise

        if not done:
            self._abandon(task, worker)
            outcome = StepOutcome(
                worker=worker.name,
                output=worker.fallback,
                elapsed=time.monotonic() - started,
                kind=OutcomeKind.TIMEOUT,
            )
            logger.warning(
                "worker_step_timed_out",
                worker=worker.name,
                deadline=timeout,
                elapsed=round(outcome.elapsed, 3),
            )
        else:
            try:
                text = task.result()
            except Exception as e:
                outcome = StepOutcome(
                    worker=worker.name,
                    output=f"[error] {e}. Using heuristic: {worker.fallback}",
                    elapsed=time.monotonic() - started,
                    kind=OutcomeKind.FAILURE,
                )
                logger.exception("worker_step_failed", worker=worker.name, error=str(e))
            else:
                outcome = StepOutcome(
                    worker=worker.name,
                    output=text if text else NO_OUTPUT_PLACEHOLDER,
                    elapsed=time.monotonic() - started,
                    kind=OutcomeKind.SUCCESS,
                )
                logger.info(
                    "worker_step_completed",
                    worker=worker.name,
                    elapsed=round(outcome.elapsed, 3),
                    output_length=len(outcome.output),
                )

        worker_step_duration_seconds.labels(worker=worker.name, outcome=outcome.kind.value).observe(outcome.elapsed)
        return outcome

    @staticmethod
    def _abandon(task: asyncio.Future, worker: BaseWorker) -> None:
        """Cancel a worker call whose outcome is no longer wanted.

        The task is not awaited; a late failure is retrieved by a done callback
        and logged.
        """

        def _reap(finished: asyncio.Future) -> None:
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.warning("abandoned_worker_step_failed", worker=worker.name, error=str(error))

        task.add_done_callback(_reap)
        task.cancel()
