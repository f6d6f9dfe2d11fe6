"""Workflow Orchestrator: drives the travel workers through one of four topologies.

Topologies:
- Round-Robin: every worker takes a turn on the shared transcript, for a fixed number of rounds
- Sequential: fixed Research → Policy → Budget → Optimize → Book pipeline
- Concurrent: all workers fan out at once; results are folded in completion order
- Handoff: conditional pipeline branching on the policy verdict (see ``graph.py``)

Sequential and Handoff can pause at an approval checkpoint after the policy
step. Every run publishes its progress to a ``ProgressEmitter`` and ends with
exactly one ``complete`` or ``error`` event.
"""

import asyncio
import time
from datetime import (
    datetime,
    timezone,
)
from typing import (
    AsyncGenerator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Union,
)

from app.core.config import settings
from app.core.langgraph.agents.workers import (
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
    BaseWorker,
    build_roster,
)
from app.core.langgraph.hitl import (
    ApprovalAction,
    ApprovalDecision,
    ApprovalGate,
    approval_gate,
)
from app.core.langgraph.workflow.emitter import ProgressEmitter
from app.core.langgraph.workflow.errors import (
    OrchestratorFault,
    RosterError,
)
from app.core.langgraph.workflow.graph import HandoffGraph
from app.core.langgraph.workflow.invoker import WorkerInvoker
from app.core.langgraph.workflow.schema import (
    CANCELLATION_MARKER,
    SYSTEM_AGENT,
    EventKind,
    ProgressEvent,
    RunContext,
    StepOutcome,
    TranscriptEntry,
    WorkflowTopology,
    truncate_summary,
)
from app.core.logging import logger
from app.core.metrics import (
    workflow_run_duration_seconds,
    workflow_runs_total,
)

SEQUENTIAL_PIPELINE = (
    TRAVEL_RESEARCH,
    POLICY_COMPLIANCE,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    BOOKING_COORDINATOR,
)

INITIAL_MESSAGE = "Initializing travel booking workflow..."

TopologyRunner = Callable[[RunContext, ProgressEmitter], Awaitable[None]]


class Orchestrator:
    """Runs one workflow per ``start_run`` call, fully isolated from other runs.

    The only state shared between runs is the approval gate's checkpoint
    registry.
    """

    def __init__(
        self,
        roster_factory: Callable[[], List[BaseWorker]] = build_roster,
        gate: Optional[ApprovalGate] = None,
        invoker: Optional[WorkerInvoker] = None,
        step_timeout: Optional[float] = None,
        approval_timeout: Optional[float] = None,
        max_rounds: Optional[int] = None,
        summary_max_chars: Optional[int] = None,
    ):
        """Initialize the Orchestrator.

        Args:
            roster_factory: Builds fresh worker instances for each run.
            gate: Approval gate; defaults to the process-wide ``approval_gate``.
            invoker: Worker invoker; defaults to one using ``step_timeout``.
            step_timeout: Per-step deadline in seconds.
            approval_timeout: Seconds to wait for an approval decision.
            max_rounds: Number of round-robin passes.
            summary_max_chars: Maximum length of step summaries in events.
        """
        self.roster_factory = roster_factory
        self.gate = gate if gate is not None else approval_gate
        self.invoker = invoker if invoker is not None else WorkerInvoker(deadline=step_timeout)
        self.approval_timeout = approval_timeout if approval_timeout is not None else settings.APPROVAL_TIMEOUT_SECONDS
        self.max_rounds = max_rounds if max_rounds is not None else settings.ROUND_ROBIN_MAX_ROUNDS
        self.summary_max_chars = summary_max_chars if summary_max_chars is not None else settings.SUMMARY_MAX_CHARS
        self.handoff_graph = HandoffGraph(self)

        self._runners: Dict[WorkflowTopology, TopologyRunner] = {
            WorkflowTopology.ROUND_ROBIN: self._run_round_robin,
            WorkflowTopology.SEQUENTIAL: self._run_sequential,
            WorkflowTopology.CONCURRENT: self._run_concurrent,
            WorkflowTopology.HANDOFF: self._run_handoff,
        }

    # ─── Public API ────────────────────────────────────────────────

    def create_context(
        self,
        request: str,
        topology: Union[WorkflowTopology, str, None] = None,
        approval_required: bool = False,
        diagnostics: bool = False,
    ) -> RunContext:
        """Build the per-run context, including a fresh worker roster."""
        if not isinstance(topology, WorkflowTopology):
            topology = WorkflowTopology.parse(topology)
        return RunContext(
            request=request,
            topology=topology,
            approval_required=approval_required,
            diagnostics=diagnostics,
            roster=list(self.roster_factory()),
        )

    async def start_run(
        self,
        request: str,
        topology: Union[WorkflowTopology, str, None] = None,
        approval_required: bool = False,
        diagnostics: bool = False,
    ) -> AsyncGenerator[ProgressEvent, None]:
        """Start a workflow run and stream its progress events.

        The run executes as a background task so a slow consumer never slows
        the workers. If the consumer stops iterating early the run is cancelled.

        Args:
            request: The user's travel request.
            topology: Topology or query-style mode name.
            approval_required: Insert an approval checkpoint after the policy step.
            diagnostics: Emit per-step debug timing events.

        Yields:
            ProgressEvent: Events in emission order, ending with ``complete`` or ``error``.
        """
        ctx = self.create_context(request, topology, approval_required, diagnostics)
        emitter = ProgressEmitter(run_id=ctx.run_id)
        task = asyncio.create_task(self._execute(ctx, emitter))

        try:
            async for event in emitter:
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                logger.info("workflow_run_abandoned", run_id=ctx.run_id)

    async def run(
        self,
        request: str,
        topology: Union[WorkflowTopology, str, None] = None,
        approval_required: bool = False,
        diagnostics: bool = False,
    ) -> List[ProgressEvent]:
        """Execute a run to completion and return all of its events."""
        return [event async for event in self.start_run(request, topology, approval_required, diagnostics)]

    def submit_decision(self, checkpoint_id: str, action: Union[ApprovalAction, str], note: Optional[str] = None) -> bool:
        """Resolve a pending approval checkpoint.

        Args:
            checkpoint_id: Id carried by the ``awaiting_input`` event.
            action: ``approve`` or ``cancel``.
            note: Optional reviewer note.

        Returns:
            bool: False if the checkpoint is unknown or already resolved.

        Raises:
            ValueError: If ``action`` is not a valid approval action.
        """
        if not isinstance(action, ApprovalAction):
            action = ApprovalAction(str(action).strip().lower())
        return self.gate.resolve(checkpoint_id, ApprovalDecision(action=action, note=note))

    # ─── Run boundary ──────────────────────────────────────────────

    async def _execute(self, ctx: RunContext, emitter: ProgressEmitter) -> None:
        """Run the selected topology, guaranteeing a terminal event."""
        started = time.monotonic()
        status = "abandoned"

        logger.info(
            "workflow_run_started",
            run_id=ctx.run_id,
            topology=ctx.topology.value,
            approval_required=ctx.approval_required,
            workers=[w.name for w in ctx.roster],
        )

        try:
            emitter.emit(EventKind.WORKING, message=INITIAL_MESSAGE)
            runner = self._runners.get(ctx.topology)
            if runner is None:
                raise OrchestratorFault(f"Unsupported topology '{ctx.topology}'", run_id=ctx.run_id)

            await runner(ctx, emitter)

            result = ctx.render_result(with_elapsed=ctx.topology == WorkflowTopology.CONCURRENT)
            emitter.emit(EventKind.COMPLETE, message="Workflow complete.", result=result)
            status = "cancelled" if ctx.cancelled else "complete"
        except Exception as e:
            status = "error"
            logger.exception("workflow_run_failed", run_id=ctx.run_id, topology=ctx.topology.value, error=str(e))
            emitter.emit(EventKind.ERROR, message=str(e) or type(e).__name__)
        finally:
            emitter.close()
            elapsed = time.monotonic() - started
            workflow_runs_total.labels(topology=ctx.topology.value, status=status).inc()
            workflow_run_duration_seconds.labels(topology=ctx.topology.value).observe(elapsed)
            logger.info(
                "workflow_run_finished",
                run_id=ctx.run_id,
                status=status,
                steps=ctx.transcript.step_count,
                elapsed=round(elapsed, 3),
            )

    # ─── Topologies ────────────────────────────────────────────────

    async def _run_round_robin(self, ctx: RunContext, emitter: ProgressEmitter) -> None:
        """Every worker contributes one turn per round on the shared transcript."""
        if not ctx.roster:
            raise RosterError("Round-robin requires at least one worker", run_id=ctx.run_id)

        for round_index in range(self.max_rounds):
            logger.debug("round_robin_round_started", run_id=ctx.run_id, round=round_index + 1)
            for worker in ctx.roster:
                await self.run_step(ctx, emitter, worker, self.pipeline_context(ctx, worker))

    async def _run_sequential(self, ctx: RunContext, emitter: ProgressEmitter) -> None:
        """Fixed pipeline; optional approval checkpoint after the policy step."""
        workers = [self.require_worker(ctx, name) for name in SEQUENTIAL_PIPELINE]

        for worker in workers:
            await self.run_step(ctx, emitter, worker, self.pipeline_context(ctx, worker))
            if worker.name == POLICY_COMPLIANCE and ctx.approval_required:
                if not await self.approval_checkpoint(ctx, emitter, phase=worker.name):
                    return

    async def _run_concurrent(self, ctx: RunContext, emitter: ProgressEmitter) -> None:
        """Fan out every worker at once and fold results in completion order."""
        if not ctx.roster:
            raise RosterError("Concurrent mode requires at least one worker", run_id=ctx.run_id)

        for worker in ctx.roster:
            emitter.emit(EventKind.WORKING, agent=worker.name, message=worker.description)
            self._debug_started(ctx, emitter, worker)

        tasks = [
            asyncio.ensure_future(self.invoker.invoke(worker, self.fanout_context(ctx, worker)))
            for worker in ctx.roster
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                outcome = await next_done
                self.record_outcome(ctx, emitter, outcome)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def _run_handoff(self, ctx: RunContext, emitter: ProgressEmitter) -> None:
        """Conditional pipeline executed by the compiled handoff graph."""
        for name in SEQUENTIAL_PIPELINE:
            self.require_worker(ctx, name)
        await self.handoff_graph.run(ctx, emitter)

    # ─── Steps ─────────────────────────────────────────────────────

    async def run_step(self, ctx: RunContext, emitter: ProgressEmitter, worker: BaseWorker, context: str) -> StepOutcome:
        """Run one worker step: announce it, invoke the worker, record the outcome."""
        emitter.emit(EventKind.WORKING, agent=worker.name, message=worker.description)
        self._debug_started(ctx, emitter, worker)
        outcome = await self.invoker.invoke(worker, context)
        self.record_outcome(ctx, emitter, outcome)
        return outcome

    def record_outcome(self, ctx: RunContext, emitter: ProgressEmitter, outcome: StepOutcome) -> int:
        """Append an outcome to the transcript and publish ``step_complete``.

        This is the single point where step results are folded into the run,
        so step indices follow the order in which outcomes arrive.

        Returns:
            int: The step index assigned to the outcome.
        """
        step = ctx.transcript.step_count + 1
        ctx.transcript.append(
            TranscriptEntry(
                agent=outcome.worker,
                text=outcome.output,
                step=step,
                elapsed=outcome.elapsed,
                kind=outcome.kind,
            )
        )
        if ctx.diagnostics:
            emitter.emit(
                EventKind.WORKING,
                agent=outcome.worker,
                message=(
                    f"[debug] finished at {datetime.now(timezone.utc).isoformat()} "
                    f"elapsed={outcome.elapsed:.1f}s outcome={outcome.kind.value}"
                ),
            )
        emitter.emit(
            EventKind.STEP_COMPLETE,
            agent=outcome.worker,
            step=step,
            message=truncate_summary(outcome.output, self.summary_max_chars),
        )
        return step

    async def approval_checkpoint(self, ctx: RunContext, emitter: ProgressEmitter, phase: str) -> bool:
        """Pause the run until a reviewer decides.

        Returns:
            bool: True to continue, False if the run was cancelled.
        """
        checkpoint = self.gate.open(phase=phase, transcript_snapshot=ctx.render_result(), run_id=ctx.run_id)
        emitter.emit(
            EventKind.AWAITING_INPUT,
            message=f"Approval required after {phase}. Submit 'approve' or 'cancel'.",
            checkpoint_id=checkpoint.id,
        )

        decision = await self.gate.wait(checkpoint, timeout=self.approval_timeout)
        note = f" ({decision.note})" if decision.note else ""

        if decision.action == ApprovalAction.CANCEL:
            ctx.cancelled = True
            marker = f"{CANCELLATION_MARKER} at approval checkpoint after {phase}{note}."
            ctx.transcript.append(TranscriptEntry(agent=SYSTEM_AGENT, text=marker))
            emitter.emit(EventKind.CANCELLED, message=marker)
            logger.info("workflow_run_cancelled", run_id=ctx.run_id, phase=phase, note=decision.note)
            return False

        emitter.emit(EventKind.RESUMED, message=f"Approved{note}; resuming workflow.")
        return True

    def _debug_started(self, ctx: RunContext, emitter: ProgressEmitter, worker: BaseWorker) -> None:
        if ctx.diagnostics:
            emitter.emit(
                EventKind.WORKING,
                agent=worker.name,
                message=f"[debug] starting at {datetime.now(timezone.utc).isoformat()}",
            )

    # ─── Context assembly ──────────────────────────────────────────

    @staticmethod
    def require_worker(ctx: RunContext, name: str) -> BaseWorker:
        """Find a worker in the run's roster.

        Raises:
            RosterError: If the roster has no worker with that name.
        """
        for worker in ctx.roster:
            if worker.name == name:
                return worker
        raise RosterError(f"Worker '{name}' is not part of the roster", run_id=ctx.run_id)

    @staticmethod
    def pipeline_context(ctx: RunContext, worker: BaseWorker) -> str:
        """Request plus the full transcript so far."""
        so_far = ctx.transcript.render() or "(no prior steps)"
        return (
            f"User travel request:\n{ctx.request}\n\n"
            f"Context so far:\n{so_far}\n\n"
            f"Please perform your specialized role ({worker.name}) and respond succinctly."
        )

    @staticmethod
    def fanout_context(ctx: RunContext, worker: BaseWorker) -> str:
        """Request plus the worker's own role, with no peer outputs."""
        return (
            f"User travel request:\n{ctx.request}\n\n"
            f"Your role ({worker.name}): {worker.description}\n"
            "Respond succinctly."
        )

    @staticmethod
    def dependency_context(ctx: RunContext, worker: BaseWorker, outputs: Sequence[tuple]) -> str:
        """Request plus the named outputs this step depends on."""
        sections = [f"User travel request:\n{ctx.request}"]
        for name, text in outputs:
            sections.append(f"[Result from {name}]:\n{text}")
        sections.append(f"Please perform your specialized role ({worker.name}) and respond succinctly.")
        return "\n\n".join(sections)
