"""Unit tests for the workflow Orchestrator."""

import asyncio

import pytest

from app.core.langgraph.agents.workers import (
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
)
from app.core.langgraph.hitl import AUTO_TIMEOUT_NOTE
from app.core.langgraph.workflow import (
    EventKind,
    Orchestrator,
    WorkflowTopology,
)

PIPELINE = [TRAVEL_RESEARCH, POLICY_COMPLIANCE, BUDGET_APPROVAL, ITINERARY_OPTIMIZER, BOOKING_COORDINATOR]


def steps_of(events):
    return [e for e in events if e.kind == EventKind.STEP_COMPLETE]


async def run_with_decision(orchestrator, topology, action, note=None):
    """Run with approval enabled, answering the first checkpoint with ``action``."""
    events = []
    async for event in orchestrator.start_run("Book travel to Seattle", topology, approval_required=True):
        events.append(event)
        if event.kind == EventKind.AWAITING_INPUT:
            assert orchestrator.submit_decision(event.checkpoint_id, action, note)
    return events


class TestRunBoundary:
    """Tests for the terminal-event guarantee."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("topology", list(WorkflowTopology))
    async def test_exactly_one_terminal_event_last(self, orchestrator, topology):
        """Test every topology ends with a single complete event."""
        events = await orchestrator.run("Book travel to Seattle", topology)

        terminal = [e for e in events if e.is_terminal]
        assert len(terminal) == 1
        assert events[-1].kind == EventKind.COMPLETE
        assert events[0].kind == EventKind.WORKING
        assert [e.seq for e in events] == list(range(1, len(events) + 1))

    @pytest.mark.asyncio
    async def test_missing_worker_reports_error(self, gate, scripted_roster):
        """Test that a roster fault ends the run with an error event."""
        orchestrator = Orchestrator(roster_factory=scripted_roster(names=PIPELINE[:4]), gate=gate)
        events = await orchestrator.run("Book travel", WorkflowTopology.SEQUENTIAL)

        assert events[-1].kind == EventKind.ERROR
        assert BOOKING_COORDINATOR in events[-1].message
        assert not any(e.kind == EventKind.COMPLETE for e in events)
        assert steps_of(events) == []

    @pytest.mark.asyncio
    async def test_empty_roster_reports_error(self, gate, scripted_roster):
        """Test round-robin without workers."""
        orchestrator = Orchestrator(roster_factory=scripted_roster(names=[]), gate=gate)
        events = await orchestrator.run("Book travel", WorkflowTopology.ROUND_ROBIN)
        assert events[-1].kind == EventKind.ERROR

    @pytest.mark.asyncio
    async def test_runs_are_isolated(self, orchestrator):
        """Test that concurrent runs never share transcripts."""
        first, second = await asyncio.gather(
            orchestrator.run("Trip A", WorkflowTopology.SEQUENTIAL),
            orchestrator.run("Trip B", WorkflowTopology.SEQUENTIAL),
        )
        assert first[-1].result.startswith("User request: Trip A")
        assert second[-1].result.startswith("User request: Trip B")
        assert len(steps_of(first)) == len(steps_of(second)) == 5


class TestSequential:
    """Tests for the fixed pipeline."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, orchestrator):
        """Test five steps in pipeline order and the aggregated result."""
        events = await orchestrator.run("Book travel to Seattle, 14+ days out", "sequential")

        steps = steps_of(events)
        assert [e.agent for e in steps] == PIPELINE
        assert [e.step for e in steps] == [1, 2, 3, 4, 5]

        result = events[-1].result
        assert result.startswith("User request: Book travel to Seattle, 14+ days out\n\n")
        positions = [result.index(f"[{name}]") for name in PIPELINE]
        assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_context_accumulates(self, gate, scripted_roster):
        """Test each worker sees the outputs before it."""
        roster = scripted_roster()()
        orchestrator = Orchestrator(roster_factory=lambda: roster, gate=gate)
        await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL)

        booking_context = roster[-1].contexts[0]
        assert "Trip" in booking_context
        for name in PIPELINE[:-1]:
            assert f"[{name}] {name} done" in booking_context

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_fallback(self, gate, scripted_roster):
        """Test a slow worker is replaced by its fallback and the run continues."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(delays={BUDGET_APPROVAL: 2.0}),
            gate=gate,
            step_timeout=0.1,
        )
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL)

        budget = next(e for e in steps_of(events) if e.agent == BUDGET_APPROVAL)
        assert budget.message == f"{BUDGET_APPROVAL} fallback"
        assert len(steps_of(events)) == 5
        assert events[-1].kind == EventKind.COMPLETE

    @pytest.mark.asyncio
    async def test_failure_degrades_and_continues(self, gate, scripted_roster):
        """Test a raising worker is contained."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(errors={POLICY_COMPLIANCE: ValueError("boom")}),
            gate=gate,
        )
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL)

        policy = next(e for e in steps_of(events) if e.agent == POLICY_COMPLIANCE)
        assert policy.message.startswith("[error] boom. Using heuristic:")
        assert events[-1].kind == EventKind.COMPLETE

    @pytest.mark.asyncio
    async def test_summary_truncated(self, gate, scripted_roster):
        """Test step summaries respect the configured length."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(outputs={TRAVEL_RESEARCH: "x" * 100}),
            gate=gate,
            summary_max_chars=20,
        )
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL)

        research = steps_of(events)[0]
        assert len(research.message) == 20
        assert "x" * 100 in events[-1].result

    @pytest.mark.asyncio
    async def test_diagnostics_events(self, orchestrator):
        """Test debug timing events when diagnostics are on."""
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL, diagnostics=True)
        debug = [e for e in events if e.kind == EventKind.WORKING and e.message.startswith("[debug]")]
        assert len(debug) == 10

    @pytest.mark.asyncio
    async def test_no_debug_events_by_default(self, orchestrator):
        """Test diagnostics are off unless requested."""
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL)
        assert not any(e.message and e.message.startswith("[debug]") for e in events)


class TestSequentialApproval:
    """Tests for the approval checkpoint after the policy step."""

    @pytest.mark.asyncio
    async def test_cancel_stops_pipeline(self, orchestrator):
        """Test nothing after the checkpoint runs once cancelled."""
        events = await run_with_decision(orchestrator, WorkflowTopology.SEQUENTIAL, "cancel", "over budget")

        assert [e.agent for e in steps_of(events)] == [TRAVEL_RESEARCH, POLICY_COMPLIANCE]
        kinds = [e.kind for e in events]
        assert kinds.index(EventKind.AWAITING_INPUT) < kinds.index(EventKind.CANCELLED)
        assert kinds[-2:] == [EventKind.CANCELLED, EventKind.COMPLETE]
        assert "Workflow cancelled" in events[-1].result
        assert "over budget" in events[-1].result

    @pytest.mark.asyncio
    async def test_approve_resumes(self, orchestrator):
        """Test approval runs the remaining steps."""
        events = await run_with_decision(orchestrator, WorkflowTopology.SEQUENTIAL, "approve")

        assert [e.agent for e in steps_of(events)] == PIPELINE
        resumed = next(e for e in events if e.kind == EventKind.RESUMED)
        awaiting = next(e for e in events if e.kind == EventKind.AWAITING_INPUT)
        assert awaiting.seq < resumed.seq
        assert steps_of(events)[1].seq < awaiting.seq
        assert events[-1].kind == EventKind.COMPLETE

    @pytest.mark.asyncio
    async def test_unanswered_checkpoint_auto_approves(self, gate, scripted_roster):
        """Test the run resumes on its own when nobody decides."""
        orchestrator = Orchestrator(roster_factory=scripted_roster(), gate=gate, approval_timeout=0.05)
        events = await orchestrator.run("Trip", WorkflowTopology.SEQUENTIAL, approval_required=True)

        resumed = next(e for e in events if e.kind == EventKind.RESUMED)
        assert AUTO_TIMEOUT_NOTE in resumed.message
        assert len(steps_of(events)) == 5
        assert len(gate) == 0

    @pytest.mark.asyncio
    async def test_invalid_action_rejected(self, orchestrator):
        """Test submit_decision validates the action."""
        with pytest.raises(ValueError):
            orchestrator.submit_decision("any", "maybe")

    @pytest.mark.asyncio
    async def test_unknown_checkpoint(self, orchestrator):
        """Test submitting against an unknown id."""
        assert not orchestrator.submit_decision("nonexistent", "approve")

    @pytest.mark.asyncio
    async def test_abandoned_run_discards_checkpoint(self, orchestrator, gate):
        """Test that a consumer walking away cancels the paused run."""
        stream = orchestrator.start_run("Trip", WorkflowTopology.SEQUENTIAL, approval_required=True)
        async for event in stream:
            if event.kind == EventKind.AWAITING_INPUT:
                break
        await stream.aclose()
        await asyncio.sleep(0.05)

        assert len(gate) == 0


class TestRoundRobin:
    """Tests for the round-robin topology."""

    @pytest.mark.asyncio
    async def test_single_round(self, orchestrator):
        """Test every worker takes one turn in roster order."""
        events = await orchestrator.run("Trip", None)
        assert [e.agent for e in steps_of(events)] == PIPELINE

    @pytest.mark.asyncio
    async def test_multiple_rounds(self, gate, scripted_roster):
        """Test repeated passes over the roster."""
        roster = scripted_roster()()
        orchestrator = Orchestrator(roster_factory=lambda: roster, gate=gate, max_rounds=2)
        events = await orchestrator.run("Trip", WorkflowTopology.ROUND_ROBIN)

        steps = steps_of(events)
        assert [e.agent for e in steps] == PIPELINE * 2
        assert [e.step for e in steps] == list(range(1, 11))
        assert f"[{BOOKING_COORDINATOR}] {BOOKING_COORDINATOR} done" in roster[0].contexts[1]


class TestConcurrent:
    """Tests for the concurrent topology."""

    @pytest.mark.asyncio
    async def test_results_folded_in_arrival_order(self, gate, scripted_roster):
        """Test step indices follow completion order, not roster order."""
        delays = {name: 0.05 * (len(PIPELINE) - i) for i, name in enumerate(PIPELINE)}
        orchestrator = Orchestrator(roster_factory=scripted_roster(delays=delays), gate=gate)
        events = await orchestrator.run("Trip", WorkflowTopology.CONCURRENT)

        steps = steps_of(events)
        assert [e.agent for e in steps] == list(reversed(PIPELINE))
        assert [e.step for e in steps] == [1, 2, 3, 4, 5]
        assert f"[{BOOKING_COORDINATOR}] (" in events[-1].result

    @pytest.mark.asyncio
    async def test_workers_see_no_peer_output(self, gate, scripted_roster):
        """Test fan-out contexts carry only the request."""
        roster = scripted_roster()()
        orchestrator = Orchestrator(roster_factory=lambda: roster, gate=gate)
        await orchestrator.run("Trip", WorkflowTopology.CONCURRENT)

        for worker in roster:
            assert "done" not in worker.contexts[0]

    @pytest.mark.asyncio
    async def test_slow_worker_does_not_block_others(self, gate, scripted_roster):
        """Test a timed-out worker contributes its fallback last."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(delays={TRAVEL_RESEARCH: 2.0}),
            gate=gate,
            step_timeout=0.2,
        )
        events = await orchestrator.run("Trip", WorkflowTopology.CONCURRENT)

        steps = steps_of(events)
        assert steps[-1].agent == TRAVEL_RESEARCH
        assert steps[-1].message == f"{TRAVEL_RESEARCH} fallback"
        assert events[-1].kind == EventKind.COMPLETE


class TestUngatedTopologies:
    """Tests for topologies that never pause for approval."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("topology", [WorkflowTopology.ROUND_ROBIN, WorkflowTopology.CONCURRENT])
    async def test_approval_flag_is_ignored(self, orchestrator, gate, topology):
        """Test no checkpoint is opened even when approval is requested."""
        events = await orchestrator.run("Trip", topology, approval_required=True)

        kinds = [e.kind for e in events]
        assert EventKind.AWAITING_INPUT not in kinds
        assert EventKind.RESUMED not in kinds
        assert kinds[-1] == EventKind.COMPLETE
        assert len(steps_of(events)) == 5
        assert len(gate) == 0
