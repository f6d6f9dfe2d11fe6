"""Unit tests for the handoff graph."""

import pytest

from app.core.langgraph.agents.workers import (
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
)
from app.core.langgraph.workflow import (
    EventKind,
    Orchestrator,
    WorkflowTopology,
    is_policy_violation,
)


def step_agents(events):
    return [e.agent for e in events if e.kind == EventKind.STEP_COMPLETE]


class TestPolicyViolationDetection:
    """Tests for reading the policy verdict."""

    @pytest.mark.parametrize(
        "text",
        ["Policy VIOLATION: advance purchase", "Hotel is Non-Compliant", "non-compliant rate"],
    )
    def test_violation_markers(self, text):
        """Test case-insensitive detection of violation markers."""
        assert is_policy_violation(text)

    def test_compliant_text(self):
        """Test a compliant verdict."""
        assert not is_policy_violation("All selected options comply with policy.")


class TestHandoffRouting:
    """Tests for the conditional pipeline."""

    @pytest.mark.asyncio
    async def test_compliant_route(self, orchestrator):
        """Test budget runs before the optimizer when policy passes."""
        events = await orchestrator.run("Trip", WorkflowTopology.HANDOFF)

        assert step_agents(events) == [
            TRAVEL_RESEARCH,
            POLICY_COMPLIANCE,
            BUDGET_APPROVAL,
            ITINERARY_OPTIMIZER,
            BOOKING_COORDINATOR,
        ]
        assert events[-1].kind == EventKind.COMPLETE

    @pytest.mark.asyncio
    async def test_violation_route(self, gate, scripted_roster):
        """Test the optimizer runs before budget when policy reports a violation."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(outputs={POLICY_COMPLIANCE: "Hotel rate is NON-COMPLIANT."}),
            gate=gate,
        )
        events = await orchestrator.run("Trip", WorkflowTopology.HANDOFF)

        agents = step_agents(events)
        assert agents == [
            TRAVEL_RESEARCH,
            POLICY_COMPLIANCE,
            ITINERARY_OPTIMIZER,
            BUDGET_APPROVAL,
            BOOKING_COORDINATOR,
        ]
        route = [e for e in events if e.kind == EventKind.WORKING and e.message.startswith("Policy violation")]
        assert len(route) == 1

    @pytest.mark.asyncio
    async def test_dependent_outputs_reach_next_worker(self, gate, scripted_roster):
        """Test each step receives the outputs produced before it."""
        roster = scripted_roster()()
        orchestrator = Orchestrator(roster_factory=lambda: roster, gate=gate)
        await orchestrator.run("Trip", WorkflowTopology.HANDOFF)

        research_context = roster[0].contexts[0]
        assert "Trip" in research_context
        assert "[Result from" not in research_context

        policy_context = roster[1].contexts[0]
        assert f"[Result from {TRAVEL_RESEARCH}]" in policy_context
        assert policy_context.count("[Result from") == 1

        booking_context = roster[-1].contexts[0]
        assert f"[Result from {TRAVEL_RESEARCH}]" in booking_context
        assert f"[Result from {ITINERARY_OPTIMIZER}]" in booking_context

    @pytest.mark.asyncio
    async def test_cancel_at_checkpoint(self, orchestrator):
        """Test cancelling after the policy step ends the graph."""
        events = []
        async for event in orchestrator.start_run("Trip", WorkflowTopology.HANDOFF, approval_required=True):
            events.append(event)
            if event.kind == EventKind.AWAITING_INPUT:
                orchestrator.submit_decision(event.checkpoint_id, "cancel")

        assert step_agents(events) == [TRAVEL_RESEARCH, POLICY_COMPLIANCE]
        assert any(e.kind == EventKind.CANCELLED for e in events)
        assert events[-1].kind == EventKind.COMPLETE
        assert "Workflow cancelled" in events[-1].result

    @pytest.mark.asyncio
    async def test_approve_then_route(self, gate, scripted_roster):
        """Test routing still applies after an approval."""
        orchestrator = Orchestrator(
            roster_factory=scripted_roster(outputs={POLICY_COMPLIANCE: "violation: fare class"}),
            gate=gate,
        )
        events = []
        async for event in orchestrator.start_run("Trip", WorkflowTopology.HANDOFF, approval_required=True):
            events.append(event)
            if event.kind == EventKind.AWAITING_INPUT:
                orchestrator.submit_decision(event.checkpoint_id, "approve")

        agents = step_agents(events)
        assert agents.index(ITINERARY_OPTIMIZER) < agents.index(BUDGET_APPROVAL)
        assert len(agents) == 5
