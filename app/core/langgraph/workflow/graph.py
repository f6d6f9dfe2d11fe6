"""Handoff topology as a LangGraph StateGraph with conditional edges.

Graph structure:
    START → research → policy → approval_gate
          → (cancelled) END
          → (violation) optimizer → budget → booking → END
          → (normal)    budget → optimizer → booking → END

The branch is decided exactly once, in the approval_gate node, from the policy
worker's output; the routing functions only read the stored decision.
"""

from typing import (
    TYPE_CHECKING,
    Annotated,
    Dict,
    Optional,
    Tuple,
    TypedDict,
)

from langchain_core.runnables import RunnableConfig
from langgraph.graph import (
    END,
    START,
    StateGraph,
)
from langgraph.graph.state import CompiledStateGraph

from app.core.langgraph.agents.workers import (
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
)
from app.core.langgraph.workflow.emitter import ProgressEmitter
from app.core.langgraph.workflow.schema import (
    EventKind,
    RunContext,
)
from app.core.logging import logger

if TYPE_CHECKING:
    from app.core.langgraph.workflow.orchestrator import Orchestrator

VIOLATION_MARKERS = ("violation", "non-compliant")

BRANCH_VIOLATION = "violation"
BRANCH_NORMAL = "normal"
BRANCH_CANCELLED = "cancelled"


def is_policy_violation(policy_output: str) -> bool:
    """Whether the policy verdict reports a violation (case-insensitive)."""
    lowered = policy_output.lower()
    return any(marker in lowered for marker in VIOLATION_MARKERS)


def _merge_outputs(left: Dict[str, str], right: Dict[str, str]) -> Dict[str, str]:
    return {**left, **right}


class HandoffState(TypedDict):
    """Graph state for one handoff run.

    Attributes:
        outputs: Worker outputs keyed by worker name, in execution order.
        branch: The route chosen after the policy step.
    """

    outputs: Annotated[Dict[str, str], _merge_outputs]
    branch: str


class HandoffGraph:
    """Compiles and runs the handoff graph for an Orchestrator.

    The graph is compiled once and shared by all runs; the per-run context and
    emitter travel in ``config["configurable"]``.
    """

    def __init__(self, orchestrator: "Orchestrator"):
        """Initialize the HandoffGraph."""
        self.orchestrator = orchestrator
        self._graph: Optional[CompiledStateGraph] = None

    # ─── Graph Nodes ───────────────────────────────────────────────

    @staticmethod
    def _run_of(config: RunnableConfig) -> Tuple[RunContext, ProgressEmitter]:
        configurable = config["configurable"]
        return configurable["run_context"], configurable["emitter"]

    async def _step(self, worker_name: str, state: HandoffState, config: RunnableConfig) -> dict:
        """Run one worker with every output produced so far as its context."""
        ctx, emitter = self._run_of(config)
        worker = self.orchestrator.require_worker(ctx, worker_name)
        context = self.orchestrator.dependency_context(ctx, worker, list(state["outputs"].items()))
        outcome = await self.orchestrator.run_step(ctx, emitter, worker, context)
        return {"outputs": {worker_name: outcome.output}}

    async def _research_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        return await self._step(TRAVEL_RESEARCH, state, config)

    async def _policy_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        return await self._step(POLICY_COMPLIANCE, state, config)

    async def _budget_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        return await self._step(BUDGET_APPROVAL, state, config)

    async def _optimizer_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        return await self._step(ITINERARY_OPTIMIZER, state, config)

    async def _booking_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        return await self._step(BOOKING_COORDINATOR, state, config)

    async def _approval_gate_node(self, state: HandoffState, config: RunnableConfig) -> dict:
        """Optional approval checkpoint, then the one-time branch decision."""
        ctx, emitter = self._run_of(config)

        if ctx.approval_required:
            proceed = await self.orchestrator.approval_checkpoint(ctx, emitter, phase=POLICY_COMPLIANCE)
            if not proceed:
                return {"branch": BRANCH_CANCELLED}

        if is_policy_violation(state["outputs"].get(POLICY_COMPLIANCE, "")):
            branch = BRANCH_VIOLATION
            message = f"Policy violation detected: routing to {ITINERARY_OPTIMIZER} before {BUDGET_APPROVAL}."
        else:
            branch = BRANCH_NORMAL
            message = f"Policy check passed: routing to {BUDGET_APPROVAL} before {ITINERARY_OPTIMIZER}."

        emitter.emit(EventKind.WORKING, message=message)
        logger.info("handoff_branch_selected", run_id=ctx.run_id, branch=branch)
        return {"branch": branch}

    # ─── Routing ───────────────────────────────────────────────────

    @staticmethod
    def _route_after_gate(state: HandoffState) -> str:
        return state["branch"]

    @staticmethod
    def _route_after_optimizer(state: HandoffState) -> str:
        return "budget" if state["branch"] == BRANCH_VIOLATION else "booking"

    @staticmethod
    def _route_after_budget(state: HandoffState) -> str:
        return "booking" if state["branch"] == BRANCH_VIOLATION else "optimizer"

    # ─── Graph Builder ─────────────────────────────────────────────

    def create_graph(self) -> CompiledStateGraph:
        """Create and compile the handoff graph."""
        if self._graph is not None:
            return self._graph

        builder = StateGraph(HandoffState)

        builder.add_node("research", self._research_node)
        builder.add_node("policy", self._policy_node)
        builder.add_node("approval_gate", self._approval_gate_node)
        builder.add_node("budget", self._budget_node)
        builder.add_node("optimizer", self._optimizer_node)
        builder.add_node("booking", self._booking_node)

        builder.add_edge(START, "research")
        builder.add_edge("research", "policy")
        builder.add_edge("policy", "approval_gate")
        builder.add_conditional_edges(
            "approval_gate",
            self._route_after_gate,
            {
                BRANCH_CANCELLED: END,
                BRANCH_VIOLATION: "optimizer",
                BRANCH_NORMAL: "budget",
            },
        )
        builder.add_conditional_edges("optimizer", self._route_after_optimizer, ["budget", "booking"])
        builder.add_conditional_edges("budget", self._route_after_budget, ["booking", "optimizer"])
        builder.add_edge("booking", END)

        self._graph = builder.compile(name="Travel Handoff Workflow")
        logger.info("handoff_graph_created")
        return self._graph

    async def run(self, ctx: RunContext, emitter: ProgressEmitter) -> HandoffState:
        """Execute the handoff graph for one run.

        Args:
            ctx: The run context.
            emitter: The run's progress emitter.

        Returns:
            HandoffState: The final graph state.
        """
        graph = self.create_graph()
        return await graph.ainvoke(
            {"outputs": {}, "branch": ""},
            config={"configurable": {"run_context": ctx, "emitter": emitter}},
        )
