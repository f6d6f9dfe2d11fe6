"""Worker agents for the travel approval workflow.

Each worker is a specialized agent with a short purpose, a focused system
prompt, optional tools and exactly one fallback string that replaces its
output when it times out or fails. Workers are invoked by the Orchestrator
through the Worker Invoker.
"""

import asyncio
from typing import (
    Dict,
    List,
    Optional,
    Type,
)

from langchain_core.messages import (
    HumanMessage,
    SystemMessage,
)
from langchain_core.tools.base import BaseTool

from app.core.config import settings
from app.core.langgraph.tools import (
    booking_tools,
    budget_tools,
    policy_tools,
    research_tools,
)
from app.core.logging import logger
from app.services.llm import llm_service

TRAVEL_RESEARCH = "TravelResearch"
POLICY_COMPLIANCE = "PolicyCompliance"
BUDGET_APPROVAL = "BudgetApproval"
ITINERARY_OPTIMIZER = "ItineraryOptimizer"
BOOKING_COORDINATOR = "BookingCoordinator"


class BaseWorker:
    """Base class for all worker agents.

    Attributes:
        name: Unique identifier for this worker.
        description: Short purpose, shown in progress events and prompts.
        system_prompt: The system prompt defining this worker's persona.
        fallback: Degraded output used on timeout or failure.
        simulated_output: Deterministic output used when no LLM is configured.
        tools: Optional list of tools this worker can use.
    """

    name: str = "base_worker"
    description: str = "A base worker agent."
    system_prompt: str = "You are a helpful assistant."
    fallback: str = "Step complete."
    simulated_output: str = "Step complete."

    def __init__(self, tools: Optional[List[BaseTool]] = None):
        """Initialize the worker agent."""
        self.tools = tuple(tools or [])
        self.llm_service = llm_service

    async def run(self, context: str) -> str:
        """Transform the step context into this worker's output.

        Errors are not handled here; the invoker turns them into degraded outcomes.

        Args:
            context: The full textual context for this step.

        Returns:
            str: The worker's output text.
        """
        if not self.llm_service.available:
            await asyncio.sleep(settings.SIMULATED_WORKER_DELAY_SECONDS)
            return self.simulated_output

        messages = [SystemMessage(content=self.system_prompt), HumanMessage(content=context)]
        response = await self.llm_service.call(messages, tools=list(self.tools))
        content = response.content if isinstance(response.content, str) else str(response.content)

        logger.info("worker_response_generated", worker_name=self.name, output_length=len(content))
        return content

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class TravelResearchWorker(BaseWorker):
    """Flight and hotel research worker."""

    name = TRAVEL_RESEARCH
    description = "Research flights & hotels; ALWAYS call tools; output concise ranked options."
    system_prompt = (
        "You are a travel research specialist. Search for and compare flight and hotel "
        "options using your tools. Present the best 2-3 options with price comparisons, "
        "ranked and concise."
    )
    fallback = "Found sample flight & hotel options (non-stop + compliant lodging)."
    simulated_output = "Found 2 flight options (non-stop vs 1-stop) and 3 hotels within policy."

    def __init__(self):
        super().__init__(tools=research_tools)


class PolicyComplianceWorker(BaseWorker):
    """Corporate travel policy validation worker."""

    name = POLICY_COMPLIANCE
    description = "Validate corporate travel policy: advance purchase, destination approval, cost thresholds."
    system_prompt = (
        "You are a corporate travel policy officer. Validate the request against the policy: "
        "approved destinations, 14-day advance booking, flights <= $800, hotels <= $300/night. "
        "State clearly whether there is a policy violation, and suggest compliant alternatives."
    )
    fallback = "All selected options comply with advance purchase & cost thresholds."
    simulated_output = "All options within policy: advance booking OK; costs under limits."

    def __init__(self):
        super().__init__(tools=policy_tools)


class BudgetApprovalWorker(BaseWorker):
    """Trip costing and budget check worker."""

    name = BUDGET_APPROVAL
    description = "Estimate total trip cost and flag if exceeding budget caps; note escalation needs."
    system_prompt = (
        "You are a budget analyst. Calculate total trip cost including flights, hotels and "
        "estimated expenses. Flag manager approval if the total exceeds $2,500. Assume the "
        "Engineering budget is adequate unless noted."
    )
    fallback = "Projected spend within departmental budget (no escalation needed)."
    simulated_output = "Projected total cost ~$1,950 (air $560 + hotel $780 + misc $610) < $2,500 cap."

    def __init__(self):
        super().__init__(tools=budget_tools)


class ItineraryOptimizerWorker(BaseWorker):
    """Cost versus convenience optimization worker."""

    name = ITINERARY_OPTIMIZER
    description = "Balance cost vs convenience; reduce layovers; produce optimal rationale."
    system_prompt = (
        "You are an itinerary optimizer. Review the travel options and suggest improvements "
        "that minimize cost and layovers while meeting the schedule. Explain trade-offs and "
        "confirm when the plan is optimal."
    )
    fallback = "Chosen lowest total travel time with acceptable price delta."
    simulated_output = "Selected non-stop morning outbound + afternoon return; mid-tier business hotel near venue."


class BookingCoordinatorWorker(BaseWorker):
    """Final booking and itinerary summary worker."""

    name = BOOKING_COORDINATOR
    description = "If approvals achieved, finalize itinerary and produce booking confirmation."
    system_prompt = (
        "You are a booking coordinator. Once approved, finalize reservations with your booking "
        "tool and produce the confirmation plus a full itinerary summary."
    )
    fallback = "Generated confirmation (simulated) and assembled itinerary summary."
    simulated_output = "Generated confirmation code CONF-DEMO123 with full itinerary summary."

    def __init__(self):
        super().__init__(tools=booking_tools)


# Registry of all available workers, in pipeline order
WORKER_REGISTRY: Dict[str, Type[BaseWorker]] = {
    TRAVEL_RESEARCH: TravelResearchWorker,
    POLICY_COMPLIANCE: PolicyComplianceWorker,
    BUDGET_APPROVAL: BudgetApprovalWorker,
    ITINERARY_OPTIMIZER: ItineraryOptimizerWorker,
    BOOKING_COORDINATOR: BookingCoordinatorWorker,
}


def build_roster() -> List[BaseWorker]:
    """Create fresh worker instances for one run, in pipeline order.

    Returns:
        List[BaseWorker]: One new instance per registered worker.
    """
    return [worker_cls() for worker_cls in WORKER_REGISTRY.values()]


def get_worker(name: str) -> Optional[BaseWorker]:
    """Create a single worker by name.

    Args:
        name: The worker name.

    Returns:
        Optional[BaseWorker]: A new worker instance if registered, None otherwise.
    """
    worker_cls = WORKER_REGISTRY.get(name)
    return worker_cls() if worker_cls else None


def list_workers() -> List[Dict[str, str]]:
    """List all available workers with their descriptions.

    Returns:
        List[Dict[str, str]]: Worker name and description pairs.
    """
    return [{"name": w.name, "description": w.description} for w in WORKER_REGISTRY.values()]


def register_worker(
    name: str,
    description: str,
    system_prompt: str,
    fallback: str,
    simulated_output: Optional[str] = None,
    tools: Optional[List[BaseTool]] = None,
) -> Type[BaseWorker]:
    """Register a new worker into the global WORKER_REGISTRY.

    Args:
        name: Unique worker name.
        description: Short purpose.
        system_prompt: The worker's system prompt.
        fallback: Degraded output used on timeout or failure.
        simulated_output: Offline output; defaults to the fallback.
        tools: Optional tools for the worker.

    Returns:
        Type[BaseWorker]: The generated worker class.
    """
    bound_tools = list(tools or [])

    def __init__(self):
        BaseWorker.__init__(self, tools=bound_tools)

    worker_cls = type(
        f"{name}Worker",
        (BaseWorker,),
        {
            "name": name,
            "description": description,
            "system_prompt": system_prompt,
            "fallback": fallback,
            "simulated_output": simulated_output or fallback,
            "__init__": __init__,
        },
    )
    WORKER_REGISTRY[name] = worker_cls
    logger.info("worker_registered", worker=name)
    return worker_cls
