"""Worker agents for the travel approval workflow.

This package provides the five travel workers (research, policy, budget,
optimizer, booking) driven by the workflow Orchestrator.
"""

from app.core.langgraph.agents.workers import (
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
    WORKER_REGISTRY,
    BaseWorker,
    BookingCoordinatorWorker,
    BudgetApprovalWorker,
    ItineraryOptimizerWorker,
    PolicyComplianceWorker,
    TravelResearchWorker,
    build_roster,
    get_worker,
    list_workers,
    register_worker,
)

__all__ = [
    "BaseWorker",
    "TravelResearchWorker",
    "PolicyComplianceWorker",
    "BudgetApprovalWorker",
    "ItineraryOptimizerWorker",
    "BookingCoordinatorWorker",
    "TRAVEL_RESEARCH",
    "POLICY_COMPLIANCE",
    "BUDGET_APPROVAL",
    "ITINERARY_OPTIMIZER",
    "BOOKING_COORDINATOR",
    "WORKER_REGISTRY",
    "build_roster",
    "get_worker",
    "list_workers",
    "register_worker",
]
