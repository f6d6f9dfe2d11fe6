"""LangChain tools available to the travel workers.

Includes flight and hotel search, the corporate policy and budget lookups,
and booking confirmation.
"""

from langchain_core.tools.base import BaseTool

from .travel import (
    booking_tools,
    budget_tools,
    create_booking,
    get_budget_info,
    get_travel_policy,
    policy_tools,
    research_tools,
    search_flights,
    search_hotels,
)

tools: list[BaseTool] = [
    search_flights,
    search_hotels,
    get_travel_policy,
    get_budget_info,
    create_booking,
]

__all__ = [
    "tools",
    "research_tools",
    "policy_tools",
    "budget_tools",
    "booking_tools",
    "search_flights",
    "search_hotels",
    "get_travel_policy",
    "get_budget_info",
    "create_booking",
]
