"""Travel lookup and booking tools used by the research and booking workers.

The data here is deterministic demo data: flight and hotel quotes, the
corporate travel policy and departmental budgets.
"""

import uuid
from datetime import date
from typing import Dict

from langchain_core.tools import tool

from app.core.logging import logger

TRAVEL_POLICY: Dict[str, object] = {
    "approved_destinations": [
        "Seattle",
        "San Francisco",
        "New York",
        "Austin",
        "Chicago",
        "Boston",
        "Denver",
        "Portland",
        "Atlanta",
        "Dallas",
    ],
    "minimum_advance_booking_days": 14,
    "max_flight_cost_domestic": 800,
    "max_flight_cost_international": 2000,
    "max_hotel_nightly_rate": 300,
    "preferred_airlines": ["United", "Delta", "American"],
    "preferred_hotel_chains": ["Marriott", "Hilton", "Hyatt"],
    "manager_approval_threshold": 2500,
}

DEPARTMENT_BUDGETS: Dict[str, Dict[str, object]] = {
    "Engineering": {"project_code": "PROJ-2026-001", "available_budget": 50000, "already_spent": 12000},
    "Marketing": {"project_code": "PROJ-2026-002", "available_budget": 30000, "already_spent": 8000},
    "Sales": {"project_code": "PROJ-2026-003", "available_budget": 75000, "already_spent": 25000},
}


def _nights_between(check_in: str, check_out: str) -> int:
    """Count nights between two ISO dates; unparsable input counts as one night."""
    try:
        nights = (date.fromisoformat(check_out) - date.fromisoformat(check_in)).days
    except ValueError:
        logger.warning("hotel_dates_unparsable", check_in=check_in, check_out=check_out)
        return 1
    return max(nights, 1)


@tool
def search_flights(origin: str, destination: str, departure_date: str) -> str:
    """Search for available flights.

    Args:
        origin: Departure city or airport code.
        destination: Arrival city or airport code.
        departure_date: Departure date in ISO format (YYYY-MM-DD).

    Returns:
        Flight options with prices and stops.
    """
    return (
        f"Flights {origin}->{destination} {departure_date}: "
        "UA123 $485 direct; DL456 $395 1-stop; AS789 $520 direct."
    )


@tool
def search_hotels(destination: str, check_in: str, check_out: str) -> str:
    """Search for available hotels.

    Args:
        destination: City to stay in.
        check_in: Check-in date in ISO format (YYYY-MM-DD).
        check_out: Check-out date in ISO format (YYYY-MM-DD).

    Returns:
        Hotel options with nightly rates.
    """
    nights = _nights_between(check_in, check_out)
    return f"Hotels {destination} {nights} nights: Hyatt $245; Marriott $195; Hilton $285."


@tool
def get_travel_policy() -> str:
    """Return the corporate travel policy thresholds and approved destinations."""
    policy = TRAVEL_POLICY
    return (
        f"Approved destinations: {', '.join(policy['approved_destinations'])}. "
        f"Minimum advance booking: {policy['minimum_advance_booking_days']} days. "
        f"Max domestic flight: ${policy['max_flight_cost_domestic']}; "
        f"max international flight: ${policy['max_flight_cost_international']}. "
        f"Max hotel nightly rate: ${policy['max_hotel_nightly_rate']}. "
        f"Manager approval required above ${policy['manager_approval_threshold']}."
    )


@tool
def get_budget_info(department: str) -> str:
    """Look up the remaining travel budget for a department.

    Args:
        department: Department name, e.g. Engineering.

    Returns:
        Project code and remaining budget for the department.
    """
    budget = DEPARTMENT_BUDGETS.get(
        department,
        {"project_code": "UNKNOWN", "available_budget": 10000, "already_spent": 0},
    )
    remaining = budget["available_budget"] - budget["already_spent"]
    return f"{department} ({budget['project_code']}): ${remaining} remaining of ${budget['available_budget']}."


@tool
def create_booking(flight_details: str, hotel_details: str, nights: int) -> str:
    """Create booking confirmation.

    Args:
        flight_details: The selected flight.
        hotel_details: The selected hotel.
        nights: Number of hotel nights.

    Returns:
        Booking confirmation with a confirmation code.
    """
    code = f"CONF-{uuid.uuid4().hex[:8].upper()}"
    logger.info("booking_created", confirmation_code=code, nights=nights)
    return f"BOOKING CONFIRMED {code}\nFlight: {flight_details}\nHotel: {hotel_details} ({nights} nights)"


research_tools = [search_flights, search_hotels]
policy_tools = [get_travel_policy]
budget_tools = [get_budget_info]
booking_tools = [create_booking]

