"""Unit tests for the travel tools."""

import re

from app.core.langgraph.tools import (
    create_booking,
    get_budget_info,
    get_travel_policy,
    search_flights,
    search_hotels,
    tools,
)


class TestTravelTools:
    """Tests for the mock travel data tools."""

    def test_all_tools_registered(self):
        """Test the combined tool list."""
        names = {t.name for t in tools}
        assert names == {"search_flights", "search_hotels", "get_travel_policy", "get_budget_info", "create_booking"}

    def test_search_flights(self):
        """Test flight search echoes the route."""
        result = search_flights.invoke({"origin": "SFO", "destination": "SEA", "departure_date": "2026-11-10"})
        assert "SFO->SEA" in result
        assert "$" in result

    def test_search_hotels_counts_nights(self):
        """Test nights are derived from the dates."""
        result = search_hotels.invoke({"destination": "Seattle", "check_in": "2026-11-10", "check_out": "2026-11-13"})
        assert "3 nights" in result

    def test_search_hotels_bad_dates(self):
        """Test unparsable dates count as one night."""
        result = search_hotels.invoke({"destination": "Seattle", "check_in": "soon", "check_out": "later"})
        assert "1 nights" in result

    def test_travel_policy(self):
        """Test the policy thresholds are reported."""
        result = get_travel_policy.invoke({})
        assert "14 days" in result
        assert "$300" in result

    def test_budget_info_known_and_unknown(self):
        """Test known departments and the default budget."""
        assert "$38000 remaining" in get_budget_info.invoke({"department": "Engineering"})
        assert "UNKNOWN" in get_budget_info.invoke({"department": "Legal"})

    def test_create_booking_confirmation_code(self):
        """Test the confirmation code format."""
        result = create_booking.invoke({"flight_details": "UA123", "hotel_details": "Marriott", "nights": 3})
        assert re.search(r"CONF-[0-9A-F]{8}", result)
        assert "3 nights" in result
