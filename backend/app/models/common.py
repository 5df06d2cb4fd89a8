"""Common types and enums shared across all models."""

from enum import Enum


class SpendCategory(str, Enum):
    """Spending category assigned to a single itinerary item."""

    lodging = "lodging"
    food_and_drink = "food_and_drink"
    activities = "activities"


class BudgetCategory(str, Enum):
    """The six budget breakdown categories (values are the wire field names)."""

    flight = "flight_cost"
    accommodation = "accommodation_cost"
    local_transport = "local_transport_cost"
    food_and_drink = "food_and_drink_cost"
    activities_and_tours = "activities_and_tours_cost"
    contingency_and_misc = "contingency_and_misc"


class Milestone(str, Enum):
    """Logistics milestones regenerated by the time-window trimmer."""

    airport_arrival = "airport_arrival"
    airport_transfer = "airport_transfer"
    airport_departure = "airport_departure"


LOCAL_CATEGORIES: tuple[BudgetCategory, ...] = (
    BudgetCategory.local_transport,
    BudgetCategory.food_and_drink,
    BudgetCategory.activities_and_tours,
    BudgetCategory.contingency_and_misc,
)
