"""Models package - re-exports for convenience."""

from backend.app.models.common import LOCAL_CATEGORIES, BudgetCategory, Milestone, SpendCategory
from backend.app.models.plan import Budget, BudgetBreakdown, Day, Item, Plan, Summary
from backend.app.models.services import (
    ActivityCost,
    ActivityRef,
    CostEstimateRequest,
    CostEstimateResponse,
    GapScheduleRequest,
    GapScheduleResponse,
    PlaceRef,
    TransportCostRequest,
    TransportCostResponse,
    TransportLeg,
)

__all__ = [
    # Common
    "SpendCategory",
    "BudgetCategory",
    "Milestone",
    "LOCAL_CATEGORIES",
    # Plan
    "Item",
    "Day",
    "BudgetBreakdown",
    "Budget",
    "Summary",
    "Plan",
    # Collaborator contracts
    "PlaceRef",
    "GapScheduleRequest",
    "GapScheduleResponse",
    "ActivityRef",
    "CostEstimateRequest",
    "ActivityCost",
    "CostEstimateResponse",
    "TransportCostRequest",
    "TransportLeg",
    "TransportCostResponse",
]
