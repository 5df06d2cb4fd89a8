"""Budget normalization and the settle pipeline.

``normalize_budget`` rebuilds the breakdown from classified item costs and
day transport figures and sets the total to the exact sum of the six
categories. ``settle_plan`` is the full pass every mutation path ends with:
accommodation distribution, daily aggregation, then normalization.
"""

import logging

from backend.app.models.common import BudgetCategory, SpendCategory
from backend.app.models.plan import Budget, Plan
from backend.app.reconciliation.accommodation import distribute_accommodation
from backend.app.reconciliation.aggregation import aggregate_plan
from backend.app.reconciliation.classifier import classify_item
from backend.app.utils.metrics import budget_corrections_total

logger = logging.getLogger(__name__)


def compute_budget(plan: Plan) -> Budget:
    """Fresh Budget for ``plan`` (pure; does not touch the plan)."""
    current = plan.estimated_budget.breakdown

    food = 0
    activities = 0
    for day in plan.days:
        for item in day.items:
            category = classify_item(item)
            if category == SpendCategory.food_and_drink:
                food += item.cost_or_zero
            elif category == SpendCategory.activities:
                activities += item.cost_or_zero

    breakdown = current.with_values(
        {
            BudgetCategory.local_transport: sum(day.transport_cost_or_zero for day in plan.days),
            BudgetCategory.food_and_drink: food,
            BudgetCategory.activities_and_tours: activities,
        }
    )
    return plan.estimated_budget.model_copy(
        update={"breakdown": breakdown, "total_amount": breakdown.total()}
    )


def normalize_budget(plan: Plan) -> Plan:
    """Return ``plan`` carrying a normalized, settled Budget. Idempotent."""
    budget = compute_budget(plan)
    previous = plan.estimated_budget
    if budget == previous:
        return plan

    if previous.total_amount != budget.total_amount:
        budget_corrections_total.labels(stage="normalize").inc()
        logger.info(
            "Normalized plan %s total %d -> %d",
            plan.plan_id,
            previous.total_amount,
            budget.total_amount,
        )
    return plan.with_budget(budget)


def settle_plan(plan: Plan) -> Plan:
    """Distribute lodging, aggregate days, normalize the budget."""
    plan = distribute_accommodation(plan)
    plan = aggregate_plan(plan)
    return normalize_budget(plan)
