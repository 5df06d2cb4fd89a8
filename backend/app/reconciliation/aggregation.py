"""Daily cost aggregation."""

from backend.app.models.plan import Day, Plan
from backend.app.utils.money import round_money


def day_cost(day: Day) -> int:
    """Item costs plus the day's local-transport figure, added once."""
    return round_money(sum(item.cost_or_zero for item in day.items) + day.transport_cost_or_zero)


def aggregate_day(day: Day) -> Day:
    """Return ``day`` with ``daily_estimated_cost`` recomputed."""
    total = day_cost(day)
    if total == day.daily_estimated_cost:
        return day
    return day.model_copy(update={"daily_estimated_cost": total})


def aggregate_plan(plan: Plan) -> Plan:
    """Recompute every day's cost."""
    return plan.with_days([aggregate_day(day) for day in plan.days])
