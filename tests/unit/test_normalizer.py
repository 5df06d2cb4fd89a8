"""Tests for daily aggregation, budget normalization and the settle pass."""

from backend.app.models.common import BudgetCategory
from backend.app.models.plan import Plan
from backend.app.reconciliation.aggregation import aggregate_plan, day_cost
from backend.app.reconciliation.normalizer import compute_budget, normalize_budget, settle_plan


class TestAggregation:
    def test_day_cost_sums_items_and_transport_once(self, plan: Plan) -> None:
        day = plan.days[0].model_copy(update={"daily_transport_cost": 12000})
        # 3000 palace + 25000 dinner; airport and hotel carry no cost yet
        assert day_cost(day) == 3000 + 25000 + 12000

    def test_input_daily_cost_is_not_authoritative(self, plan: Plan) -> None:
        day = plan.days[2].model_copy(update={"daily_estimated_cost": 123456})
        aggregated = aggregate_plan(plan.with_days([*plan.days[:2], day]))
        assert aggregated.days[2].daily_estimated_cost == 18000


class TestNormalizeBudget:
    def test_rebuilds_local_categories_from_items(self, plan: Plan) -> None:
        budget = compute_budget(plan)
        breakdown = budget.breakdown

        assert breakdown.food_and_drink_cost == 25000 + 30000 + 15000 + 18000
        assert breakdown.activities_and_tours_cost == 3000 + 21000
        assert breakdown.local_transport_cost == 0
        # carried over untouched
        assert breakdown.flight_cost == 900000
        assert breakdown.accommodation_cost == 300000
        assert breakdown.contingency_and_misc == 100000

    def test_total_equals_sum_exactly(self, plan: Plan) -> None:
        normalized = normalize_budget(plan)
        budget = normalized.estimated_budget
        assert budget.total_amount == sum(budget.breakdown.get(c) for c in BudgetCategory)
        assert budget.is_settled()

    def test_local_transport_comes_from_days(self, plan: Plan) -> None:
        days = [day.model_copy(update={"daily_transport_cost": 5000}) for day in plan.days]
        budget = compute_budget(plan.with_days(days))
        assert budget.breakdown.local_transport_cost == 15000

    def test_idempotent(self, plan: Plan) -> None:
        once = normalize_budget(plan)
        twice = normalize_budget(once)
        assert twice is once

    def test_lodging_item_costs_do_not_leak_into_local_categories(self, plan: Plan) -> None:
        settled = settle_plan(plan)
        breakdown = settled.estimated_budget.breakdown
        assert breakdown.food_and_drink_cost == 88000
        assert breakdown.activities_and_tours_cost == 24000


class TestSettlePlan:
    def test_full_pass(self, plan: Plan) -> None:
        settled = settle_plan(plan)

        assert [day.daily_estimated_cost for day in settled.days] == [178000, 216000, 18000]
        assert settled.estimated_budget.total_amount == 1412000
        assert settled.estimated_budget.is_settled()

    def test_settle_is_stable(self, plan: Plan) -> None:
        settled = settle_plan(plan)
        assert settle_plan(settled) == settled
