"""Tests for the Plan models and their wire layout."""

from typing import Any

import pytest
from pydantic import ValidationError

from backend.app.models.common import BudgetCategory
from backend.app.models.plan import Budget, BudgetBreakdown, Item, Plan


class TestItem:
    def test_cost_strings_and_junk(self) -> None:
        assert Item(time="10:00", cost="12,500").cost == 12500
        assert Item(time="10:00", cost="free").cost is None
        assert Item(time="10:00", cost=None).cost_or_zero == 0

    def test_priority_clamped(self) -> None:
        assert Item(time="10:00", priority_score=150).priority_score == 100
        assert Item(time="10:00", priority_score=-3).priority_score == 0
        assert Item(time="10:00", priority_score="high").priority_score is None

    def test_priority_default(self) -> None:
        assert Item(time="10:00").priority() == 10
        assert Item(time="10:00", priority_score=0).priority() == 0

    def test_items_are_frozen(self) -> None:
        item = Item(time="10:00", cost=100)
        with pytest.raises(ValidationError):
            item.cost = 200  # type: ignore[misc]

    def test_without_links_clears_every_link(self) -> None:
        item = Item(
            time="10:00",
            image_search_link="a",
            activity_image_query="b",
            official_website_link="c",
            purchase_search_link="d",
        ).without_links()
        assert item.image_search_link == ""
        assert item.activity_image_query == ""
        assert item.official_website_link == ""
        assert item.purchase_search_link == ""


class TestBudgetBreakdown:
    def test_legacy_keys_are_mapped(self) -> None:
        breakdown = BudgetBreakdown.model_validate(
            {"accommodation": 300, "transportation": 50, "food": 100, "activities": 70, "misc": 10}
        )
        assert breakdown.accommodation_cost == 300
        assert breakdown.local_transport_cost == 50
        assert breakdown.food_and_drink_cost == 100
        assert breakdown.activities_and_tours_cost == 70
        assert breakdown.contingency_and_misc == 10
        assert breakdown.flight_cost == 0

    def test_current_keys_win_over_legacy(self) -> None:
        breakdown = BudgetBreakdown.model_validate({"food": 1, "food_and_drink_cost": 2})
        assert breakdown.food_and_drink_cost == 2

    def test_total_and_get(self) -> None:
        breakdown = BudgetBreakdown(flight_cost=10, contingency_and_misc=5)
        assert breakdown.total() == 15
        assert breakdown.get(BudgetCategory.flight) == 10

    def test_is_settled(self) -> None:
        breakdown = BudgetBreakdown(flight_cost=10)
        assert Budget(total_amount=10, breakdown=breakdown).is_settled()
        assert not Budget(total_amount=11, breakdown=breakdown).is_settled()


class TestPlan:
    def test_to_wire_uses_persisted_keys(self, plan: Plan) -> None:
        wire = plan.to_wire()
        assert wire["planId"] == "plan-1700000000000"
        assert wire["startDate"] == "2025-05-01"
        assert "arrivalTime" not in wire
        assert wire["days"][0]["items"][0]["time"] == "14:00"
        assert wire["estimated_budget"]["breakdown"]["flight_cost"] == 900000

    def test_summary_extra_fields_survive(self, raw_plan: dict[str, Any]) -> None:
        raw_plan["summary"]["weather_note"] = "Rain on day 2"
        plan = Plan.model_validate(raw_plan)
        assert plan.to_wire()["summary"]["weather_note"] == "Rain on day 2"

    def test_days_must_match_start_and_end(self, raw_plan: dict[str, Any]) -> None:
        raw_plan["endDate"] = "2025-05-04"
        with pytest.raises(ValidationError, match="endDate"):
            Plan.model_validate(raw_plan)

    def test_days_must_be_chronological(self, raw_plan: dict[str, Any]) -> None:
        raw_plan["days"][1]["date"] = "2025-05-01"
        with pytest.raises(ValidationError, match="out of order"):
            Plan.model_validate(raw_plan)

    def test_empty_days_rejected(self, raw_plan: dict[str, Any]) -> None:
        raw_plan["days"] = []
        with pytest.raises(ValidationError):
            Plan.model_validate(raw_plan)
