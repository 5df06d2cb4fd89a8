"""Integration tests for the plan reconciliation endpoints."""

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from backend.app.api.routes.plans import get_collaborator
from backend.app.main import app


@pytest.fixture
def collaborator(collaborator_factory: Any) -> Any:
    return collaborator_factory(cost_per_item=500, transport={"Incheon Airport": 8000})


@pytest.fixture
def client(collaborator: Any) -> Iterator[TestClient]:
    """Test client with the collaborator dependency replaced."""
    app.dependency_overrides[get_collaborator] = lambda: collaborator
    yield TestClient(app)
    app.dependency_overrides.clear()


def _is_settled(wire: dict[str, Any]) -> bool:
    budget = wire["estimated_budget"]
    return budget["total_amount"] == sum(budget["breakdown"].values())


class TestSettle:
    def test_settles_upstream_plan(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post("/plans/settle", json=raw_plan)

        assert response.status_code == 200
        data = response.json()
        assert data["planId"] == raw_plan["planId"]
        assert _is_settled(data)
        assert [d["daily_estimated_cost"] for d in data["days"]] == [178000, 216000, 18000]

    def test_malformed_plan_is_422(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        del raw_plan["days"]
        response = client.post("/plans/settle", json=raw_plan)

        assert response.status_code == 422
        assert response.json()["detail"]["errors"]


class TestRebalance:
    def test_rebalance_applies(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post(
            "/plans/rebalance",
            json={"plan": raw_plan, "realFlightCost": 700000, "realAccommodationCost": 200000},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["applied"] is True
        breakdown = data["plan"]["estimated_budget"]["breakdown"]
        assert breakdown["flight_cost"] == 700000
        assert breakdown["accommodation_cost"] == 200000
        assert _is_settled(data["plan"])

    def test_costs_above_total_rejected(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post(
            "/plans/rebalance",
            json={"plan": raw_plan, "realFlightCost": 5000000, "realAccommodationCost": 0},
        )
        assert response.status_code == 422

    def test_non_numeric_cost_rejected(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post(
            "/plans/rebalance",
            json={"plan": raw_plan, "realFlightCost": "cheap", "realAccommodationCost": 0},
        )
        assert response.status_code == 422


class TestTrim:
    def test_trim_to_flight_times(
        self, client: TestClient, collaborator: Any, raw_plan: dict[str, Any]
    ) -> None:
        response = client.post(
            "/plans/trim",
            json={"plan": raw_plan, "arrivalTime": "15:00", "departureTime": "20:00", "people": 2},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["arrivalTime"] == "15:00"
        assert data["departureTime"] == "20:00"

        first_day = data["days"][0]["items"]
        assert first_day[0]["time"] == "15:00"
        assert first_day[0]["milestone"] == "airport_arrival"
        assert first_day[1]["time"] == "16:00"

        last_day = data["days"][-1]["items"]
        assert last_day[-1]["time"] == "15:30"
        assert last_day[-1]["milestone"] == "airport_departure"
        assert _is_settled(data)
        assert all(r.people == 2 for r in collaborator.cost_requests)

    def test_bad_clock_rejected(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post("/plans/trim", json={"plan": raw_plan, "arrivalTime": "3pm"})
        assert response.status_code == 422

    def test_missing_times_rejected(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post("/plans/trim", json={"plan": raw_plan})
        assert response.status_code == 422


class TestTransport:
    def test_populates_transport(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post("/plans/transport", json={"plan": raw_plan})

        assert response.status_code == 200
        data = response.json()
        assert data["days"][0]["daily_transport_cost"] == 8000
        assert data["estimated_budget"]["breakdown"]["local_transport_cost"] == 8000
        assert _is_settled(data)


class TestRebalanceBudgetService:
    def test_contract(self, client: TestClient, raw_plan: dict[str, Any]) -> None:
        response = client.post(
            "/api/rebalance-budget",
            json={
                "originalBudget": raw_plan["estimated_budget"],
                "realFlightCost": 900000,
                "realAccommodationCost": 600000,
            },
        )

        assert response.status_code == 200
        budget = response.json()["estimated_budget"]
        assert budget["total_amount"] == 2000000
        assert budget["total_amount"] == sum(budget["breakdown"].values())

    def test_exceeding_total_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/rebalance-budget",
            json={
                "originalBudget": {"total_amount": 1000000},
                "realFlightCost": 700000,
                "realAccommodationCost": 500000,
            },
        )
        assert response.status_code == 422
