"""Shared pytest fixtures for all test suites."""

from collections.abc import Iterator
from typing import Any

import pytest

from backend.app.config import Settings
from backend.app.models.plan import Plan
from backend.app.models.services import (
    ActivityCost,
    CostEstimateRequest,
    CostEstimateResponse,
    GapScheduleRequest,
    GapScheduleResponse,
    TransportCostRequest,
    TransportCostResponse,
)
from backend.app.tools.executor import BreakerRegistry, CallConfig, CollaboratorExecutor, get_breaker_registry


class FakeCollaborator:
    """Scripted collaborator client that records every request."""

    def __init__(
        self,
        gap: GapScheduleResponse | None = None,
        cost_per_item: int = 0,
        transport: dict[str, int] | None = None,
        fail: set[str] | None = None,
    ) -> None:
        self.gap = gap or GapScheduleResponse()
        self.cost_per_item = cost_per_item
        self.transport = transport or {}
        self.fail = fail or set()
        self.gap_requests: list[GapScheduleRequest] = []
        self.cost_requests: list[CostEstimateRequest] = []
        self.transport_requests: list[TransportCostRequest] = []

    async def fill_gap(self, request: GapScheduleRequest) -> GapScheduleResponse | None:
        self.gap_requests.append(request)
        if "gap" in self.fail:
            raise RuntimeError("gap service down")
        return self.gap

    async def estimate_costs(self, request: CostEstimateRequest) -> CostEstimateResponse | None:
        self.cost_requests.append(request)
        if "cost" in self.fail:
            raise RuntimeError("cost service down")
        return CostEstimateResponse(
            costs=[
                ActivityCost(activity_index=i, cost=self.cost_per_item)
                for i in range(len(request.activities))
            ]
        )

    async def estimate_transport(
        self, request: TransportCostRequest
    ) -> TransportCostResponse | None:
        self.transport_requests.append(request)
        if "transport" in self.fail:
            raise RuntimeError("transport service down")
        return TransportCostResponse(total_cost=self.transport.get(request.route[0], 0))


@pytest.fixture(autouse=True)
def reset_breakers() -> Iterator[None]:
    """Circuit breakers are process-global; isolate each test."""
    get_breaker_registry().clear()
    yield
    get_breaker_registry().clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key=None, collaborator_base_url=None)


@pytest.fixture
def executor() -> CollaboratorExecutor:
    return CollaboratorExecutor(registry=BreakerRegistry())


@pytest.fixture
def call_config() -> CallConfig:
    return CallConfig(timeout_ms=1000)


@pytest.fixture
def raw_plan() -> dict[str, Any]:
    """Three-day Seoul plan in the persisted JSON layout."""
    return {
        "planId": "plan-1700000000000",
        "destination": "Seoul",
        "startDate": "2025-05-01",
        "endDate": "2025-05-03",
        "estimated_budget": {
            "total_amount": 2000000,
            "currency": "KRW",
            "breakdown": {
                "flight_cost": 900000,
                "accommodation_cost": 300000,
                "local_transport_cost": 50000,
                "food_and_drink_cost": 400000,
                "activities_and_tours_cost": 250000,
                "contingency_and_misc": 100000,
            },
        },
        "summary": {"overview": "Three days in Seoul", "tips": ["Get a T-money card"]},
        "days": [
            {
                "date": "2025-05-01",
                "title": "Arrival",
                "summary": "",
                "daily_estimated_cost": 0,
                "items": [
                    {"time": "14:00", "place": "Incheon Airport", "activity": "Arrive at airport"},
                    {"time": "16:00", "place": "Gyeongbokgung", "activity": "Palace tour", "cost": 3000, "priority_score": 85},
                    {"time": "19:00", "place": "Gwangjang Market", "activity": "Dinner", "cost": 25000},
                    {"time": "21:00", "place": "Lotte Hotel", "activity": "Hotel check-in"},
                ],
            },
            {
                "date": "2025-05-02",
                "title": "City",
                "summary": "",
                "daily_estimated_cost": 0,
                "items": [
                    {"time": "08:00", "place": "Lotte Hotel", "activity": "호텔 조식", "cost": 30000},
                    {"time": "10:00", "place": "N Seoul Tower", "activity": "Observatory", "cost": 21000, "priority_score": 70},
                    {"time": "13:00", "place": "Myeongdong", "activity": "Lunch", "cost": 15000},
                    {"time": "22:00", "place": "Lotte Hotel", "activity": "Return to hotel"},
                ],
            },
            {
                "date": "2025-05-03",
                "title": "Departure",
                "summary": "",
                "daily_estimated_cost": 0,
                "items": [
                    {"time": "09:00", "place": "Bukchon", "activity": "Hanok village walk", "priority_score": 65},
                    {"time": "12:00", "place": "Insadong", "activity": "Lunch", "cost": 18000},
                    {"time": "18:00", "place": "Incheon Airport", "activity": "Head to airport for departure"},
                ],
            },
        ],
    }


@pytest.fixture
def plan(raw_plan: dict[str, Any]) -> Plan:
    return Plan.model_validate(raw_plan)


@pytest.fixture
def fake_collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def collaborator_factory() -> type[FakeCollaborator]:
    """The FakeCollaborator class, for tests that need a scripted variant."""
    return FakeCollaborator
