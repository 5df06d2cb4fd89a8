"""LLM-backed collaborator client with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic stub when no key is present for testing.
"""

import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI
from pydantic import ValidationError

from backend.app.config import get_settings
from backend.app.models.plan import Item
from backend.app.models.services import (
    ActivityCost,
    CostEstimateRequest,
    CostEstimateResponse,
    GapScheduleRequest,
    GapScheduleResponse,
    TransportCostRequest,
    TransportCostResponse,
)
from backend.app.utils.clock import parse_clock

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def parse_json_payload(raw: str) -> dict[str, Any] | None:
    """Extract the JSON object from a model reply.

    Markdown code fences and any prose around the outermost braces are
    stripped. Returns None when no object can be decoded.
    """
    cleaned = _FENCE_RE.sub("", raw).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def gap_minutes(request: GapScheduleRequest) -> int:
    start = parse_clock(request.gap_start_time)
    end = parse_clock(request.gap_end_time)
    if start is None or end is None:
        return 0
    return end - start


def sanitize_gap_items(payload: dict[str, Any], default_priority: int) -> list[Item]:
    """Keep well-formed filler items; default missing priority."""
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        return []

    items: list[Item] = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not (raw.get("time") and raw.get("place") and raw.get("activity")):
            continue
        if raw.get("priority_score") is None:
            raw = {**raw, "priority_score": default_priority}
        try:
            items.append(Item.model_validate(raw))
        except ValidationError:
            logger.debug("Dropping malformed gap item: %s", raw)
    return items


def sanitize_costs(payload: dict[str, Any], count: int) -> CostEstimateResponse:
    """Clamp indices into range and order costs by index."""
    raw_costs = payload.get("costs")
    if not isinstance(raw_costs, list):
        return CostEstimateResponse()

    costs: list[ActivityCost] = []
    for raw in raw_costs:
        if not isinstance(raw, dict):
            continue
        index = raw.get("activity_index")
        index = int(index) if isinstance(index, (int, float)) and not isinstance(index, bool) else 0
        breakdown = raw.get("breakdown") if isinstance(raw.get("breakdown"), dict) else {}
        costs.append(
            ActivityCost(
                activity_index=max(0, min(count - 1, index)),
                cost=raw.get("cost"),
                breakdown={
                    str(k): int(v)
                    for k, v in breakdown.items()
                    if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0
                },
            )
        )
    costs.sort(key=lambda c: c.activity_index)
    return CostEstimateResponse(costs=costs)


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def fill_gap(self, request: GapScheduleRequest) -> GapScheduleResponse | None:
        """No filler: the gap stays empty."""
        return GapScheduleResponse(items=[], total_cost=0)

    async def estimate_costs(self, request: CostEstimateRequest) -> CostEstimateResponse | None:
        """Every activity costs 0."""
        return CostEstimateResponse(
            costs=[ActivityCost(activity_index=i, cost=0) for i in range(len(request.activities))]
        )

    async def estimate_transport(
        self, request: TransportCostRequest
    ) -> TransportCostResponse | None:
        """Routes cost 0."""
        return TransportCostResponse(total_cost=0, breakdown=[])


class OpenAIClient:
    """OpenAI-backed collaborator client."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: AsyncOpenAI | None = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            client: Optional preconfigured AsyncOpenAI (for testing with mocks)
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _complete_json(self, system_prompt: str, context: str) -> dict[str, Any] | None:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": context},
            ],
            temperature=0.4,
            max_tokens=2000,
            response_format={"type": "json_object"},
        )
        raw = response.choices[0].message.content or ""
        payload = parse_json_payload(raw)
        if payload is None:
            logger.warning(f"OpenAI returned unparseable JSON ({len(raw)} chars)")
        return payload

    async def fill_gap(self, request: GapScheduleRequest) -> GapScheduleResponse | None:
        """Generate filler items for the gap window."""
        if gap_minutes(request) < get_settings().gap_fill_min_minutes:
            return GapScheduleResponse(items=[], total_cost=0)

        payload = await self._complete_json(self._gap_system_prompt(), self._gap_context(request))
        if payload is None:
            return None

        items = sanitize_gap_items(payload, get_settings().gap_fill_default_priority)
        return GapScheduleResponse(items=items, total_cost=sum(i.cost_or_zero for i in items))

    async def estimate_costs(self, request: CostEstimateRequest) -> CostEstimateResponse | None:
        """Estimate each activity's cost for the whole party."""
        lines = [
            f"Destination: {request.destination}",
            f"People: {request.people}",
            "Activities:",
        ]
        for index, activity in enumerate(request.activities):
            notes = f" ({activity.notes})" if activity.notes else ""
            lines.append(f"{index}. {activity.activity} at {activity.place}{notes}")

        payload = await self._complete_json(
            "You estimate realistic travel costs as whole currency units for the whole party. "
            "Airport arrivals/departures, check-in/check-out and plain transfers usually cost 0. "
            'Reply with JSON only: {"costs": [{"activity_index": 0, "cost": 0, "breakdown": '
            '{"entrance_fee": 0, "experience_program": 0, "food_drink": 0, "transport": 0, '
            '"other": 0}}]} where activity_index matches the numbered list.',
            "\n".join(lines),
        )
        if payload is None:
            return None
        return sanitize_costs(payload, len(request.activities))

    async def estimate_transport(
        self, request: TransportCostRequest
    ) -> TransportCostResponse | None:
        """Price each leg of the route with local public transport or taxi fares."""
        payload = await self._complete_json(
            "You compute local transport costs between consecutive stops as whole currency "
            "units for the whole party. Walking under 1km costs 0. Reply with JSON only: "
            '{"total_cost": 0, "breakdown": [{"from": "", "to": "", "transport": "", "cost": 0}]}',
            f"Destination: {request.destination}\nPeople: {request.people}\n"
            f"Route: {' -> '.join(request.route)}",
        )
        if payload is None:
            return None
        try:
            return TransportCostResponse.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Transport estimate failed validation: {e}")
            return None

    def _gap_system_prompt(self) -> str:
        """Build system prompt for gap filling."""
        return """You are a travel planner filling a free window before a flight home.

Rules:
- Prefer important places not yet visited (priority_score 60+), then ordinary
  places (40-59), then everyday activities like shopping or a meal (under 20).
- NEVER suggest a place from the "Already planned" list.
- The last activity must be easy to leave for the airport.
- Every item must start at or after the window start and finish before its end.
- Include priority_score (0-100) and cost (whole currency units, including
  local transport from the previous stop) on every item.

Reply with JSON only:
{"items": [{"time": "HH:MM", "place": "", "activity": "", "notes": "", "cost": 0,
  "next_move_duration": "", "priority_score": 0}]}"""

    def _gap_context(self, request: GapScheduleRequest) -> str:
        """Build context string for the gap-fill prompt."""
        lines = [
            f"Destination: {request.destination}",
            f"Date: {request.date.isoformat()}",
            f"Window: {request.gap_start_time} - {request.gap_end_time}",
        ]

        breakdown = request.budget.breakdown
        spendable = round(
            breakdown.food_and_drink_cost * 0.3
            + breakdown.activities_and_tours_cost * 0.2
            + breakdown.local_transport_cost * 0.1
        )
        lines.append(f"Budget for this window: about {spendable}")

        recent = request.existing_schedule[-3:]
        if recent:
            lines.append(
                "Earlier today: " + ", ".join(f"{i.time} {i.activity} at {i.place}" for i in recent)
            )

        seen: set[tuple[str, str]] = set()
        planned: list[str] = []
        for ref in [*request.all_places, *request.existing_schedule]:
            if not ref.place.strip():
                continue
            key = (ref.place, ref.activity)
            if key not in seen:
                seen.add(key)
                planned.append(f"{ref.place} ({ref.activity})")
        if planned:
            lines.append("Already planned: " + "; ".join(planned))

        return "\n".join(lines)
