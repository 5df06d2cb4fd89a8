"""Time-window trimming against real flight arrival/departure times.

Arrival (first day): nothing can happen before the traveller has left the
airport, so every item earlier than ``arrival + dwell`` is evicted and the
arrival/transfer milestones are regenerated.

Departure (last day): items later than the last usable activity slot are
evicted or clamped by priority, a checkout/airport-transfer entry closes the
day, and any leftover window of at least an hour is offered to the gap-fill
collaborator. Newly inserted items are costed in one batch per day, then the
whole plan is settled again.
"""

import logging
from dataclasses import dataclass

from backend.app.config import Settings, get_settings
from backend.app.models.common import Milestone
from backend.app.models.plan import Day, Item, Plan
from backend.app.models.services import (
    ActivityRef,
    CostEstimateRequest,
    GapScheduleRequest,
    PlaceRef,
)
from backend.app.reconciliation.aggregation import aggregate_day
from backend.app.reconciliation.classifier import milestone_of
from backend.app.reconciliation.collaborators import CollaboratorClient, get_collaborator_client
from backend.app.reconciliation.errors import PlanValidationError
from backend.app.reconciliation.normalizer import settle_plan
from backend.app.tools.executor import (
    CallConfig,
    CallContext,
    CancelToken,
    CollaboratorExecutor,
    default_executor,
)
from backend.app.utils.clock import format_clock, parse_clock
from backend.app.utils.metrics import itinerary_evictions_total

logger = logging.getLogger(__name__)

ARRIVAL_ACTIVITY = "Airport arrival"
TRANSFER_ACTIVITY = "Transfer from airport to city"
CHECKOUT_ACTIVITY = "Checkout and airport transfer"


@dataclass(frozen=True)
class GapWindow:
    """Unscheduled window left on the departure day."""

    start: int
    end: int

    @property
    def minutes(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class DayTrim:
    """Trimmed items for one day plus what the trimmer inserted."""

    items: list[Item]
    inserted: list[Item]
    gap: GapWindow | None = None


def sort_items(items: list[Item]) -> list[Item]:
    """Stable sort by clock time; unparseable times go last in list order."""

    def key(item: Item) -> tuple[int, int]:
        minutes = parse_clock(item.time)
        return (1, 0) if minutes is None else (0, minutes)

    return sorted(items, key=key)


def _logistics_item(minutes: int, activity: str, milestone: Milestone, settings: Settings) -> Item:
    return Item(
        time=format_clock(minutes),
        place="",
        activity=activity,
        priority_score=settings.default_priority,
        milestone=milestone,
    ).without_links()


def trim_arrival_day(items: list[Item], arrival: int, settings: Settings) -> DayTrim:
    """Apply the arrival rule to one day's items."""
    feasible_start = arrival + settings.arrival_dwell_min
    regenerated = {Milestone.airport_arrival, Milestone.airport_departure}

    kept: list[Item] = []
    evicted = 0
    for item in items:
        if milestone_of(item) in regenerated:
            continue
        minutes = parse_clock(item.time)
        if minutes is not None and minutes < feasible_start:
            evicted += 1
            continue
        kept.append(item)

    if evicted:
        itinerary_evictions_total.labels(side="arrival").inc(evicted)
        logger.info("Arrival trimming evicted %d item(s) before %s", evicted, format_clock(feasible_start))

    inserted: list[Item] = []
    if not any(milestone_of(item) == Milestone.airport_arrival for item in kept):
        inserted.append(
            _logistics_item(arrival, ARRIVAL_ACTIVITY, Milestone.airport_arrival, settings)
        )
    if not any(milestone_of(item) == Milestone.airport_transfer for item in kept):
        inserted.append(
            _logistics_item(feasible_start, TRANSFER_ACTIVITY, Milestone.airport_transfer, settings)
        )

    return DayTrim(items=sort_items(kept + inserted), inserted=inserted)


def trim_departure_day(
    items: list[Item], departure: int, settings: Settings, *, keep_arrival: bool = False
) -> DayTrim:
    """Apply the departure rule to one day's items.

    ``keep_arrival`` preserves arrival milestones on a one-day trip where
    the arrival rule already regenerated them.
    """
    airport_deadline = departure - settings.checkin_buffer_min
    max_activity = airport_deadline - settings.checkout_buffer_min
    regenerated = {Milestone.airport_departure}
    if not keep_arrival:
        regenerated.add(Milestone.airport_arrival)

    kept: list[Item] = []
    evicted = 0
    for item in items:
        if milestone_of(item) in regenerated:
            continue
        minutes = parse_clock(item.time)
        if minutes is None or minutes <= max_activity:
            kept.append(item)
            continue

        priority = item.priority(settings.default_priority)
        if priority >= settings.priority_core or (
            priority >= settings.priority_notable
            and minutes <= max_activity + settings.clamp_grace_min
        ):
            kept.append(item.model_copy(update={"time": format_clock(max_activity)}))
        else:
            evicted += 1

    if evicted:
        itinerary_evictions_total.labels(side="departure").inc(evicted)
        logger.info("Departure trimming evicted %d item(s) after %s", evicted, format_clock(max_activity))

    kept = sort_items(kept)
    checkout = _logistics_item(
        max_activity, CHECKOUT_ACTIVITY, Milestone.airport_departure, settings
    )

    kept_times = [m for m in (parse_clock(item.time) for item in kept) if m is not None]
    if kept_times:
        gap_start = max(kept_times) + settings.last_activity_duration_min
    else:
        gap_start = parse_clock(settings.gap_fill_default_start) or 0
    gap = GapWindow(start=gap_start, end=max_activity)

    return DayTrim(
        items=[*kept, checkout],
        inserted=[checkout],
        gap=gap if gap.minutes >= settings.gap_fill_min_minutes else None,
    )


def _place_key(place: str) -> str:
    return " ".join(place.lower().split())


def used_places(days: list[Day]) -> list[PlaceRef]:
    """Every distinct (place, activity) already in the trip."""
    seen: set[tuple[str, str]] = set()
    refs: list[PlaceRef] = []
    for day in days:
        for item in day.items:
            if not item.place.strip():
                continue
            key = (_place_key(item.place), item.activity)
            if key in seen:
                continue
            seen.add(key)
            refs.append(
                PlaceRef(place=item.place, activity=item.activity, priority_score=item.priority_score)
            )
    return refs


class ItineraryTrimmer:
    """Runs arrival/departure trimming with gap fill and cost estimation."""

    def __init__(
        self,
        client: CollaboratorClient | None = None,
        *,
        settings: Settings | None = None,
        executor: CollaboratorExecutor | None = None,
        call_config: CallConfig | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client or get_collaborator_client(self._settings)
        if executor is None or call_config is None:
            executor, call_config = default_executor(self._settings)
        self._executor = executor
        self._call_config = call_config

    async def trim(
        self,
        plan: Plan,
        arrival_time: str | None = None,
        departure_time: str | None = None,
        *,
        people: int = 1,
        cancel_token: CancelToken | None = None,
    ) -> Plan:
        """Return a new settled Plan trimmed to the real flight times.

        Raises:
            PlanValidationError: Neither time given, or a time is not HH:MM
            CallCancelledError: ``cancel_token`` fired while a call was pending
        """
        arrival = self._parse_input("arrivalTime", arrival_time)
        departure = self._parse_input("departureTime", departure_time)
        if arrival is None and departure is None:
            raise PlanValidationError("arrivalTime or departureTime is required")

        days = list(plan.days)
        first, last = 0, len(days) - 1

        if arrival is not None:
            trimmed = trim_arrival_day(days[first].items, arrival, self._settings)
            days[first] = await self._finish_day(
                plan, days[first], trimmed, people=people, cancel_token=cancel_token
            )

        if departure is not None:
            trimmed = trim_departure_day(
                days[last].items,
                departure,
                self._settings,
                keep_arrival=arrival is not None and first == last,
            )
            if trimmed.gap is not None:
                trimmed = await self._fill_gap(
                    plan, days, last, trimmed, trimmed.gap, cancel_token=cancel_token
                )
            days[last] = await self._finish_day(
                plan, days[last], trimmed, people=people, cancel_token=cancel_token
            )

        update: dict[str, object] = {"days": days}
        if arrival_time is not None:
            update["arrival_time"] = format_clock(arrival)
        if departure_time is not None:
            update["departure_time"] = format_clock(departure)
        return settle_plan(plan.model_copy(update=update))

    @staticmethod
    def _parse_input(name: str, value: str | None) -> int | None:
        if value is None:
            return None
        minutes = parse_clock(value)
        if minutes is None:
            raise PlanValidationError(f"{name} must be HH:MM, got {value!r}")
        return minutes

    async def _fill_gap(
        self,
        plan: Plan,
        days: list[Day],
        day_index: int,
        trimmed: DayTrim,
        gap: GapWindow,
        *,
        cancel_token: CancelToken | None,
    ) -> DayTrim:
        """Insert gap-fill items before the closing checkout entry.

        Suggestions timed outside ``gap`` are dropped.
        """
        day = days[day_index]
        kept, checkout = trimmed.items[:-1], trimmed.items[-1]

        working = [*days[:day_index], day.model_copy(update={"items": kept}), *days[day_index + 1 :]]
        request = GapScheduleRequest(
            destination=plan.destination,
            gap_start_time=format_clock(gap.start),
            gap_end_time=format_clock(gap.end),
            date=day.date,
            existing_schedule=kept,
            all_places=used_places(working),
            budget=plan.estimated_budget,
        )
        response = await self._executor.execute_or_none(
            CallContext(plan_id=plan.plan_id, collaborator="gap_schedule"),
            self._call_config,
            lambda: self._client.fill_gap(request),
            cancel_token,
        )
        if response is None or not response.items:
            return trimmed

        taken = {_place_key(ref.place) for ref in request.all_places}
        fillers: list[Item] = []
        for item in response.items:
            minutes = parse_clock(item.time)
            if minutes is None or not gap.start <= minutes <= gap.end:
                logger.info("Dropping gap suggestion %r at %r outside the gap window", item.place, item.time)
                continue
            key = _place_key(item.place)
            if key and key in taken:
                logger.info("Dropping gap suggestion for already planned place %r", item.place)
                continue
            taken.add(key)
            fillers.append(item)

        if not fillers:
            return trimmed
        return DayTrim(
            items=[*kept, *sort_items(fillers), checkout],
            inserted=[*trimmed.inserted, *fillers],
            gap=gap,
        )

    async def _finish_day(
        self,
        plan: Plan,
        day: Day,
        trimmed: DayTrim,
        *,
        people: int,
        cancel_token: CancelToken | None,
    ) -> Day:
        """Cost the inserted items in one batch, then re-aggregate the day."""
        inserted_ids = {id(item) for item in trimmed.inserted}
        positions = [
            index
            for index, item in enumerate(trimmed.items)
            if id(item) in inserted_ids and not item.cost
        ]

        items = list(trimmed.items)
        if positions:
            request = CostEstimateRequest(
                destination=plan.destination,
                activities=[
                    ActivityRef(
                        place=items[i].place, activity=items[i].activity, notes=items[i].notes
                    )
                    for i in positions
                ],
                people=max(1, people),
            )
            response = await self._executor.execute_or_none(
                CallContext(plan_id=plan.plan_id, collaborator="cost_estimate"),
                self._call_config,
                lambda: self._client.estimate_costs(request),
                cancel_token,
            )
            costs = response.cost_by_index() if response is not None else {}
            for request_index, item_index in enumerate(positions):
                items[item_index] = items[item_index].model_copy(
                    update={"cost": costs.get(request_index, 0)}
                )

        return aggregate_day(day.model_copy(update={"items": items}))


async def trim_plan(
    plan: Plan,
    arrival_time: str | None = None,
    departure_time: str | None = None,
    client: CollaboratorClient | None = None,
    *,
    people: int = 1,
    settings: Settings | None = None,
    cancel_token: CancelToken | None = None,
) -> Plan:
    """Convenience wrapper around :class:`ItineraryTrimmer`."""
    trimmer = ItineraryTrimmer(client, settings=settings)
    return await trimmer.trim(
        plan, arrival_time, departure_time, people=people, cancel_token=cancel_token
    )
