"""Plan session: publishes immutable Plan values to subscribers.

Operations never edit the published Plan; they return a new one, and the
session decides whether it is still current. A result computed from a
revision that a user edit has since replaced is discarded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from backend.app.models.plan import Item, Plan
from backend.app.reconciliation.normalizer import settle_plan
from backend.app.tools.executor import CallCancelledError, CancelToken

logger = logging.getLogger(__name__)

V = TypeVar("V")

Subscriber = Callable[[Plan, int], None]
Operation = Callable[[Plan, CancelToken], Awaitable[Plan]]


class PlanSession:
    """Holds the current Plan and its revision counter."""

    def __init__(self, plan: Plan) -> None:
        self._plan = plan
        self._revision = 0
        self._lock = asyncio.Lock()
        self._subscribers: list[Subscriber] = []
        self._token = CancelToken()

    @property
    def current(self) -> Plan:
        return self._plan

    @property
    def revision(self) -> int:
        return self._revision

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber``; returns an unsubscribe callable."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def _publish(self, plan: Plan) -> None:
        self._plan = plan
        self._revision += 1
        for subscriber in list(self._subscribers):
            subscriber(plan, self._revision)

    def edit(self, plan: Plan) -> Plan:
        """Replace the current Plan with a user edit and return it settled.

        The edit is settled before publishing. Any operation still awaiting a
        collaborator is cancelled; its result will not be published.
        """
        self._token.cancel()
        settled = settle_plan(plan)
        self._publish(settled)
        return settled

    async def run(self, operation: Operation) -> Plan | None:
        """Run ``operation`` against the current Plan and publish its result.

        Operations run one at a time. Returns None when the result was
        discarded because the Plan changed underneath it.
        """
        async with self._lock:
            started_at = self._revision
            token = self._token = CancelToken()
            try:
                result = await operation(self._plan, token)
            except CallCancelledError:
                logger.info("Discarded cancelled operation on plan %s", self._plan.plan_id)
                return None

            if self._revision != started_at or token.cancelled:
                logger.info(
                    "Discarded stale result for plan %s (revision %d, now %d)",
                    result.plan_id,
                    started_at,
                    self._revision,
                )
                return None

            self._publish(result)
            return result


def item_fingerprint(item: Item) -> tuple[str, str]:
    return (item.place.strip(), item.activity.strip())


class EnrichmentCache(Generic[V]):
    """Per-item lookup memo keyed by (day index, item index).

    An entry is only valid while the item at that position keeps the same
    place and activity text.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[int, int], tuple[tuple[str, str], V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, day_index: int, item_index: int, item: Item) -> V | None:
        key = (day_index, item_index)
        entry = self._entries.get(key)
        if entry is None:
            return None
        fingerprint, value = entry
        if fingerprint != item_fingerprint(item):
            del self._entries[key]
            return None
        return value

    def put(self, day_index: int, item_index: int, item: Item, value: V) -> None:
        self._entries[(day_index, item_index)] = (item_fingerprint(item), value)

    async def get_or_load(
        self,
        day_index: int,
        item_index: int,
        item: Item,
        loader: Callable[[Item], Awaitable[V | None]],
    ) -> V | None:
        """Cached value, or ``loader(item)`` stored on success."""
        cached = self.get(day_index, item_index, item)
        if cached is not None:
            return cached
        value = await loader(item)
        if value is not None:
            self.put(day_index, item_index, item, value)
        return value

    def invalidate_changed(self, plan: Plan) -> int:
        """Drop entries whose item moved, vanished or changed text."""
        stale = []
        for (day_index, item_index), (fingerprint, _) in self._entries.items():
            try:
                item = plan.days[day_index].items[item_index]
            except IndexError:
                stale.append((day_index, item_index))
                continue
            if item_fingerprint(item) != fingerprint:
                stale.append((day_index, item_index))
        for key in stale:
            del self._entries[key]
        return len(stale)
