"""Per-day local transport cost population."""

import asyncio
import logging

from backend.app.config import Settings, get_settings
from backend.app.models.plan import Day, Plan
from backend.app.models.services import TransportCostRequest
from backend.app.reconciliation.collaborators import CollaboratorClient, get_collaborator_client
from backend.app.reconciliation.normalizer import settle_plan
from backend.app.tools.executor import (
    CallConfig,
    CallContext,
    CancelToken,
    CollaboratorExecutor,
    default_executor,
)

logger = logging.getLogger(__name__)


async def populate_transport_costs(
    plan: Plan,
    client: CollaboratorClient | None = None,
    *,
    people: int = 1,
    settings: Settings | None = None,
    executor: CollaboratorExecutor | None = None,
    call_config: CallConfig | None = None,
    cancel_token: CancelToken | None = None,
) -> Plan:
    """Fill ``daily_transport_cost`` for every day, then settle the plan.

    Days are priced concurrently. A day with fewer than two places, or
    whose lookup failed, gets 0. Nothing is written back until every
    lookup has finished, so the plan is settled exactly once.
    """
    settings = settings or get_settings()
    client = client or get_collaborator_client(settings)
    if executor is None or call_config is None:
        executor, call_config = default_executor(settings)

    async def price_day(index: int, day: Day) -> int:
        route = day.places()
        if len(route) < 2:
            return 0
        request = TransportCostRequest(
            destination=plan.destination, route=route, people=max(1, people)
        )
        response = await executor.execute_or_none(
            CallContext(plan_id=plan.plan_id, collaborator="transport_cost"),
            call_config,
            lambda: client.estimate_transport(request),
            cancel_token,
        )
        if response is None:
            logger.info("Transport cost for day %d of plan %s defaulted to 0", index + 1, plan.plan_id)
            return 0
        return response.total_cost

    costs = await asyncio.gather(*(price_day(i, day) for i, day in enumerate(plan.days)))

    days = [
        day.model_copy(update={"daily_transport_cost": cost})
        for day, cost in zip(plan.days, costs, strict=True)
    ]
    return settle_plan(plan.with_days(days))
