"""Spread the lodging budget across the nights actually stayed."""

import logging

from backend.app.models.common import SpendCategory
from backend.app.models.plan import Day, Item, Plan
from backend.app.reconciliation.classifier import classify_item
from backend.app.utils.clock import parse_clock
from backend.app.utils.money import round_money

logger = logging.getLogger(__name__)


def find_lodging_checkpoint(day: Day) -> int | None:
    """Index of the day's latest lodging item, or None.

    Items whose time cannot be parsed rank by list position, so when no
    lodging time parses the last lodging item in list order wins.
    """
    candidates = [
        (index, item)
        for index, item in enumerate(day.items)
        if classify_item(item) == SpendCategory.lodging
    ]
    if not candidates:
        return None

    timed = [(parse_clock(item.time), index) for index, item in candidates]
    parsed = [(minutes, index) for minutes, index in timed if minutes is not None]
    if len(parsed) == len(candidates):
        # max() over (minutes, index) keeps the later entry on a time tie
        return max(parsed)[1]
    return candidates[-1][0]


def distribute_accommodation(plan: Plan) -> Plan:
    """Assign an even nightly share of the lodging budget to each checkpoint.

    The last day never receives a share. Prior checkpoint costs are
    overwritten. With no checkpoint anywhere the budget stays undistributed.
    """
    total = plan.estimated_budget.breakdown.accommodation_cost
    checkpoints: dict[int, int] = {}
    for day_index, day in enumerate(plan.days[:-1]):
        item_index = find_lodging_checkpoint(day)
        if item_index is not None:
            checkpoints[day_index] = item_index

    if not checkpoints:
        if total > 0 and len(plan.days) > 1:
            logger.info(
                "No lodging checkpoint in plan %s; accommodation budget %d left undistributed",
                plan.plan_id,
                total,
            )
        return plan

    per_night = round_money(total / len(checkpoints))

    days: list[Day] = []
    for day_index, day in enumerate(plan.days):
        item_index = checkpoints.get(day_index)
        if item_index is None or day.items[item_index].cost == per_night:
            days.append(day)
            continue
        items: list[Item] = list(day.items)
        items[item_index] = items[item_index].model_copy(update={"cost": per_night})
        days.append(day.model_copy(update={"items": items}))

    return plan.with_days(days)
