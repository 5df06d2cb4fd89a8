"""Budget rebalancing against user-supplied real flight and lodging prices.

The trip total is preserved: whatever the real flight and lodging prices
leave over is split across the four local categories. Item-level costs are
never rewritten here; days are only re-aggregated.
"""

import logging
import math
from dataclasses import dataclass
from typing import Protocol

from backend.app.config import Settings, get_settings
from backend.app.models.common import LOCAL_CATEGORIES, BudgetCategory
from backend.app.models.plan import Budget, Plan
from backend.app.reconciliation.aggregation import aggregate_plan
from backend.app.reconciliation.errors import CollaboratorError, PlanValidationError
from backend.app.tools.executor import CallConfig, CallContext, CollaboratorExecutor, default_executor
from backend.app.utils.metrics import budget_corrections_total
from backend.app.utils.money import round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalSplit:
    """Remaining local budget split across the four local categories."""

    local_transport_cost: int
    food_and_drink_cost: int
    activities_and_tours_cost: int
    contingency_and_misc: int

    def total(self) -> int:
        return (
            self.local_transport_cost
            + self.food_and_drink_cost
            + self.activities_and_tours_cost
            + self.contingency_and_misc
        )

    def as_values(self) -> dict[BudgetCategory, int]:
        return {category: getattr(self, category.value) for category in LOCAL_CATEGORIES}


class BudgetRedistributor(Protocol):
    """Splits the remaining local budget across the four local categories."""

    async def redistribute(self, original: Budget, remaining: int) -> LocalSplit:
        ...


class CarryOverRedistributor:
    """Keeps the original ratio between the four local figures.

    Falls back to an even split when the original local figures are all 0.
    Integer floor division keeps the sum exact; contingency takes the rest.
    """

    async def redistribute(self, original: Budget, remaining: int) -> LocalSplit:
        figures = [original.breakdown.get(category) for category in LOCAL_CATEGORIES]
        base = sum(figures)
        if base <= 0:
            shares = [remaining // 4] * 3
        else:
            shares = [remaining * figure // base for figure in figures[:3]]
        return LocalSplit(*shares, remaining - sum(shares))


def _real_cost(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PlanValidationError(f"{name} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise PlanValidationError(f"{name} must be a finite number")
    if value < 0:
        raise PlanValidationError(f"{name} must be >= 0")
    return round_money(value)


def validate_real_costs(original: Budget, real_flight: object, real_accommodation: object) -> tuple[int, int]:
    """Validate rebalance inputs.

    Raises:
        PlanValidationError: Non-numeric/negative inputs, a negative original
            total, or real costs exceeding the original total
    """
    flight = _real_cost("realFlightCost", real_flight)
    accommodation = _real_cost("realAccommodationCost", real_accommodation)
    if original.total_amount < 0:
        raise PlanValidationError("original budget total must be >= 0")
    if flight + accommodation > original.total_amount:
        raise PlanValidationError(
            f"real flight ({flight}) + accommodation ({accommodation}) exceed "
            f"the original total ({original.total_amount})"
        )
    return flight, accommodation


def reconcile_split(split: LocalSplit, remaining: int, tolerance: int) -> LocalSplit:
    """Make the split sum exactly to ``remaining`` via contingency.

    Drift within ``tolerance`` is ordinary rounding slack; beyond it the
    correction is logged as a consistency error.

    Raises:
        CollaboratorError: Negative figures, or a residual larger than
            contingency can absorb
    """
    if any(value < 0 for value in split.as_values().values()):
        raise CollaboratorError(f"redistribution returned negative figures: {split}")

    residual = remaining - split.total()
    if residual == 0:
        return split

    if abs(residual) > tolerance:
        budget_corrections_total.labels(stage="rebalance").inc()
        logger.warning(
            "Local split off by %d (tolerance %d); contingency absorbs the residual",
            residual,
            tolerance,
        )
    contingency = split.contingency_and_misc + residual
    if contingency < 0:
        raise CollaboratorError(f"contingency cannot absorb residual {residual}")
    return LocalSplit(
        split.local_transport_cost,
        split.food_and_drink_cost,
        split.activities_and_tours_cost,
        contingency,
    )


async def rebalance_budget(
    original: Budget,
    real_flight: object,
    real_accommodation: object,
    redistributor: BudgetRedistributor | None = None,
    *,
    plan_id: str = "-",
    settings: Settings | None = None,
    executor: CollaboratorExecutor | None = None,
    call_config: CallConfig | None = None,
) -> Budget | None:
    """Rebalanced Budget, or None when redistribution failed.

    Raises:
        PlanValidationError: Rejected inputs (nothing is computed)
    """
    settings = settings or get_settings()
    flight, accommodation = validate_real_costs(original, real_flight, real_accommodation)
    remaining = original.total_amount - flight - accommodation

    redistributor = redistributor or CarryOverRedistributor()
    if executor is None or call_config is None:
        executor, call_config = default_executor(settings)

    async def _split() -> LocalSplit:
        split = await redistributor.redistribute(original, remaining)
        return reconcile_split(split, remaining, settings.rebalance_tolerance)

    split = await executor.execute_or_none(
        CallContext(plan_id=plan_id, collaborator="budget_redistribution"), call_config, _split
    )
    if split is None:
        return None

    breakdown = original.breakdown.with_values(
        {
            BudgetCategory.flight: flight,
            BudgetCategory.accommodation: accommodation,
            **split.as_values(),
        }
    )
    return original.model_copy(
        update={"breakdown": breakdown, "total_amount": flight + accommodation + remaining}
    )


@dataclass(frozen=True)
class RebalanceOutcome:
    """Result of a plan-level rebalance."""

    plan: Plan
    applied: bool


async def rebalance_plan(
    plan: Plan,
    real_flight: object,
    real_accommodation: object,
    redistributor: BudgetRedistributor | None = None,
    *,
    settings: Settings | None = None,
    executor: CollaboratorExecutor | None = None,
    call_config: CallConfig | None = None,
) -> RebalanceOutcome:
    """Rebalance ``plan``'s budget; on redistribution failure keep it unchanged.

    Raises:
        PlanValidationError: Rejected inputs (the plan is untouched)
    """
    budget = await rebalance_budget(
        plan.estimated_budget,
        real_flight,
        real_accommodation,
        redistributor,
        plan_id=plan.plan_id,
        settings=settings,
        executor=executor,
        call_config=call_config,
    )
    if budget is None:
        logger.warning("Rebalance aborted for plan %s; original budget retained", plan.plan_id)
        return RebalanceOutcome(plan=plan, applied=False)

    rebalanced = aggregate_plan(plan).with_budget(budget)
    drift = sum(day.daily_estimated_cost for day in rebalanced.days) - budget.total_amount
    if drift:
        logger.info("Plan %s daily costs differ from rebalanced total by %d", plan.plan_id, drift)
    return RebalanceOutcome(plan=rebalanced, applied=True)
