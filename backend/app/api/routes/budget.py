"""Rebalance-budget service endpoint."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from backend.app.config import Settings, get_settings
from backend.app.models.plan import Budget
from backend.app.reconciliation.errors import PlanValidationError
from backend.app.reconciliation.rebalancer import rebalance_budget

router = APIRouter(prefix="/api", tags=["budget"])


class RebalanceBudgetRequest(BaseModel):
    """Request body for POST /api/rebalance-budget."""

    model_config = ConfigDict(populate_by_name=True)

    original_budget: Budget = Field(alias="originalBudget")
    real_flight_cost: Any = Field(alias="realFlightCost")
    real_accommodation_cost: Any = Field(alias="realAccommodationCost")


class RebalanceBudgetResponse(BaseModel):
    """Response for POST /api/rebalance-budget."""

    estimated_budget: Budget


@router.post("/rebalance-budget", response_model=RebalanceBudgetResponse)
async def rebalance_budget_endpoint(
    request: RebalanceBudgetRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RebalanceBudgetResponse:
    """Split what real flight and lodging prices leave across local categories.

    Returns:
        422 when the inputs are rejected, 502 when redistribution failed
    """
    try:
        budget = await rebalance_budget(
            request.original_budget,
            request.real_flight_cost,
            request.real_accommodation_cost,
            settings=settings,
        )
    except PlanValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    if budget is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Budget redistribution failed; original budget unchanged",
        )
    return RebalanceBudgetResponse(estimated_budget=budget)
