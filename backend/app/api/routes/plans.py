"""Plan reconciliation endpoints.

Every endpoint accepts a raw plan in the persisted JSON layout, validates it
and returns a settled plan in the same layout.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from backend.app.config import Settings, get_settings
from backend.app.models.plan import Plan
from backend.app.reconciliation.collaborators import CollaboratorClient, get_collaborator_client
from backend.app.reconciliation.errors import PlanStructureError, PlanValidationError
from backend.app.reconciliation.ingest import ingest_plan
from backend.app.reconciliation.rebalancer import rebalance_plan
from backend.app.reconciliation.transport import populate_transport_costs
from backend.app.reconciliation.trimmer import ItineraryTrimmer

router = APIRouter(prefix="/plans", tags=["plans"])


def get_collaborator(
    settings: Annotated[Settings, Depends(get_settings)],
) -> CollaboratorClient:
    """Collaborator client dependency (overridden in tests)."""
    return get_collaborator_client(settings)


class RebalanceRequest(BaseModel):
    """Request body for POST /plans/rebalance."""

    model_config = ConfigDict(populate_by_name=True)

    plan: dict[str, Any]
    real_flight_cost: Any = Field(alias="realFlightCost")
    real_accommodation_cost: Any = Field(alias="realAccommodationCost")


class RebalanceResponse(BaseModel):
    """Response for POST /plans/rebalance."""

    plan: dict[str, Any]
    applied: bool


class TrimRequest(BaseModel):
    """Request body for POST /plans/trim."""

    model_config = ConfigDict(populate_by_name=True)

    plan: dict[str, Any]
    arrival_time: str | None = Field(None, alias="arrivalTime")
    departure_time: str | None = Field(None, alias="departureTime")
    people: int = Field(1, ge=1)


class TransportRequest(BaseModel):
    """Request body for POST /plans/transport."""

    plan: dict[str, Any]
    people: int = Field(1, ge=1)


def _accept(raw: dict[str, Any]) -> Plan:
    try:
        return ingest_plan(raw)
    except PlanStructureError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "errors": e.errors},
        ) from e


def _rejected(e: PlanValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.post("/settle")
async def settle(raw: dict[str, Any]) -> dict[str, Any]:
    """Validate an upstream plan and return it settled."""
    return _accept(raw).to_wire()


@router.post("/rebalance", response_model=RebalanceResponse)
async def rebalance(
    request: RebalanceRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> RebalanceResponse:
    """Rebalance the budget against real flight and lodging prices.

    Returns:
        The rebalanced plan, or the settled input plan with ``applied=False``
        when redistribution failed
    """
    plan = _accept(request.plan)
    try:
        outcome = await rebalance_plan(
            plan,
            request.real_flight_cost,
            request.real_accommodation_cost,
            settings=settings,
        )
    except PlanValidationError as e:
        raise _rejected(e) from e
    return RebalanceResponse(plan=outcome.plan.to_wire(), applied=outcome.applied)


@router.post("/trim")
async def trim(
    request: TrimRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[CollaboratorClient, Depends(get_collaborator)],
) -> dict[str, Any]:
    """Trim the first/last day to real flight arrival/departure times."""
    plan = _accept(request.plan)
    trimmer = ItineraryTrimmer(client, settings=settings)
    try:
        trimmed = await trimmer.trim(
            plan, request.arrival_time, request.departure_time, people=request.people
        )
    except PlanValidationError as e:
        raise _rejected(e) from e
    return trimmed.to_wire()


@router.post("/transport")
async def transport(
    request: TransportRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[CollaboratorClient, Depends(get_collaborator)],
) -> dict[str, Any]:
    """Populate per-day local transport costs."""
    plan = _accept(request.plan)
    populated = await populate_transport_costs(
        plan, client, people=request.people, settings=settings
    )
    return populated.to_wire()
