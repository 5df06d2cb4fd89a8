"""Wire models for the external collaborator services."""

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.models.plan import Budget, Item
from backend.app.utils.money import coerce_money


class PlaceRef(BaseModel):
    """A place already used somewhere in the trip (gap-fill de-duplication)."""

    place: str
    activity: str = ""
    priority_score: int | None = None


class GapScheduleRequest(BaseModel):
    """Request for filler items covering an unscheduled window."""

    model_config = ConfigDict(populate_by_name=True)

    destination: str
    gap_start_time: str = Field(alias="gapStartTime")
    gap_end_time: str = Field(alias="gapEndTime")
    date: date
    existing_schedule: list[Item] = Field(default_factory=list, alias="existingSchedule")
    all_places: list[PlaceRef] = Field(default_factory=list, alias="allPlaces")
    budget: Budget


class GapScheduleResponse(BaseModel):
    """Filler items; empty when the gap is too short or nothing fits."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[Item] = Field(default_factory=list)
    total_cost: int = Field(default=0, alias="totalCost")


class ActivityRef(BaseModel):
    """One activity whose cost should be estimated."""

    place: str
    activity: str
    notes: str | None = None


class CostEstimateRequest(BaseModel):
    """Batched cost-estimation request for one day's uncosted items."""

    destination: str
    activities: Annotated[list[ActivityRef], Field(min_length=1)]
    people: int = Field(default=1, ge=1)


class ActivityCost(BaseModel):
    """Estimated cost of the activity at ``activity_index`` in the request."""

    activity_index: int = Field(ge=0)
    cost: int = 0
    breakdown: dict[str, int] = Field(default_factory=dict)

    @field_validator("cost", mode="before")
    @classmethod
    def coerce_cost(cls, v: Any) -> int:
        return coerce_money(v)


class CostEstimateResponse(BaseModel):
    """Index-aligned cost estimates."""

    costs: list[ActivityCost] = Field(default_factory=list)

    def cost_by_index(self) -> dict[int, int]:
        return {entry.activity_index: entry.cost for entry in self.costs}


class TransportCostRequest(BaseModel):
    """Local-transport cost request for one day's ordered stops."""

    destination: str
    route: Annotated[list[str], Field(min_length=2)]
    people: int = Field(default=1, ge=1)


class TransportLeg(BaseModel):
    """One leg of a priced route."""

    model_config = ConfigDict(populate_by_name=True)

    from_place: str = Field(default="", alias="from")
    to_place: str = Field(default="", alias="to")
    transport: str = ""
    cost: int = 0

    @field_validator("cost", mode="before")
    @classmethod
    def coerce_cost(cls, v: Any) -> int:
        return coerce_money(v)


class TransportCostResponse(BaseModel):
    """Priced route for one day."""

    total_cost: int = 0
    breakdown: list[TransportLeg] = Field(default_factory=list)

    @field_validator("total_cost", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> int:
        return coerce_money(v)
