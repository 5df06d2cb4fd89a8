"""Plan models - one trip with its days, timed items and budget.

Every model is frozen: an operation never edits a Plan in place, it builds a
new one with ``model_copy(update=...)``.
"""

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.app.models.common import BudgetCategory, Milestone
from backend.app.utils.money import coerce_money, round_money

# Pre-2024 plans used short breakdown keys.
_LEGACY_BREAKDOWN_KEYS = {
    "accommodation": "accommodation_cost",
    "transportation": "local_transport_cost",
    "food": "food_and_drink_cost",
    "activities": "activities_and_tours_cost",
    "misc": "contingency_and_misc",
}


def _optional_amount(value: Any) -> int | None:
    """Read an optional upstream amount; unusable values mean "not estimated"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.replace(",", "").strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    return coerce_money(value)


class Item(BaseModel):
    """Single scheduled entry within a day."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    time: str
    place: str = ""
    activity: str = ""
    notes: str | None = None
    cost: int | None = Field(default=None, ge=0)
    next_move_duration: str | None = None
    priority_score: int | None = Field(default=None, ge=0, le=100)
    image_search_link: str | None = None
    activity_image_query: str | None = None
    official_website_link: str | None = None
    purchase_search_link: str | None = None
    # Set on entries synthesized by the trimmer so they can be regenerated.
    milestone: Milestone | None = None

    @field_validator("place", "activity", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("cost", mode="before")
    @classmethod
    def coerce_cost(cls, v: Any) -> int | None:
        return _optional_amount(v)

    @field_validator("priority_score", mode="before")
    @classmethod
    def clamp_priority(cls, v: Any) -> int | None:
        """Clamp priority to 0-100; unusable values fall back to the default."""
        if v is None or isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return max(0, min(100, round_money(v)))

    @property
    def cost_or_zero(self) -> int:
        return self.cost or 0

    def priority(self, default: int = 10) -> int:
        """Priority score, or ``default`` when absent."""
        return self.priority_score if self.priority_score is not None else default

    def without_links(self) -> "Item":
        """Copy with every enrichment link cleared (pure logistics entry)."""
        return self.model_copy(
            update={
                "image_search_link": "",
                "activity_image_query": "",
                "official_website_link": "",
                "purchase_search_link": "",
            }
        )


class Day(BaseModel):
    """One calendar date of the trip."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: date
    title: str = ""
    summary: str = ""
    # Derived from items + transport; never authoritative on input.
    daily_estimated_cost: int = 0
    daily_transport_cost: int | None = None
    items: list[Item]

    @field_validator("daily_estimated_cost", mode="before")
    @classmethod
    def coerce_daily_cost(cls, v: Any) -> int:
        return _optional_amount(v) or 0

    @field_validator("daily_transport_cost", mode="before")
    @classmethod
    def coerce_transport_cost(cls, v: Any) -> int | None:
        return _optional_amount(v)

    @property
    def transport_cost_or_zero(self) -> int:
        return self.daily_transport_cost or 0

    def places(self) -> list[str]:
        """Ordered, non-empty place names of the day."""
        return [item.place.strip() for item in self.items if item.place and item.place.strip()]


class BudgetBreakdown(BaseModel):
    """Six-category decomposition of the trip total."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    flight_cost: int = 0
    accommodation_cost: int = 0
    local_transport_cost: int = 0
    food_and_drink_cost: int = 0
    activities_and_tours_cost: int = 0
    contingency_and_misc: int = 0

    @model_validator(mode="before")
    @classmethod
    def map_legacy_keys(cls, data: Any) -> Any:
        """Accept the short legacy keys when the current ones are absent."""
        if not isinstance(data, dict):
            return data
        mapped = dict(data)
        for legacy, current in _LEGACY_BREAKDOWN_KEYS.items():
            if current not in mapped and legacy in mapped:
                mapped[current] = mapped[legacy]
        return mapped

    @field_validator("*", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> int:
        return _optional_amount(v) or 0

    def get(self, category: BudgetCategory) -> int:
        return int(getattr(self, category.value))

    def total(self) -> int:
        return sum(self.get(category) for category in BudgetCategory)

    def with_values(self, values: dict[BudgetCategory, int]) -> "BudgetBreakdown":
        return self.model_copy(update={category.value: value for category, value in values.items()})


class Budget(BaseModel):
    """Trip budget: total amount plus its breakdown."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    total_amount: int
    currency: str = "KRW"
    breakdown: BudgetBreakdown = Field(default_factory=BudgetBreakdown)

    @field_validator("total_amount", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> Any:
        amount = _optional_amount(v)
        return v if amount is None else amount

    def is_settled(self) -> bool:
        """Whether total equals the exact sum of the breakdown."""
        return self.total_amount == self.breakdown.total()


class Summary(BaseModel):
    """Free-form trip summary carried through untouched."""

    model_config = ConfigDict(frozen=True, extra="allow")

    tips: list[str] = Field(default_factory=list)
    overview: str = ""
    notes: str = ""
    accommodation_selection_reason: str = ""
    accommodation_search_area: str = ""


class Plan(BaseModel):
    """Complete trip plan."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    plan_id: str = Field(alias="planId")
    destination: str = Field(min_length=1)
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    arrival_time: str | None = Field(default=None, alias="arrivalTime")
    departure_time: str | None = Field(default=None, alias="departureTime")
    estimated_budget: Budget
    summary: Summary = Field(default_factory=Summary)
    days: Annotated[list[Day], Field(min_length=1)]

    @model_validator(mode="after")
    def validate_day_sequence(self) -> "Plan":
        """Days must be chronological and span exactly start..end."""
        for previous, current in zip(self.days, self.days[1:]):
            if current.date <= previous.date:
                raise ValueError(f"Days out of order: {current.date} after {previous.date}")
        if self.days[0].date != self.start_date:
            raise ValueError(f"First day {self.days[0].date} != startDate {self.start_date}")
        if self.days[-1].date != self.end_date:
            raise ValueError(f"Last day {self.days[-1].date} != endDate {self.end_date}")
        return self

    def with_days(self, days: list[Day]) -> "Plan":
        return self.model_copy(update={"days": days})

    def with_budget(self, budget: Budget) -> "Plan":
        return self.model_copy(update={"estimated_budget": budget})

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the persisted JSON layout."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
