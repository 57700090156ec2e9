"""Bet records, categories and the per-category settlement rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator


def utc_now() -> datetime:
    """Default wall clock for the engine."""
    return datetime.now(timezone.utc)


BetStatus = Literal["pending", "won", "lost", "error"]
BetMode = Literal["Simple", "Pro"]
ObservedField = Literal["rain", "current", "min", "max", "wind_max"]


class CategoryGroup(str, Enum):
    """Categories that share a rate-limit counter and an observation feed."""

    RAIN = "rain"
    TEMPERATURE = "temperature"
    WIND = "wind"

    @property
    def deadline_hours(self) -> int:
        return 24 if self is CategoryGroup.RAIN else 12


@dataclass(frozen=True)
class CategoryRule:
    group: CategoryGroup
    label: str
    unit: str
    observed_field: ObservedField
    margin: float | None = None
    typed_field: str | None = None
    decimals: int = 1
    domain: tuple[float, float] = (0.0, 500.0)


class Category(str, Enum):
    """Kind of weather prediction. Each member carries its settlement rule."""

    RAIN_YES = "rain_yes"
    RAIN_NO = "rain_no"
    RAIN_AMOUNT = "rain_amount"
    TEMP_MIN = "temp_min"
    TEMP_MAX = "temp_max"
    TEMPERATURE = "temperature"
    WIND_MAX = "wind_max"

    @property
    def rule(self) -> CategoryRule:
        return _RULES[self]

    @property
    def group(self) -> CategoryGroup:
        return self.rule.group

    @property
    def needs_value(self) -> bool:
        return self.rule.margin is not None


_TEMPERATURE_DOMAIN = (-50.0, 60.0)

_RULES: dict[Category, CategoryRule] = {
    Category.RAIN_YES: CategoryRule(
        group=CategoryGroup.RAIN, label="rain", unit=" mm",
        observed_field="rain", decimals=2,
    ),
    Category.RAIN_NO: CategoryRule(
        group=CategoryGroup.RAIN, label="no rain", unit=" mm",
        observed_field="rain", decimals=2,
    ),
    Category.RAIN_AMOUNT: CategoryRule(
        group=CategoryGroup.RAIN, label="rain amount", unit=" mm",
        observed_field="rain", margin=0.5, typed_field="rain_mm",
        decimals=2, domain=(0.0, 500.0),
    ),
    Category.TEMP_MIN: CategoryRule(
        group=CategoryGroup.TEMPERATURE, label="minimum temperature", unit="°C",
        observed_field="min", margin=1.0, typed_field="temp_min_c",
        domain=_TEMPERATURE_DOMAIN,
    ),
    Category.TEMP_MAX: CategoryRule(
        group=CategoryGroup.TEMPERATURE, label="maximum temperature", unit="°C",
        observed_field="max", margin=1.0, typed_field="temp_max_c",
        domain=_TEMPERATURE_DOMAIN,
    ),
    Category.TEMPERATURE: CategoryRule(
        group=CategoryGroup.TEMPERATURE, label="current temperature", unit="°C",
        observed_field="current", margin=1.0, typed_field="temperature_c",
        domain=_TEMPERATURE_DOMAIN,
    ),
    Category.WIND_MAX: CategoryRule(
        group=CategoryGroup.WIND, label="maximum wind speed", unit=" km/h",
        observed_field="wind_max", margin=3.0, typed_field="wind_kmh_max",
        domain=(0.0, 400.0),
    ),
}

if set(_RULES) != set(Category):
    raise RuntimeError("Every bet category needs a settlement rule")


class Season(str, Enum):
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"
    SPRING = "spring"

    @classmethod
    def from_month(cls, month: int) -> Season:
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")
        if 6 <= month <= 9:
            return cls.SUMMER
        if month in (10, 11):
            return cls.AUTUMN
        if month in (12, 1, 2):
            return cls.WINTER
        return cls.SPRING


# ============================================================================
# Pydantic Models
# ============================================================================


class BetRequest(BaseModel):
    """Caller input for a new wager."""

    category: Category
    stake: int
    available_funds: int
    predicted_value: float | None = None
    mode: BetMode = "Simple"
    owner: str = "anonymous"

    @model_validator(mode="after")
    def check_predicted_value(self) -> BetRequest:
        if self.category.needs_value and self.predicted_value is None:
            raise ValueError(f"{self.category.value} bets require a predicted value")
        if not self.category.needs_value:
            self.predicted_value = None
        return self


class Bet(BaseModel):
    """A single wager as persisted in the ledger."""

    id: str
    owner: str = "anonymous"
    category: Category
    predicted_value: float | None = None

    # Category-typed copy of the prediction
    rain_mm: float | None = None
    temp_min_c: float | None = None
    temp_max_c: float | None = None
    temperature_c: float | None = None
    wind_kmh_max: float | None = None

    stake: int = Field(ge=10, le=1000)
    odds: float = Field(gt=0)
    mode: BetMode = "Simple"
    range_min: float | None = None
    range_max: float | None = None

    placed_at: datetime
    verification_deadline: datetime

    # Settlement fields, written together
    status: BetStatus = "pending"
    result: float | None = None
    won: bool | None = None
    explanation: str | None = None
    verified: bool = False
    resolved_at: datetime | None = None

    @model_validator(mode="after")
    def check_deadline(self) -> Bet:
        if self.verification_deadline <= self.placed_at:
            raise ValueError("verification_deadline must be after placed_at")
        return self

    @property
    def has_range(self) -> bool:
        return self.mode == "Pro" and self.range_min is not None and self.range_max is not None

    @property
    def is_terminal(self) -> bool:
        return self.status != "pending"

    @property
    def payout(self) -> int | None:
        """Coins returned to the owner once settled."""
        if self.status == "won":
            return round(self.stake * self.odds)
        if self.status == "lost":
            return 0
        if self.status == "error":
            return self.stake
        return None

    def is_due(self, now: datetime) -> bool:
        return self.status == "pending" and not self.verified and self.verification_deadline <= now


class Settlement(BaseModel):
    """The settlement fields of a bet, applied as one unit."""

    status: Literal["won", "lost", "error"]
    result: float | None = None
    won: bool | None = None
    explanation: str
    resolved_at: datetime


def verification_deadline(category: Category, placed_at: datetime) -> datetime:
    return placed_at + timedelta(hours=category.group.deadline_hours)
