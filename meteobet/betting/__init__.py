"""Bet domain: categories, odds and placement gating."""

from .gate import CounterWindow, GateDecision, PlacementLock, RateLimitState, StakeGate
from .models import (
    Bet,
    BetMode,
    BetRequest,
    BetStatus,
    Category,
    CategoryGroup,
    CategoryRule,
    Season,
    Settlement,
    utc_now,
    verification_deadline,
)
from .odds import (
    apply_seasonal_adjustment,
    current_season,
    odds_for,
    rain_no_odds,
    rain_odds,
    rain_yes_odds,
    seasonal_description,
    temperature_odds,
    wind_odds,
)

__all__ = [
    "Bet",
    "BetMode",
    "BetRequest",
    "BetStatus",
    "Category",
    "CategoryGroup",
    "CategoryRule",
    "CounterWindow",
    "GateDecision",
    "PlacementLock",
    "RateLimitState",
    "Season",
    "Settlement",
    "StakeGate",
    "apply_seasonal_adjustment",
    "current_season",
    "odds_for",
    "rain_no_odds",
    "rain_odds",
    "rain_yes_odds",
    "seasonal_description",
    "temperature_odds",
    "utc_now",
    "verification_deadline",
    "wind_odds",
]
