"""Odds tables and seasonal adjustment.

All functions are pure: the season is passed in, or derived from the wall
clock on every call when omitted. Base tables are stepped lookups of
``(upper_bound, odds)`` pairs; the seasonal factor is applied after the
lookup, never before.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from .models import Category, CategoryGroup, Season, utc_now

OddsKind = Literal["rain", "rain_yes", "rain_no", "temperature", "wind"]

RAIN_YES_BASE_ODDS = 4.0
RAIN_NO_BASE_ODDS = 1.15

_RAIN_TABLE: list[tuple[float, float]] = [
    (1, 3.5),
    (3, 5.0),
    (5, 8.0),
    (10, 15.0),
    (15, 25.0),
    (20, 40.0),
    (30, 60.0),
    (40, 100.0),
    (50, 150.0),
    (75, 250.0),
    (100, 500.0),
]
_RAIN_TOP_ODDS = 1000.0

_WIND_TABLE: list[tuple[float, float]] = [
    (5, 2.5),
    (10, 1.8),
    (15, 2.0),
    (20, 2.5),
    (25, 3.5),
    (30, 5.0),
    (40, 8.0),
    (50, 15.0),
    (60, 30.0),
    (75, 60.0),
    (90, 120.0),
]
_WIND_TOP_ODDS = 250.0

# (strictly-below bound, odds) for the cold tail, then inclusive steps, then the hot tail
_TEMPERATURE_TABLES: dict[Season, tuple[tuple[float, float], list[tuple[float, float]], float]] = {
    Season.SUMMER: ((20, 8.0), [(25, 3.0), (30, 1.5), (35, 2.0), (40, 5.0)], 15.0),
    Season.WINTER: ((8, 10.0), [(12, 3.0), (16, 1.8), (20, 2.5), (25, 6.0)], 15.0),
    Season.SPRING: ((12, 6.0), [(16, 2.5), (20, 1.8), (25, 2.0), (30, 4.0)], 10.0),
    Season.AUTUMN: ((12, 7.0), [(16, 3.0), (20, 1.7), (25, 2.2), (30, 5.0)], 12.0),
}

_SEASON_DESCRIPTIONS: dict[Season, str] = {
    Season.SUMMER: "Summer: very high odds for rain, high for strong wind, low for high temperatures.",
    Season.WINTER: "Winter: lower odds for rain, moderate for wind, high for low temperatures.",
    Season.SPRING: "Spring: moderate odds for rain, slightly reduced for wind, balanced for temperature.",
    Season.AUTUMN: "Autumn: very low odds for rain (rainy season), moderate for wind and temperature.",
}


def current_season(now: datetime | None = None) -> Season:
    """Season for the given instant (defaults to the wall clock, never cached)."""
    now = now or utc_now()
    return Season.from_month(now.month)


def _stepped(value: float, table: list[tuple[float, float]], top: float) -> float:
    for upper, odds in table:
        if value <= upper:
            return odds
    return top


def apply_seasonal_adjustment(
    base_odds: float,
    kind: OddsKind,
    value: float,
    season: Season | None = None,
) -> float:
    """Scale base odds by a season- and threshold-dependent factor."""
    season = season or current_season()

    if season is Season.SUMMER:
        if kind == "rain" and value > 0:
            return base_odds * (1.5 if value <= 1 else 1.8)
        if kind == "rain_yes":
            return base_odds * 1.8
        if kind == "rain_no":
            return base_odds * 0.8
        if kind == "wind" and value > 20:
            return base_odds * 1.3
        if kind == "temperature" and value > 30:
            return base_odds * 0.8

    elif season is Season.WINTER:
        if kind == "rain" and value > 0:
            return base_odds * (0.7 if value <= 3 else 0.8)
        if kind == "rain_yes":
            return base_odds * 0.7
        if kind == "rain_no":
            return base_odds * 1.2
        if kind == "wind" and value > 30:
            return base_odds * 0.8
        if kind == "temperature" and value < 14:
            return base_odds * 1.2

    elif season is Season.AUTUMN:
        if kind == "rain" and value > 0:
            return base_odds * (0.6 if value <= 5 else 0.7)
        if kind == "rain_yes":
            return base_odds * 0.6
        if kind == "rain_no":
            return base_odds * 1.4
        if kind == "wind" and value > 25:
            return base_odds * 0.9

    elif season is Season.SPRING:
        if kind == "rain" and value > 0:
            return base_odds * 0.9 if value <= 3 else base_odds
        if kind == "rain_yes":
            return base_odds * 0.9
        if kind == "rain_no":
            return base_odds * 1.1
        if kind == "wind" and value > 25:
            return base_odds * 0.9

    return base_odds


def rain_base_odds(mm: float) -> float:
    if mm < 0.01:
        return 1.15
    return _stepped(mm, _RAIN_TABLE, _RAIN_TOP_ODDS)


def rain_odds(mm: float, season: Season | None = None) -> float:
    """Odds for a rain-amount prediction in millimetres."""
    return apply_seasonal_adjustment(rain_base_odds(mm), "rain", mm, season)


def rain_yes_odds(season: Season | None = None) -> float:
    return apply_seasonal_adjustment(RAIN_YES_BASE_ODDS, "rain_yes", 1, season)


def rain_no_odds(season: Season | None = None) -> float:
    return apply_seasonal_adjustment(RAIN_NO_BASE_ODDS, "rain_no", 0, season)


def temperature_base_odds(temp: float, season: Season) -> float:
    (cold_bound, cold_odds), steps, hot_odds = _TEMPERATURE_TABLES[season]
    if temp < cold_bound:
        return cold_odds
    return _stepped(temp, steps, hot_odds)


def temperature_odds(temp: float, season: Season | None = None) -> float:
    """Odds for a temperature prediction in degrees Celsius."""
    season = season or current_season()
    return apply_seasonal_adjustment(
        temperature_base_odds(temp, season), "temperature", temp, season
    )


def wind_base_odds(speed: float) -> float:
    return _stepped(speed, _WIND_TABLE, _WIND_TOP_ODDS)


def wind_odds(speed: float, season: Season | None = None) -> float:
    """Odds for a maximum wind speed prediction in km/h."""
    return apply_seasonal_adjustment(wind_base_odds(speed), "wind", speed, season)


def odds_for(category: Category, value: float | None, season: Season | None = None) -> float:
    """Multiplier offered for a bet, captured once at placement time."""
    season = season or current_season()

    if category is Category.RAIN_YES:
        odds = rain_yes_odds(season)
    elif category is Category.RAIN_NO:
        odds = rain_no_odds(season)
    elif value is None:
        raise ValueError(f"{category.value} odds require a predicted value")
    elif category.group is CategoryGroup.RAIN:
        odds = rain_odds(value, season)
    elif category.group is CategoryGroup.TEMPERATURE:
        odds = temperature_odds(value, season)
    else:
        odds = wind_odds(value, season)

    return round(odds, 4)


def seasonal_description(season: Season | None = None) -> str:
    """One-line summary of how the season shifts the odds."""
    return _SEASON_DESCRIPTIONS[season or current_season()]
