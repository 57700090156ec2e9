"""Win rules and explanations for each bet category."""

from __future__ import annotations

from datetime import datetime

from meteobet.betting.models import Bet, Category, CategoryGroup, Settlement
from meteobet.services.weather.models import TemperatureReading, WindReading

from .models import WeatherObservationProvider


def _fmt(value: float, decimals: int) -> str:
    return f"{value:.{decimals}f}"


def _fmt_prediction(value: float) -> str:
    return f"{value:g}"


async def fetch_observation(provider: WeatherObservationProvider, category: Category) -> float:
    """Fetch the single observed value a bet of ``category`` is settled against."""
    group = category.group
    if group is CategoryGroup.RAIN:
        return float(await provider.fetch_current_rain())

    if group is CategoryGroup.TEMPERATURE:
        reading: TemperatureReading = await provider.fetch_current_temperature()
        field = category.rule.observed_field
        return float(getattr(reading, field))

    wind: WindReading = await provider.fetch_current_wind()
    return float(wind.max)


def within_margin(predicted: float, observed: float, margin: float) -> bool:
    # 2.3 - 1.8 == 0.4999999999999998
    return round(abs(predicted - observed), 6) <= margin


def _rain_occurrence(bet: Bet, observed: float) -> tuple[bool, str]:
    unit = bet.category.rule.unit
    shown = _fmt(observed, bet.category.rule.decimals)
    if bet.category is Category.RAIN_YES:
        if observed > 0:
            return True, (
                f"You won! You correctly predicted rain. "
                f"Recorded rainfall was {shown}{unit}."
            )
        return False, "You lost. You predicted rain, but no rain was recorded (0 mm)."

    if observed == 0:
        return True, "You won! You correctly predicted no rain. No rain was recorded (0 mm)."
    return False, f"You lost. You predicted no rain, but {shown}{unit} of rain was recorded."


def _range(bet: Bet, observed: float) -> tuple[bool, str]:
    rule = bet.category.rule
    shown = _fmt(observed, rule.decimals)
    bounds = (
        f"{_fmt_prediction(bet.range_min)} - {_fmt_prediction(bet.range_max)}{rule.unit}"
    )
    if bet.range_min <= observed <= bet.range_max:
        return True, (
            f"You won! The observed value ({shown}{rule.unit}) was within "
            f"your predicted range ({bounds})."
        )
    return False, (
        f"You lost. The observed value ({shown}{rule.unit}) was outside "
        f"your predicted range ({bounds})."
    )


def _margin(bet: Bet, observed: float) -> tuple[bool, str]:
    rule = bet.category.rule
    predicted = f"{_fmt_prediction(bet.predicted_value)}{rule.unit}"
    shown = f"{_fmt(observed, rule.decimals)}{rule.unit}"
    margin = f"±{rule.margin:.1f}{rule.unit}"
    if within_margin(bet.predicted_value, observed, rule.margin):
        return True, (
            f"You won! Your {rule.label} prediction of {predicted} was within "
            f"{margin} of the observed value ({shown})."
        )
    return False, (
        f"You lost. Your {rule.label} prediction of {predicted} differed by more "
        f"than {margin} from the observed value ({shown})."
    )


def evaluate(bet: Bet, observed: float, resolved_at: datetime) -> Settlement:
    """Settle ``bet`` against an observed value.

    Rain occurrence categories ignore the prediction. Pro bets with a stored
    range win iff the observation falls inside it; every other valued bet
    wins within the category's fixed margin. Comparisons use the raw
    observation; rounding applies to the explanation text only.
    """
    category = bet.category

    if category in (Category.RAIN_YES, Category.RAIN_NO):
        won, explanation = _rain_occurrence(bet, observed)
    elif bet.has_range:
        won, explanation = _range(bet, observed)
    elif bet.predicted_value is None:
        raise ValueError(f"Bet {bet.id} ({category.value}) has no predicted value")
    else:
        won, explanation = _margin(bet, observed)

    return Settlement(
        status="won" if won else "lost",
        result=observed,
        won=won,
        explanation=explanation,
        resolved_at=resolved_at,
    )


def exhausted(resolved_at: datetime, explanation: str) -> Settlement:
    """Terminal settlement for a bet that ran out of resolution attempts."""
    return Settlement(
        status="error",
        result=None,
        won=False,
        explanation=explanation,
        resolved_at=resolved_at,
    )
