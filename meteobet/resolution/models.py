"""Data models for the Resolution Engine."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, Field

from meteobet.betting.models import Bet
from meteobet.services.weather.models import TemperatureReading, WindReading


class WeatherObservationProvider(Protocol):
    """Source of live observations. Any method may raise ``WeatherAPIError``."""

    async def fetch_current_rain(self) -> float: ...

    async def fetch_current_temperature(self) -> TemperatureReading: ...

    async def fetch_current_wind(self) -> WindReading: ...


class SweepStats(BaseModel):
    """Counters for one sweep."""

    inspected: int = 0
    won: int = 0
    lost: int = 0
    errored: int = 0
    retried: int = 0
    skipped: int = 0


class SweepResult(BaseModel):
    """Result of a sweep: every bet whose record changed, plus counters."""

    changed: list[Bet] = Field(default_factory=list)
    stats: SweepStats = Field(default_factory=SweepStats)
    stale_retries_removed: int = 0

    @property
    def settled(self) -> list[Bet]:
        return [bet for bet in self.changed if bet.is_terminal]
