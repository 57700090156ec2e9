"""Shared fixtures: a settable clock, an in-memory store and a scripted weather source."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from meteobet.services.weather import TemperatureReading, WeatherAPIError, WindReading
from meteobet.storage import MemoryStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeWeather:
    """Observation provider returning fixed readings, optionally failing."""

    def __init__(
        self,
        rain: float = 0.0,
        temperature: TemperatureReading | None = None,
        wind: WindReading | None = None,
    ):
        self.rain = rain
        self.temperature = temperature or TemperatureReading(current=20.0, min=15.0, max=25.0)
        self.wind = wind or WindReading(current=10.0, max=10.0)
        self.failures_left = 0
        self.calls = 0

    def fail_next(self, times: int = 1) -> None:
        self.failures_left = times

    def _maybe_fail(self) -> None:
        self.calls += 1
        if self.failures_left > 0:
            self.failures_left -= 1
            raise WeatherAPIError("Server error 503", status_code=503)

    async def fetch_current_rain(self) -> float:
        self._maybe_fail()
        return self.rain

    async def fetch_current_temperature(self) -> TemperatureReading:
        self._maybe_fail()
        return self.temperature

    async def fetch_current_wind(self) -> WindReading:
        self._maybe_fail()
        return self.wind


# October: autumn
AUTUMN_NOON = datetime(2024, 10, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(AUTUMN_NOON)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def weather() -> FakeWeather:
    return FakeWeather()
