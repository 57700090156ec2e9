from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import WeatherDataError

MPS_TO_KMH = 3.6


class TemperatureReading(BaseModel):
    current: float
    min: float
    max: float
    observed_at: datetime | None = None


class WindReading(BaseModel):
    current: float
    max: float
    direction: int | None = None
    observed_at: datetime | None = None


class CurrentConditions(BaseModel):
    """Parsed ``/weather`` response."""

    rain_mm: float = 0.0
    temperature: TemperatureReading
    wind: WindReading
    description: str = ""
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CurrentConditions:
        try:
            main = data["main"]
            wind = data["wind"]
            observed_at = (
                datetime.fromtimestamp(data["dt"], tz=timezone.utc)
                if data.get("dt") is not None
                else datetime.now(timezone.utc)
            )

            rain = data.get("rain") or {}
            rain_mm = float(rain.get("1h", 0.0))

            speed_kmh = float(wind["speed"]) * MPS_TO_KMH
            gust = wind.get("gust")
            max_kmh = max(speed_kmh, float(gust) * MPS_TO_KMH) if gust is not None else speed_kmh

            weather = data.get("weather") or [{}]
            return cls(
                rain_mm=rain_mm,
                temperature=TemperatureReading(
                    current=float(main["temp"]),
                    min=float(main["temp_min"]),
                    max=float(main["temp_max"]),
                    observed_at=observed_at,
                ),
                wind=WindReading(
                    current=round(speed_kmh, 1),
                    max=round(max_kmh, 1),
                    direction=wind.get("deg"),
                    observed_at=observed_at,
                ),
                description=weather[0].get("description", ""),
                observed_at=observed_at,
            )
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise WeatherDataError(f"Malformed weather response: {e!r}") from e
