from .client import WeatherClient, create_weather_client
from .config import WeatherClientConfig
from .exceptions import (
    WeatherAPIError,
    WeatherAuthError,
    WeatherDataError,
    WeatherRateLimitError,
)
from .models import CurrentConditions, TemperatureReading, WindReading

__all__ = [
    "WeatherClient",
    "create_weather_client",
    "WeatherClientConfig",
    "WeatherAPIError",
    "WeatherAuthError",
    "WeatherDataError",
    "WeatherRateLimitError",
    "CurrentConditions",
    "TemperatureReading",
    "WindReading",
]
