from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from .config import WeatherClientConfig
from .exceptions import (
    WeatherAPIError,
    WeatherAuthError,
    WeatherDataError,
    WeatherRateLimitError,
)
from .models import CurrentConditions, TemperatureReading, WindReading

logger = logging.getLogger(__name__)


class WeatherClient:
    """OpenWeather "current weather" client.

    Implements the observation provider used by the resolution engine. One
    ``/weather`` payload serves all three observation kinds and is cached for
    ``cache_seconds`` so a sweep over many bets makes a single request.
    """

    def __init__(
        self,
        config: WeatherClientConfig | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or WeatherClientConfig()
        self.api_key = api_key or ""
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._cached: CurrentConditions | None = None
        self._cached_at: float | None = None

        logger.info(
            f"Initialized WeatherClient (lat={self.config.latitude}, "
            f"lon={self.config.longitude}, auth={'enabled' if self.api_key else 'disabled'})"
        )

    async def __aenter__(self) -> WeatherClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed WeatherClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("WeatherClient must be used as async context manager")
        return self._client

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise WeatherAuthError("OpenWeather API key is not configured")

        params = {**params, "appid": self.api_key}
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.get(endpoint, params=params)

                if response.status_code == 401:
                    raise WeatherAuthError("Authentication failed", status_code=401)
                elif response.status_code == 429:
                    wait_time = self.config.retry_backoff_seconds * 2 ** retry_count
                    logger.warning(f"Rate limited, waiting {wait_time}s...")
                    last_error = WeatherRateLimitError("Rate limit exceeded", status_code=429)
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    wait_time = self.config.retry_backoff_seconds * 2 ** retry_count
                    logger.warning(
                        f"Server error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = WeatherAPIError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(self.config.retry_backoff_seconds)

            except httpx.HTTPStatusError as e:
                raise WeatherAPIError(
                    f"Request to {endpoint} failed: {e}",
                    status_code=e.response.status_code,
                ) from e

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error: {e}")
                break

            except ValueError as e:
                raise WeatherDataError(f"Invalid JSON from {endpoint}: {e}") from e

        if isinstance(last_error, WeatherRateLimitError):
            raise last_error
        raise WeatherAPIError(f"Request failed after {retry_count} retries: {last_error}")

    def _cache_valid(self) -> bool:
        if self._cached is None or self._cached_at is None:
            return False
        return time.monotonic() - self._cached_at < self.config.cache_seconds

    def clear_cache(self) -> None:
        self._cached = None
        self._cached_at = None

    async def get_current_conditions(self, force_refresh: bool = False) -> CurrentConditions:
        if not force_refresh and self._cache_valid():
            return self._cached

        data = await self._request(
            "weather",
            {
                "lat": self.config.latitude,
                "lon": self.config.longitude,
                "units": self.config.units,
            },
        )
        conditions = CurrentConditions.from_api(data)
        self._cached = conditions
        self._cached_at = time.monotonic()
        logger.debug(
            f"Fetched conditions: rain={conditions.rain_mm}mm "
            f"temp={conditions.temperature.current}°C wind_max={conditions.wind.max}km/h"
        )
        return conditions

    async def fetch_current_rain(self) -> float:
        """Rain over the last hour, in millimetres (0 when none reported)."""
        return (await self.get_current_conditions()).rain_mm

    async def fetch_current_temperature(self) -> TemperatureReading:
        return (await self.get_current_conditions()).temperature

    async def fetch_current_wind(self) -> WindReading:
        return (await self.get_current_conditions()).wind


def create_weather_client(
    api_key: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    cache_seconds: int | None = None,
) -> WeatherClient:
    config = WeatherClientConfig()
    updates: dict[str, Any] = {
        "latitude": latitude,
        "longitude": longitude,
        "cache_seconds": cache_seconds,
    }
    config = config.model_copy(update={k: v for k, v in updates.items() if v is not None})
    return WeatherClient(config, api_key)
