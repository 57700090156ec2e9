"""Tests for the OpenWeather client against a mocked transport."""

import asyncio

import httpx
import pytest

from meteobet.betting import BetRequest, Category
from meteobet.service import BettingService
from meteobet.services.weather import (
    WeatherAPIError,
    WeatherAuthError,
    WeatherClient,
    WeatherClientConfig,
    WeatherDataError,
    WeatherRateLimitError,
)

PAYLOAD = {
    "dt": 1729000000,
    "weather": [{"description": "moderate rain"}],
    "main": {"temp": 19.0, "temp_min": 16.5, "temp_max": 22.0},
    "wind": {"speed": 5.0, "deg": 90},
    "rain": {"1h": 2.3},
}


def _client(handler, **overrides) -> WeatherClient:
    config = WeatherClientConfig(retry_backoff_seconds=0, **overrides)
    return WeatherClient(config, api_key="test-key", transport=httpx.MockTransport(handler))


def test_fetches_and_caches_current_weather() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=PAYLOAD)

    async def run() -> None:
        async with _client(handler) as client:
            assert await client.fetch_current_rain() == 2.3
            temperature = await client.fetch_current_temperature()
            wind = await client.fetch_current_wind()
            assert (temperature.min, temperature.max) == (16.5, 22.0)
            assert wind.max == 18.0

            client.clear_cache()
            await client.fetch_current_rain()

    asyncio.run(run())

    assert len(requests) == 2
    url = requests[0].url
    assert url.path == "/data/2.5/weather"
    assert url.params["appid"] == "test-key"
    assert url.params["units"] == "metric"
    assert url.params["lat"] == "36.7213"


def test_retries_server_errors() -> None:
    responses = iter([httpx.Response(503), httpx.Response(200, json=PAYLOAD)])

    async def run() -> float:
        async with _client(lambda request: next(responses)) as client:
            return await client.fetch_current_rain()

    assert asyncio.run(run()) == 2.3


def test_rate_limit_exhausts_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429)

    async def run() -> None:
        async with _client(handler, max_retries=2) as client:
            await client.fetch_current_rain()

    with pytest.raises(WeatherRateLimitError):
        asyncio.run(run())
    assert len(calls) == 2


def test_auth_errors() -> None:
    async def unauthorized() -> None:
        async with _client(lambda request: httpx.Response(401)) as client:
            await client.fetch_current_wind()

    with pytest.raises(WeatherAuthError) as exc_info:
        asyncio.run(unauthorized())
    assert exc_info.value.status_code == 401

    async def missing_key() -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=PAYLOAD))
        async with WeatherClient(WeatherClientConfig(), transport=transport) as client:
            await client.fetch_current_rain()

    with pytest.raises(WeatherAuthError):
        asyncio.run(missing_key())


def test_malformed_payload() -> None:
    async def run() -> None:
        async with _client(lambda request: httpx.Response(200, json={"cod": 200})) as client:
            await client.fetch_current_temperature()

    with pytest.raises(WeatherDataError):
        asyncio.run(run())


def test_client_errors_are_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    async def run() -> None:
        async with _client(handler) as client:
            await client.fetch_current_rain()

    with pytest.raises(WeatherAPIError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 404
    assert len(calls) == 1


def test_client_as_sweep_provider(store, clock) -> None:
    async def run() -> None:
        async with _client(lambda request: httpx.Response(200, json=PAYLOAD)) as client:
            service = BettingService(store, provider=client, clock=clock)
            bet = service.place_bet(
                BetRequest(
                    category=Category.RAIN_AMOUNT,
                    stake=100,
                    available_funds=100,
                    predicted_value=2,
                )
            )
            clock.advance(hours=24)
            result = await service.sweep_due_bets()

            assert [b.id for b in result.settled] == [bet.id]
            assert result.settled[0].won is True

    asyncio.run(run())
