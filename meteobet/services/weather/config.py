from pydantic import BaseModel


class WeatherClientConfig(BaseModel):
    """Configuration for the OpenWeather API client."""

    base_url: str = "https://api.openweathermap.org/data/2.5"
    latitude: float = 36.7213
    longitude: float = -4.4213
    units: str = "metric"
    timeout_seconds: float = 15.0
    max_connections: int = 10
    max_keepalive_connections: int = 5
    max_retries: int = 3
    retry_backoff_seconds: float = 1.0
    cache_seconds: int = 300
