from meteobet.exceptions import MeteobetError


class WeatherAPIError(MeteobetError):
    """Base exception for weather observation errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WeatherAuthError(WeatherAPIError):
    """Authentication failed."""

    pass


class WeatherRateLimitError(WeatherAPIError):
    """Rate limit exceeded."""

    pass


class WeatherDataError(WeatherAPIError):
    """Response was missing a required field or could not be parsed."""

    pass
