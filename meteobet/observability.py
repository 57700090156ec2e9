"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from meteobet import __version__
from meteobet.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire once at application startup, before any sweep runs.

    Instruments:
    - HTTPX clients (OpenWeather API)
    - Python logging (bridges to Logfire)

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="meteobet",
            service_version=__version__,
            environment=settings.weather.city,
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
