"""Job scheduler using APScheduler."""

import asyncio
import logging
from typing import NoReturn

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from meteobet.config import Settings, get_settings
from meteobet.resolution import SweepResult
from meteobet.service import BettingService
from meteobet.services.weather import create_weather_client

logger = logging.getLogger(__name__)


async def run_sweep(settings: Settings) -> SweepResult:
    """Open a weather client for the duration of one sweep."""
    client = create_weather_client(
        api_key=settings.openweather_api_key,
        latitude=settings.weather.latitude,
        longitude=settings.weather.longitude,
        cache_seconds=settings.weather.cache_seconds,
    )
    async with client:
        service = BettingService.from_settings(settings, provider=client)
        return await service.sweep_due_bets()


def sweep_job() -> None:
    """Scheduler job wrapper for the resolution sweep."""
    try:
        result = asyncio.run(run_sweep(get_settings()))
        logger.info(
            "Sweep: %d settled, %d awaiting retry",
            len(result.settled),
            result.stats.retried,
        )
    except Exception as exc:
        logger.error("Sweep failed: %s", exc, exc_info=True)


def gc_job() -> None:
    """Scheduler job wrapper for retry-record and ledger cleanup."""
    try:
        result = BettingService.from_settings(get_settings()).collect_garbage()
        logger.info(
            "Cleanup: %d stale retries, %d bets pruned",
            len(result.stale_retries),
            result.pruned_bets,
        )
    except Exception as exc:
        logger.error("Cleanup failed: %s", exc, exc_info=True)


def start_scheduler(settings: Settings) -> NoReturn:
    """Start the APScheduler with configured jobs."""
    scheduler = BlockingScheduler()

    scheduler.add_job(
        sweep_job,
        IntervalTrigger(minutes=settings.scheduler.sweep_interval_minutes),
        id="resolution-sweep",
        name="Resolution: Sweep Due Bets",
        max_instances=1,
        coalesce=True,
    )
    logger.info(
        f"Registered job: Resolution Sweep (every {settings.scheduler.sweep_interval_minutes} min)"
    )

    scheduler.add_job(
        gc_job,
        IntervalTrigger(minutes=settings.scheduler.gc_interval_minutes),
        id="ledger-gc",
        name="Ledger: Garbage Collection",
    )
    logger.info(
        f"Registered job: Ledger Cleanup (every {settings.scheduler.gc_interval_minutes} min)"
    )

    try:
        logger.info("✓ Scheduler starting...")
        logger.info(f"✓ {len(scheduler.get_jobs())} jobs registered")
        logger.info("Press Ctrl+C to stop\n")

        scheduler.start()

    except (KeyboardInterrupt, SystemExit):
        logger.info("\nReceived interrupt signal")
        scheduler.shutdown()
        logger.info("✓ Scheduler stopped cleanly")
