"""Meteobet CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from meteobet import __version__
from meteobet.betting import Bet, BetRequest, Category, odds_for, seasonal_description
from meteobet.config import get_settings
from meteobet.exceptions import BetValidationError
from meteobet.scheduler import run_sweep, start_scheduler
from meteobet.service import BettingService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from meteobet.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _format_bet(bet: Bet) -> str:
    value = "" if bet.predicted_value is None else f" {bet.predicted_value:g}{bet.category.rule.unit}"
    line = (
        f"{bet.id}  {bet.category.value}{value}  stake={bet.stake}  "
        f"odds={bet.odds:g}  {bet.status}"
    )
    if bet.has_range:
        line += f"  range=[{bet.range_min:g}, {bet.range_max:g}]"
    if bet.payout is not None:
        line += f"  payout={bet.payout}"
    return line


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_template = """# Meteobet Configuration
# Operational parameters for betting limits and automatic settlement.
# API keys and secrets should be stored in .env file, not here.

limits:
  min_stake: 10
  max_stake: 1000
  rain_daily_cap: 3
  temperature_daily_cap: 2
  wind_window_cap: 2
  wind_window_hours: 12
  lock_timeout_seconds: 10
  lock_release_seconds: 2

resolution:
  max_attempts: 5
  prune_after_days: 30

scheduler:
  sweep_interval_minutes: 1
  gc_interval_minutes: 60

weather:
  city: Málaga
  latitude: 36.7213
  longitude: -4.4213
  cache_seconds: 300
"""
            config_path.write_text(config_template, encoding="utf-8")
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and add your OpenWeather API key")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m meteobet config' to verify configuration")
        print("4. Run 'python -m meteobet run' to start settling bets\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Meteobet Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Limits:")
        print(f"  Stake: {settings.limits.min_stake}-{settings.limits.max_stake} coins")
        print(f"  Rain Bets: {settings.limits.rain_daily_cap} per day")
        print(f"  Temperature Bets: {settings.limits.temperature_daily_cap} per day")
        print(
            f"  Wind Bets: {settings.limits.wind_window_cap} per "
            f"{settings.limits.wind_window_hours}h"
        )
        print(f"  Lock Timeout: {settings.limits.lock_timeout_seconds}s\n")

        print("Resolution:")
        print(f"  Max Attempts: {settings.resolution.max_attempts}")
        print(f"  Prune After: {settings.resolution.prune_after_days} days\n")

        print("Scheduler (minutes):")
        print(f"  Sweep: {settings.scheduler.sweep_interval_minutes}")
        print(f"  Garbage Collection: {settings.scheduler.gc_interval_minutes}\n")

        print("Weather:")
        print(f"  City: {settings.weather.city}")
        print(f"  Location: {settings.weather.latitude}, {settings.weather.longitude}")
        print(f"  Cache: {settings.weather.cache_seconds}s\n")

        print("API Keys:")
        print(f"  OpenWeather: {'✓ Set' if settings.openweather_api_key else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display ledger and quota status."""
    try:
        service = BettingService.from_settings(get_settings())
        bets = service.bet_history()

        print("\n=== Meteobet Status ===\n")
        print(f"{seasonal_description()}\n")

        counts = {status: 0 for status in ("pending", "won", "lost", "error")}
        for bet in bets:
            counts[bet.status] += 1

        print(f"Bets: {len(bets)}")
        for status, count in counts.items():
            print(f"  {status.capitalize()}: {count}")
        print()

        print("Remaining Quota:")
        for category in (Category.RAIN_AMOUNT, Category.TEMPERATURE, Category.WIND_MAX):
            group = category.group.value
            remaining = service.remaining_quota(category)
            line = f"  {group.capitalize()}: {remaining}"
            if remaining == 0:
                wait = service.time_until_reset(category)
                line += f" (resets in {int(wait.total_seconds() // 60)} min)"
            print(line)
        print()

        return 0

    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_place(args: argparse.Namespace) -> int:
    """Place a bet."""
    try:
        request = BetRequest(
            category=Category(args.category),
            stake=args.stake,
            available_funds=args.funds,
            predicted_value=args.value,
            mode=args.mode,
            owner=args.owner,
        )
    except (ValidationError, ValueError) as e:
        print(f"\n❌ Invalid bet: {e}\n")
        return 1

    if args.quote:
        odds = odds_for(request.category, request.predicted_value)
        print(f"\nOdds: {odds:g}  (potential payout {round(request.stake * odds)} coins)\n")
        return 0

    try:
        service = BettingService.from_settings(get_settings())
        bet = service.place_bet(request)

        print("\n✓ Bet placed\n")
        print(_format_bet(bet))
        print(f"\nSettles after: {bet.verification_deadline:%Y-%m-%d %H:%M} UTC\n")
        return 0

    except BetValidationError as e:
        print(f"\n❌ Bet rejected ({e.reason.value}): {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Placement failed: {e}", exc_info=True)
        print(f"\n❌ Placement failed: {e}\n")
        return 1


def cmd_sweep(args: argparse.Namespace) -> int:
    """Settle due bets now."""
    _init_logfire()

    try:
        print("\n=== Resolution Sweep ===\n")

        result = asyncio.run(run_sweep(get_settings()))
        stats = result.stats

        print("✓ Sweep complete\n")
        print(f"Inspected: {stats.inspected}")
        print(f"Won: {stats.won}")
        print(f"Lost: {stats.lost}")
        print(f"Retrying: {stats.retried}")
        print(f"Errored: {stats.errored}\n")

        for bet in result.changed:
            print(f"  • {_format_bet(bet)}")
            if bet.explanation:
                print(f"    {bet.explanation}")
        if result.changed:
            print()

        return 0

    except Exception as e:
        logger.error(f"Sweep failed: {e}", exc_info=True)
        print(f"\n❌ Sweep failed: {e}\n")
        return 1


def cmd_quota(args: argparse.Namespace) -> int:
    """Show remaining quota for a category."""
    try:
        category = Category(args.category)
        service = BettingService.from_settings(get_settings())

        remaining = service.remaining_quota(category)
        allowed = service.is_betting_allowed(category)

        print(f"\n{category.value}: {remaining} remaining")
        print(f"Betting allowed: {'✓ Yes' if allowed else '✗ No'}")
        if remaining == 0:
            wait = service.time_until_reset(category)
            print(f"Resets in: {int(wait.total_seconds() // 60)} min")
        print()
        return 0

    except Exception as e:
        logger.error(f"Failed to read quota: {e}")
        print(f"\n❌ Failed to read quota: {e}\n")
        return 1


def cmd_history(args: argparse.Namespace) -> int:
    """List bets, newest first."""
    try:
        service = BettingService.from_settings(get_settings())
        bets = service.bet_history(
            owner=args.owner,
            status=args.status,
            category=Category(args.category) if args.category else None,
        )

        print(f"\n=== Bet History ({len(bets)}) ===\n")
        if not bets:
            print("  (None)\n")
            return 0

        for bet in bets[: args.limit]:
            print(f"  {bet.placed_at:%Y-%m-%d %H:%M}  {_format_bet(bet)}")
            if args.verbose and bet.explanation:
                print(f"    {bet.explanation}")
        if len(bets) > args.limit:
            print(f"  ... and {len(bets) - args.limit} more")
        print()
        return 0

    except Exception as e:
        logger.error(f"Failed to read history: {e}")
        print(f"\n❌ Failed to read history: {e}\n")
        return 1


def cmd_gc(args: argparse.Namespace) -> int:
    """Remove stale retry records and prune old settled bets."""
    try:
        result = BettingService.from_settings(get_settings()).collect_garbage()
        print("\n✓ Cleanup complete\n")
        print(f"Stale retry records removed: {len(result.stale_retries)}")
        print(f"Settled bets pruned: {result.pruned_bets}\n")
        return 0

    except Exception as e:
        logger.error(f"Cleanup failed: {e}", exc_info=True)
        print(f"\n❌ Cleanup failed: {e}\n")
        return 1


def cmd_reset_limits(args: argparse.Namespace) -> int:
    """Reset every rate-limit counter and the placement lock."""
    try:
        BettingService.from_settings(get_settings()).reset_limits()
        print("\n✓ All bet counters have been reset\n")
        return 0

    except Exception as e:
        logger.error(f"Reset failed: {e}")
        print(f"\n❌ Reset failed: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the settlement scheduler."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Meteobet Settlement Service ===\n")
        print(f"Version: {__version__}")
        print(f"City: {settings.weather.city}")
        print(f"Data Directory: {settings.data_dir}\n")

        if args.once:
            print("Running one resolution sweep...\n")
            result = asyncio.run(run_sweep(settings))
            print(f"\nSweep complete: {len(result.settled)} settled.\n")
            return 0

        print("Starting scheduler...\n")
        start_scheduler(settings)

        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start system: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Meteobet: virtual-coin weather betting with automatic settlement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Meteobet {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    categories = [c.value for c in Category]

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display ledger and quota status",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_place = subparsers.add_parser(
        "place",
        help="Place a bet",
    )
    parser_place.add_argument("category", choices=categories, help="Bet category")
    parser_place.add_argument("--stake", type=int, required=True, help="Coins to stake")
    parser_place.add_argument(
        "--funds",
        type=int,
        required=True,
        help="Coins currently available to the bettor",
    )
    parser_place.add_argument("--value", type=float, help="Predicted value (mm, °C or km/h)")
    parser_place.add_argument("--mode", choices=["Simple", "Pro"], default="Simple")
    parser_place.add_argument("--owner", default="anonymous")
    parser_place.add_argument(
        "--quote",
        action="store_true",
        help="Only show the odds, do not place the bet",
    )
    parser_place.set_defaults(func=cmd_place)

    parser_sweep = subparsers.add_parser(
        "sweep",
        help="Settle due bets now",
    )
    parser_sweep.set_defaults(func=cmd_sweep)

    parser_quota = subparsers.add_parser(
        "quota",
        help="Show remaining quota for a category",
    )
    parser_quota.add_argument("category", choices=categories)
    parser_quota.set_defaults(func=cmd_quota)

    parser_history = subparsers.add_parser(
        "history",
        help="List bets, newest first",
    )
    parser_history.add_argument("--owner", help="Only bets of this owner")
    parser_history.add_argument("--status", choices=["pending", "won", "lost", "error"])
    parser_history.add_argument("--category", choices=categories)
    parser_history.add_argument("--limit", type=int, default=20)
    parser_history.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show settlement explanations",
    )
    parser_history.set_defaults(func=cmd_history)

    parser_gc = subparsers.add_parser(
        "gc",
        help="Remove stale retry records and prune old settled bets",
    )
    parser_gc.set_defaults(func=cmd_gc)

    parser_reset = subparsers.add_parser(
        "reset-limits",
        help="Reset all rate-limit counters and the placement lock",
    )
    parser_reset.set_defaults(func=cmd_reset_limits)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the settlement scheduler",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.add_argument(
        "--once",
        action="store_true",
        help="Run one resolution sweep then exit",
    )
    parser_run.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
