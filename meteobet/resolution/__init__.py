"""Resolution Engine: settles pending bets against live weather."""

from .main import ResolutionEngine, select_candidates
from .models import SweepResult, SweepStats, WeatherObservationProvider
from .rules import evaluate, exhausted, fetch_observation, within_margin

__all__ = [
    "ResolutionEngine",
    "select_candidates",
    "SweepResult",
    "SweepStats",
    "WeatherObservationProvider",
    "evaluate",
    "exhausted",
    "fetch_observation",
    "within_margin",
]
