"""Persistence for the rate-limit counters and the placement lock."""

import logging

from pydantic import ValidationError

from meteobet.betting.gate import RateLimitState
from meteobet.exceptions import StorageError

from .store import KeyValueStore

logger = logging.getLogger(__name__)

RATE_LIMITS_KEY = "rate_limits"


def load_rate_limits(store: KeyValueStore, key: str = RATE_LIMITS_KEY) -> RateLimitState:
    """Load the rate-limit document, or a fresh state if none was saved yet."""
    raw = store.get(key)
    if not raw:
        return RateLimitState()
    try:
        return RateLimitState.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Corrupted rate-limit document: {e}")
        raise StorageError(f"Corrupted rate-limit document: {e}", key=key) from e


def save_rate_limits(
    store: KeyValueStore,
    state: RateLimitState,
    key: str = RATE_LIMITS_KEY,
) -> None:
    store.set(key, state.model_dump_json())
