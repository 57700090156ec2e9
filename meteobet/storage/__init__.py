"""Storage layer for Meteobet - durable documents for bets and rate limits.

This package provides:
- Key-value stores (atomic file-backed store, in-memory store for tests)
- The Bet Ledger (bets plus their retry records in one document)
- Retry bookkeeping for bets awaiting weather data
- Rate-limit persistence (per-category counters and the placement lock)
"""

# Stores
from .store import FileStore, KeyValueStore, MemoryStore

# Ledger
from .ledger import (
    LEDGER_KEY,
    Ledger,
    LedgerState,
    annotate_pending,
    apply_settlement,
    build_bet,
    generate_bet_id,
    pro_margin,
    pro_range,
)

# Retry queue
from .retry_queue import (
    EXHAUSTED_EXPLANATION,
    RETRY_EXPLANATION,
    RetryQueue,
    RetryRecord,
)

# Rate limits
from .limits import RATE_LIMITS_KEY, load_rate_limits, save_rate_limits

__all__ = [
    # Stores
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    # Ledger
    "LEDGER_KEY",
    "Ledger",
    "LedgerState",
    "annotate_pending",
    "apply_settlement",
    "build_bet",
    "generate_bet_id",
    "pro_margin",
    "pro_range",
    # Retry queue
    "EXHAUSTED_EXPLANATION",
    "RETRY_EXPLANATION",
    "RetryQueue",
    "RetryRecord",
    # Rate limits
    "RATE_LIMITS_KEY",
    "load_rate_limits",
    "save_rate_limits",
]
