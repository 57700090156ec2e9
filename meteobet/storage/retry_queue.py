"""Retry bookkeeping for bets whose observation fetch failed.

Records live inside the ledger document (``LedgerState.retries``) so bets and
their retry state are always written together.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from .ledger import LedgerState

logger = logging.getLogger(__name__)

EXHAUSTED_EXPLANATION = (
    "This bet could not be resolved after multiple attempts. Please contact support."
)
RETRY_EXPLANATION = (
    "Resolution pending: weather data could not be fetched. "
    "It will be retried automatically."
)


class RetryRecord(BaseModel):
    """Outstanding retry state for one bet."""

    bet_id: str
    attempt_count: int = 0
    last_error: str = ""
    last_attempt_at: datetime | None = None


class RetryQueue:
    def __init__(self, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts

    def queued_ids(self, state: LedgerState) -> list[str]:
        """Queued bet ids, least recently attempted first."""
        records = sorted(
            state.retries.values(),
            key=lambda r: (r.last_attempt_at is not None, r.last_attempt_at or datetime.min),
        )
        return [r.bet_id for r in records]

    def get(self, state: LedgerState, bet_id: str) -> RetryRecord | None:
        return state.retries.get(bet_id)

    def record_failure(
        self,
        state: LedgerState,
        bet_id: str,
        error: str,
        now: datetime,
    ) -> RetryRecord:
        record = state.retries.get(bet_id) or RetryRecord(bet_id=bet_id)
        record.attempt_count += 1
        record.last_error = error
        record.last_attempt_at = now
        state.retries[bet_id] = record
        logger.info(
            f"Recorded resolution failure for {bet_id} "
            f"(attempt {record.attempt_count}/{self.max_attempts}): {error}"
        )
        return record

    def is_exhausted(self, record: RetryRecord) -> bool:
        return record.attempt_count >= self.max_attempts

    def remove(self, state: LedgerState, bet_id: str) -> bool:
        return state.retries.pop(bet_id, None) is not None

    def collect_garbage(self, state: LedgerState) -> list[str]:
        """Drop records whose bet is gone from the ledger or already settled."""
        stale = [
            bet_id
            for bet_id in state.retries
            if bet_id not in state.bets or state.bets[bet_id].verified
        ]
        for bet_id in stale:
            del state.retries[bet_id]

        if stale:
            logger.info(f"Removed {len(stale)} stale retry records")
        return stale
