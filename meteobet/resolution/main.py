"""Resolution Engine: settles pending bets against live observations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from meteobet.betting.models import Settlement, utc_now
from meteobet.exceptions import BetNotFoundError, ResolutionExhaustedError
from meteobet.storage.ledger import Ledger, LedgerState, annotate_pending, apply_settlement
from meteobet.storage.retry_queue import EXHAUSTED_EXPLANATION, RETRY_EXPLANATION, RetryQueue

from .models import SweepResult, WeatherObservationProvider
from .rules import evaluate, exhausted, fetch_observation

logger = logging.getLogger(__name__)


def select_candidates(state: LedgerState, retry_queue: RetryQueue, now: datetime) -> list[str]:
    """Due bets (oldest deadline first) followed by queued retries not already due."""
    due = sorted(
        (bet for bet in state.bets.values() if bet.is_due(now)),
        key=lambda b: b.verification_deadline,
    )
    candidates = [bet.id for bet in due]
    seen = set(candidates)
    for bet_id in retry_queue.queued_ids(state):
        if bet_id not in seen:
            candidates.append(bet_id)
            seen.add(bet_id)
    return candidates


class ResolutionEngine:
    """Sweeps the ledger and writes won/lost/error outcomes.

    The only component that settles bets. A sweep works on a snapshot while
    it awaits the provider, then reloads the ledger and applies every outcome
    in a single save.
    """

    def __init__(
        self,
        ledger: Ledger,
        provider: WeatherObservationProvider,
        retry_queue: RetryQueue | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ledger = ledger
        self.provider = provider
        self.retry_queue = retry_queue or RetryQueue()
        self.clock = clock

    async def sweep(self) -> SweepResult:
        now = self.clock()
        result = SweepResult()
        stats = result.stats

        snapshot = self.ledger.load()
        candidates = select_candidates(snapshot, self.retry_queue, now)
        if not candidates:
            logger.debug("No bets due for resolution")

        outcomes: dict[str, Settlement] = {}
        failures: dict[str, str] = {}

        for bet_id in candidates:
            stats.inspected += 1
            bet = snapshot.bets.get(bet_id)
            if bet is None or bet.verified:
                stats.skipped += 1
                continue

            try:
                observed = await fetch_observation(self.provider, bet.category)
            except Exception as e:
                logger.warning(f"Could not fetch observation for {bet_id} ({bet.category.value}): {e}")
                failures[bet_id] = str(e) or e.__class__.__name__
                continue

            outcomes[bet_id] = evaluate(bet, observed, resolved_at=now)

        if not outcomes and not failures and not snapshot.retries:
            return result

        # Re-read so placements made during the fetches are kept
        state = self.ledger.load()

        for bet_id, settlement in outcomes.items():
            try:
                settled = apply_settlement(state, bet_id, settlement)
            except BetNotFoundError:
                logger.warning(f"Bet {bet_id} disappeared during the sweep")
                stats.skipped += 1
                continue
            if settled is None:
                stats.skipped += 1
                continue

            self.retry_queue.remove(state, bet_id)
            result.changed.append(settled)
            if settled.won:
                stats.won += 1
            else:
                stats.lost += 1
            logger.info(f"Bet {bet_id} resolved as {settled.status} (observed {settled.result})")

        for bet_id, error in failures.items():
            bet = state.bets.get(bet_id)
            if bet is None or bet.verified:
                stats.skipped += 1
                continue

            record = self.retry_queue.record_failure(state, bet_id, error, now)
            if self.retry_queue.is_exhausted(record):
                settled = apply_settlement(state, bet_id, exhausted(now, EXHAUSTED_EXPLANATION))
                self.retry_queue.remove(state, bet_id)
                stats.errored += 1
                if settled is not None:
                    result.changed.append(settled)
                logger.error(str(ResolutionExhaustedError(bet_id, record.attempt_count)))
                continue

            annotated = annotate_pending(state, bet_id, RETRY_EXPLANATION)
            stats.retried += 1
            if annotated is not None:
                result.changed.append(annotated)

        result.stale_retries_removed = len(self.retry_queue.collect_garbage(state))

        if result.changed or result.stale_retries_removed:
            self.ledger.save(state)

        logger.info(
            f"Sweep complete: {stats.inspected} inspected, {stats.won} won, "
            f"{stats.lost} lost, {stats.retried} retried, {stats.errored} errored"
        )
        return result
