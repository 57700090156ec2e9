"""Betting service: the caller-facing entry point wiring gate, ledger and engine."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from pydantic import BaseModel

from meteobet.betting.gate import StakeGate
from meteobet.betting.models import Bet, BetRequest, BetStatus, Category, utc_now
from meteobet.betting.odds import current_season, odds_for
from meteobet.config import LimitsConfig, ResolutionConfig, Settings
from meteobet.exceptions import BetValidationError, MeteobetError, StorageError
from meteobet.resolution import ResolutionEngine, SweepResult, WeatherObservationProvider
from meteobet.storage import (
    FileStore,
    KeyValueStore,
    Ledger,
    RetryQueue,
    load_rate_limits,
    save_rate_limits,
)

logger = logging.getLogger(__name__)


class GarbageCollectionResult(BaseModel):
    stale_retries: list[str]
    pruned_bets: int


class BettingService:
    def __init__(
        self,
        store: KeyValueStore,
        provider: WeatherObservationProvider | None = None,
        limits: LimitsConfig | None = None,
        resolution: ResolutionConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.provider = provider
        self.clock = clock
        self.resolution = resolution or ResolutionConfig()
        self.gate = StakeGate(limits, clock=clock)
        self.ledger = Ledger(store, clock=clock)
        self.retry_queue = RetryQueue(max_attempts=self.resolution.max_attempts)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: WeatherObservationProvider | None = None,
    ) -> BettingService:
        return cls(
            FileStore(settings.data_dir),
            provider=provider,
            limits=settings.limits,
            resolution=settings.resolution,
        )

    # ========================================================================
    # Placement
    # ========================================================================

    def place_bet(self, request: BetRequest) -> Bet:
        """Validate, price and record a new bet.

        Raises ``BetValidationError`` when the gate refuses; nothing is written
        in that case apart from releasing a stale lock.
        """
        state = load_rate_limits(self.store)
        decision = self.gate.can_place(
            state, request.category, request.stake, request.available_funds
        )

        if not decision.allowed:
            if decision.lock_force_released:
                save_rate_limits(self.store, state)
            logger.info(
                f"Rejected {request.category.value} bet for {request.owner}: {decision.message}"
            )
            raise BetValidationError(decision.reason, decision.message)

        self.gate.acquire(state)
        save_rate_limits(self.store, state)

        try:
            season = current_season(self.clock())
            odds = odds_for(request.category, request.predicted_value, season)
            bet = self.ledger.append(request, odds)
        except Exception:
            self._release_lock()
            raise

        try:
            self.gate.record_placement(state, request.category)
            save_rate_limits(self.store, state)
        except Exception:
            logger.error(f"Failed to record placement of {bet.id}, rolling back")
            try:
                self.ledger.discard(bet.id)
            except StorageError as e:
                logger.error(f"Rollback of {bet.id} failed: {e}")
            self._release_lock()
            raise

        return bet

    def _release_lock(self) -> None:
        """Release the placement lock after a failed placement.

        Reloads the persisted document so counters stay as they were before
        the placement. A store failure here is logged; the lock then expires
        through the force-release timeout.
        """
        try:
            state = load_rate_limits(self.store)
            self.gate.release(state)
            save_rate_limits(self.store, state)
        except StorageError as e:
            logger.error(f"Failed to release placement lock: {e}")

    def remaining_quota(self, category: Category) -> int:
        return self.gate.remaining_quota(load_rate_limits(self.store), category)

    def is_betting_allowed(self, category: Category) -> bool:
        return self.gate.is_betting_allowed(load_rate_limits(self.store), category)

    def time_until_reset(self, category: Category) -> timedelta:
        return self.gate.time_until_reset(load_rate_limits(self.store), category)

    def reset_limits(self) -> None:
        state = load_rate_limits(self.store)
        self.gate.reset(state)
        save_rate_limits(self.store, state)

    # ========================================================================
    # Resolution
    # ========================================================================

    async def sweep_due_bets(self) -> SweepResult:
        """Settle every due bet and retry queued ones. Returns changed bets."""
        if self.provider is None:
            raise MeteobetError("No weather observation provider configured")
        engine = ResolutionEngine(
            self.ledger, self.provider, retry_queue=self.retry_queue, clock=self.clock
        )
        return await engine.sweep()

    # ========================================================================
    # Queries and housekeeping
    # ========================================================================

    def get_bet(self, bet_id: str) -> Bet | None:
        return self.ledger.get(bet_id)

    def bet_history(
        self,
        owner: str | None = None,
        status: BetStatus | None = None,
        category: Category | None = None,
    ) -> list[Bet]:
        return self.ledger.query(owner=owner, status=status, category=category)

    def collect_garbage(self) -> GarbageCollectionResult:
        """Drop stale retry records, then prune old settled bets."""
        state = self.ledger.load()
        stale = self.retry_queue.collect_garbage(state)
        if stale:
            self.ledger.save(state)

        pruned = self.ledger.prune(timedelta(days=self.resolution.prune_after_days))
        return GarbageCollectionResult(stale_retries=stale, pruned_bets=pruned)
