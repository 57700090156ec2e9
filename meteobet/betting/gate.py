"""Stake Gate: placement validation against funds, stake bounds and quotas.

The rate-limit counters and the anti-spam lock live in an explicit
``RateLimitState`` object that callers load, pass in and persist. The gate
itself holds only configuration and a clock, so independent instances never
share state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from pydantic import BaseModel, Field

from meteobet.config import LimitsConfig
from meteobet.exceptions import RejectionReason

from .models import Category, CategoryGroup, utc_now

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================


class CounterWindow(BaseModel):
    """Placement count for one category group within its current window."""

    count: int = 0
    window_start: datetime | None = None


class PlacementLock(BaseModel):
    """Advisory anti-spam lock around a placement."""

    acquired_at: datetime | None = None
    release_at: datetime | None = None

    def is_held(self, now: datetime) -> bool:
        if self.acquired_at is None:
            return False
        return self.release_at is None or now < self.release_at

    def clear(self) -> None:
        self.acquired_at = None
        self.release_at = None


class RateLimitState(BaseModel):
    """Persisted rate-limit document: one counter per group plus the lock."""

    rain: CounterWindow = Field(default_factory=CounterWindow)
    temperature: CounterWindow = Field(default_factory=CounterWindow)
    wind: CounterWindow = Field(default_factory=CounterWindow)
    lock: PlacementLock = Field(default_factory=PlacementLock)

    def window(self, group: CategoryGroup) -> CounterWindow:
        return getattr(self, group.value)


class GateDecision(BaseModel):
    """Outcome of ``StakeGate.can_place``."""

    allowed: bool
    reason: RejectionReason | None = None
    message: str = ""
    lock_force_released: bool = False


# ============================================================================
# Stake Gate
# ============================================================================


class StakeGate:
    def __init__(
        self,
        limits: LimitsConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.limits = limits or LimitsConfig()
        self.clock = clock

    def cap(self, group: CategoryGroup) -> int:
        if group is CategoryGroup.RAIN:
            return self.limits.rain_daily_cap
        if group is CategoryGroup.TEMPERATURE:
            return self.limits.temperature_daily_cap
        return self.limits.wind_window_cap

    def _window_expired(self, group: CategoryGroup, window: CounterWindow, now: datetime) -> bool:
        if window.window_start is None:
            return True
        if group is CategoryGroup.WIND:
            return now - window.window_start >= timedelta(hours=self.limits.wind_window_hours)
        return window.window_start.date() != now.date()

    def _next_reset(self, group: CategoryGroup, window: CounterWindow) -> datetime | None:
        if window.window_start is None:
            return None
        if group is CategoryGroup.WIND:
            return window.window_start + timedelta(hours=self.limits.wind_window_hours)
        start = window.window_start
        midnight = start.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=1)

    def used_quota(self, state: RateLimitState, group: CategoryGroup) -> int:
        window = state.window(group)
        if self._window_expired(group, window, self.clock()):
            return 0
        return window.count

    def remaining_quota(self, state: RateLimitState, category: Category) -> int:
        """Placements still allowed for the category's group in the current window."""
        group = category.group
        return max(0, self.cap(group) - self.used_quota(state, group))

    def time_until_reset(self, state: RateLimitState, category: Category) -> timedelta:
        """How long until the quota frees up again (zero when quota remains)."""
        if self.remaining_quota(state, category) > 0:
            return timedelta(0)
        next_reset = self._next_reset(category.group, state.window(category.group))
        if next_reset is None:
            return timedelta(0)
        return max(timedelta(0), next_reset - self.clock())

    def lock_held(self, state: RateLimitState) -> bool:
        now = self.clock()
        lock = state.lock
        if not lock.is_held(now):
            return False
        return now - lock.acquired_at <= timedelta(seconds=self.limits.lock_timeout_seconds)

    def is_betting_allowed(self, state: RateLimitState, category: Category) -> bool:
        return not self.lock_held(state) and self.remaining_quota(state, category) > 0

    def can_place(
        self,
        state: RateLimitState,
        category: Category,
        stake: int,
        available_funds: int,
    ) -> GateDecision:
        """Run the placement checks in order, stopping at the first failure.

        A lock held past the timeout is force-released on ``state`` before
        the remaining checks run. Nothing else is modified.
        """
        now = self.clock()
        force_released = False

        if state.lock.is_held(now):
            held_for = now - state.lock.acquired_at
            if held_for > timedelta(seconds=self.limits.lock_timeout_seconds):
                logger.warning(
                    f"Force-releasing placement lock held for {held_for.total_seconds():.1f}s"
                )
                state.lock.clear()
                force_released = True
            else:
                return GateDecision(
                    allowed=False,
                    reason=RejectionReason.LOCK_HELD,
                    message="Please wait a few seconds before placing another bet",
                )

        if not self.limits.min_stake <= stake <= self.limits.max_stake:
            return GateDecision(
                allowed=False,
                reason=RejectionReason.STAKE_OUT_OF_BOUNDS,
                message=(
                    f"Stake must be between {self.limits.min_stake} and "
                    f"{self.limits.max_stake} coins, got {stake}"
                ),
                lock_force_released=force_released,
            )

        if stake > available_funds:
            return GateDecision(
                allowed=False,
                reason=RejectionReason.INSUFFICIENT_FUNDS,
                message=f"Stake of {stake} coins exceeds available funds ({available_funds})",
                lock_force_released=force_released,
            )

        if self.remaining_quota(state, category) <= 0:
            group = category.group
            return GateDecision(
                allowed=False,
                reason=RejectionReason.QUOTA_EXHAUSTED,
                message=f"Limit of {self.cap(group)} {group.value} bets reached for the current window",
                lock_force_released=force_released,
            )

        return GateDecision(allowed=True, lock_force_released=force_released)

    def acquire(self, state: RateLimitState) -> None:
        state.lock.acquired_at = self.clock()
        state.lock.release_at = None

    def release(self, state: RateLimitState) -> None:
        state.lock.clear()

    def record_placement(self, state: RateLimitState, category: Category) -> None:
        """Count a successful placement and schedule the lock release."""
        now = self.clock()
        group = category.group
        window = state.window(group)
        if self._window_expired(group, window, now):
            window.count = 0
            window.window_start = now
        window.count += 1
        state.lock.release_at = now + timedelta(seconds=self.limits.lock_release_seconds)
        logger.debug(f"{group.value} counter now {window.count}/{self.cap(group)}")

    def reset(self, state: RateLimitState) -> None:
        """Clear every counter and the lock."""
        now = self.clock()
        for group in CategoryGroup:
            window = state.window(group)
            window.count = 0
            window.window_start = now
        state.lock.clear()
        logger.info("All bet counters have been reset")
