"""Unit tests for placement gating: stake bounds, funds, quotas and the lock."""

from datetime import timedelta

from meteobet.betting import Category, RateLimitState, StakeGate
from meteobet.config import LimitsConfig
from meteobet.exceptions import RejectionReason


def _gate(clock) -> StakeGate:
    return StakeGate(LimitsConfig(), clock=clock)


def test_stake_bounds(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()

    assert gate.can_place(state, Category.RAIN_AMOUNT, 5, 1000).reason is RejectionReason.STAKE_OUT_OF_BOUNDS
    assert gate.can_place(state, Category.RAIN_AMOUNT, 1001, 5000).reason is RejectionReason.STAKE_OUT_OF_BOUNDS
    assert gate.can_place(state, Category.RAIN_AMOUNT, 10, 10).allowed
    assert gate.can_place(state, Category.RAIN_AMOUNT, 1000, 1000).allowed


def test_insufficient_funds(clock) -> None:
    decision = _gate(clock).can_place(RateLimitState(), Category.WIND_MAX, 100, 50)
    assert not decision.allowed
    assert decision.reason is RejectionReason.INSUFFICIENT_FUNDS


def test_lock_checked_before_stake(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.acquire(state)

    decision = gate.can_place(state, Category.RAIN_AMOUNT, 5, 1000)
    assert decision.reason is RejectionReason.LOCK_HELD


def test_stale_lock_is_force_released(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.acquire(state)

    clock.advance(seconds=11)
    decision = gate.can_place(state, Category.RAIN_AMOUNT, 100, 1000)

    assert decision.allowed
    assert decision.lock_force_released
    assert state.lock.acquired_at is None


def test_lock_held_briefly_after_placement(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.acquire(state)
    gate.record_placement(state, Category.TEMP_MAX)

    assert not gate.is_betting_allowed(state, Category.TEMP_MAX)
    clock.advance(seconds=3)
    assert gate.is_betting_allowed(state, Category.TEMP_MAX)


def test_rain_daily_cap(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    for _ in range(3):
        gate.record_placement(state, Category.RAIN_YES)
    clock.advance(seconds=5)

    assert gate.remaining_quota(state, Category.RAIN_AMOUNT) == 0
    decision = gate.can_place(state, Category.RAIN_NO, 100, 1000)
    assert decision.reason is RejectionReason.QUOTA_EXHAUSTED

    # Other groups have their own counters
    assert gate.can_place(state, Category.TEMPERATURE, 100, 1000).allowed


def test_daily_window_rolls_over_at_midnight(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.record_placement(state, Category.TEMP_MIN)
    gate.record_placement(state, Category.TEMP_MAX)
    assert gate.remaining_quota(state, Category.TEMPERATURE) == 0
    assert gate.time_until_reset(state, Category.TEMPERATURE) == timedelta(hours=12)

    clock.advance(hours=12)
    assert gate.remaining_quota(state, Category.TEMPERATURE) == 2


def test_wind_rolling_window(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.record_placement(state, Category.WIND_MAX)
    gate.record_placement(state, Category.WIND_MAX)

    clock.advance(hours=11)
    assert gate.remaining_quota(state, Category.WIND_MAX) == 0
    assert gate.time_until_reset(state, Category.WIND_MAX) == timedelta(hours=1)

    clock.advance(hours=1)
    assert gate.remaining_quota(state, Category.WIND_MAX) == 2
    assert gate.time_until_reset(state, Category.WIND_MAX) == timedelta(0)


def test_states_are_independent(clock) -> None:
    gate = _gate(clock)
    first, second = RateLimitState(), RateLimitState()
    gate.record_placement(first, Category.WIND_MAX)

    assert gate.remaining_quota(first, Category.WIND_MAX) == 1
    assert gate.remaining_quota(second, Category.WIND_MAX) == 2


def test_reset_clears_counters_and_lock(clock) -> None:
    gate = _gate(clock)
    state = RateLimitState()
    gate.acquire(state)
    for _ in range(3):
        gate.record_placement(state, Category.RAIN_YES)

    gate.reset(state)

    assert gate.remaining_quota(state, Category.RAIN_YES) == 3
    assert not gate.lock_held(state)
