"""Unit tests for retry bookkeeping."""

import pytest

from meteobet.betting import BetRequest, Category
from meteobet.storage import LedgerState, RetryQueue, build_bet


def _state_with_bets(clock, count: int) -> LedgerState:
    state = LedgerState()
    for _ in range(count):
        bet = build_bet(
            BetRequest(category=Category.RAIN_YES, stake=20, available_funds=100),
            odds=2.4,
            placed_at=clock(),
        )
        state.bets[bet.id] = bet
    return state


def test_record_failure_counts_attempts(clock) -> None:
    queue = RetryQueue()
    state = _state_with_bets(clock, 1)
    bet_id = next(iter(state.bets))

    for attempt in range(1, 5):
        record = queue.record_failure(state, bet_id, "timeout", clock())
        assert record.attempt_count == attempt
        assert not queue.is_exhausted(record)

    record = queue.record_failure(state, bet_id, "timeout", clock())
    assert record.attempt_count == 5
    assert queue.is_exhausted(record)
    assert queue.get(state, bet_id).last_error == "timeout"


def test_queued_ids_oldest_attempt_first(clock) -> None:
    queue = RetryQueue()
    state = _state_with_bets(clock, 2)
    first, second = list(state.bets)

    queue.record_failure(state, second, "503", clock())
    clock.advance(minutes=1)
    queue.record_failure(state, first, "503", clock())

    assert queue.queued_ids(state) == [second, first]
    assert queue.remove(state, second)
    assert queue.queued_ids(state) == [first]


def test_collect_garbage_drops_orphans_and_settled(clock) -> None:
    queue = RetryQueue()
    state = _state_with_bets(clock, 2)
    kept, settled = list(state.bets)
    queue.record_failure(state, kept, "503", clock())
    queue.record_failure(state, settled, "503", clock())
    queue.record_failure(state, "bet_deadbeef0000", "503", clock())
    state.bets[settled] = state.bets[settled].model_copy(update={"verified": True, "status": "error"})

    removed = queue.collect_garbage(state)

    assert sorted(removed) == sorted([settled, "bet_deadbeef0000"])
    assert list(state.retries) == [kept]


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RetryQueue(max_attempts=0)
