"""Unit tests for the Bet Ledger and bet construction."""

import re
from datetime import timedelta

import pytest
from pydantic import ValidationError

from meteobet.betting import BetRequest, Category, Settlement
from meteobet.exceptions import BetNotFoundError, StorageError
from meteobet.storage import Ledger, MemoryStore, pro_margin, pro_range


def _request(category: Category = Category.RAIN_AMOUNT, value: float | None = 2.0, **kwargs) -> BetRequest:
    return BetRequest(category=category, stake=100, available_funds=1000, predicted_value=value, **kwargs)


def _won(clock, result: float = 2.3) -> Settlement:
    return Settlement(status="won", result=result, won=True, explanation="won", resolved_at=clock())


def test_append_assigns_id_and_deadline(store, clock) -> None:
    ledger = Ledger(store, clock=clock)

    bet = ledger.append(_request(), odds=3.0)

    assert re.match(r"^bet_[0-9a-f]{12}$", bet.id)
    assert bet.rain_mm == 2.0
    assert bet.predicted_value == 2.0
    assert bet.status == "pending"
    assert not bet.verified
    assert bet.verification_deadline == clock() + timedelta(hours=24)
    assert ledger.get(bet.id) == bet


def test_temperature_and_wind_deadlines_are_twelve_hours(store, clock) -> None:
    ledger = Ledger(store, clock=clock)

    temp = ledger.append(_request(Category.TEMP_MIN, 12.0), odds=2.0)
    wind = ledger.append(_request(Category.WIND_MAX, 30.0), odds=5.0)

    assert temp.temp_min_c == 12.0
    assert wind.wind_kmh_max == 30.0
    assert temp.verification_deadline - temp.placed_at == timedelta(hours=12)
    assert wind.verification_deadline - wind.placed_at == timedelta(hours=12)


def test_rain_occurrence_request_drops_value() -> None:
    request = BetRequest(category=Category.RAIN_YES, stake=50, available_funds=100, predicted_value=3)
    assert request.predicted_value is None

    with pytest.raises(ValidationError):
        BetRequest(category=Category.WIND_MAX, stake=50, available_funds=100)


def test_pro_margin_table() -> None:
    assert pro_margin(150) == 0
    assert pro_margin(100) == 0
    assert pro_margin(60) == 1
    assert pro_margin(20) == 2
    assert pro_margin(12) == 3
    assert pro_margin(5) == 4
    assert pro_margin(3.0) == 5


def test_pro_range_is_clamped_to_domain() -> None:
    assert pro_range(Category.RAIN_AMOUNT, 2.0, 3.0) == (0.0, 7.0)
    assert pro_range(Category.TEMP_MAX, 58.0, 1.5) == (53.0, 60.0)
    assert pro_range(Category.WIND_MAX, 30.0, 5.0) == (26.0, 34.0)


def test_pro_bet_stores_range(store, clock) -> None:
    bet = Ledger(store, clock=clock).append(_request(Category.TEMPERATURE, 20.0, mode="Pro"), odds=2.0)

    assert bet.has_range
    assert (bet.range_min, bet.range_max) == (15.0, 25.0)


def test_query_filters_newest_first(store, clock) -> None:
    ledger = Ledger(store, clock=clock)
    first = ledger.append(_request(owner="ana"), odds=3.0)
    clock.advance(minutes=5)
    second = ledger.append(_request(Category.WIND_MAX, 10.0, owner="ana"), odds=1.8)
    clock.advance(minutes=5)
    ledger.append(_request(owner="luis"), odds=3.0)

    assert [b.id for b in ledger.query(owner="ana")] == [second.id, first.id]
    assert [b.id for b in ledger.query(category=Category.WIND_MAX)] == [second.id]
    assert len(ledger.query(status="pending")) == 3
    assert ledger.query(status="won") == []


def test_mutate_writes_settlement_once(store, clock) -> None:
    ledger = Ledger(store, clock=clock)
    bet = ledger.append(_request(), odds=3.0)

    settled = ledger.mutate(bet.id, _won(clock))
    assert settled.verified
    assert settled.status == "won"
    assert settled.result == 2.3
    assert settled.payout == 300

    again = ledger.mutate(
        bet.id,
        Settlement(status="lost", result=9.0, won=False, explanation="lost", resolved_at=clock()),
    )
    assert again == settled
    assert ledger.get(bet.id) == settled


def test_mutate_unknown_bet(store, clock) -> None:
    with pytest.raises(BetNotFoundError):
        Ledger(store, clock=clock).mutate("bet_000000000000", _won(clock))


def test_discard_removes_bet(store, clock) -> None:
    ledger = Ledger(store, clock=clock)
    bet = ledger.append(_request(), odds=3.0)

    assert ledger.discard(bet.id)
    assert ledger.get(bet.id) is None
    assert not ledger.discard(bet.id)


def test_prune_keeps_pending_and_recent(store, clock) -> None:
    ledger = Ledger(store, clock=clock)
    old = ledger.append(_request(), odds=3.0)
    ledger.mutate(old.id, _won(clock))
    pending = ledger.append(_request(), odds=3.0)

    clock.advance(days=31)
    recent = ledger.append(_request(), odds=3.0)
    ledger.mutate(recent.id, _won(clock))

    assert ledger.prune(timedelta(days=30)) == 1
    assert ledger.get(old.id) is None
    assert ledger.get(pending.id) is not None
    assert ledger.get(recent.id) is not None


def test_corrupted_document_raises_storage_error(clock) -> None:
    ledger = Ledger(MemoryStore({"ledger": "{not json"}), clock=clock)
    with pytest.raises(StorageError):
        ledger.load()
