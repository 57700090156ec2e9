"""Bet Ledger: the persisted collection of bets.

The whole ledger (bets plus their retry records) is one JSON document in the
durable store, so every write replaces it atomically.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from meteobet.betting.models import (
    Bet,
    BetRequest,
    BetStatus,
    Category,
    Settlement,
    utc_now,
    verification_deadline,
)
from meteobet.exceptions import BetNotFoundError, StorageError

from .retry_queue import RetryRecord
from .store import KeyValueStore

logger = logging.getLogger(__name__)

LEDGER_KEY = "ledger"

# (minimum odds, +- margin) for Pro-mode ranges, checked top-down
_PRO_MARGINS: list[tuple[float, float]] = [
    (100, 0.0),
    (50, 1.0),
    (20, 2.0),
    (10, 3.0),
    (5, 4.0),
]
_DEFAULT_PRO_MARGIN = 5.0


class LedgerState(BaseModel):
    """Complete ledger document."""

    last_updated: datetime | None = None
    bets: dict[str, Bet] = Field(default_factory=dict)
    retries: dict[str, RetryRecord] = Field(default_factory=dict)


# ============================================================================
# Helper Functions
# ============================================================================


def generate_bet_id() -> str:
    """Generate unique bet ID (bet_<12 hex chars>)."""
    return f"bet_{uuid4().hex[:12]}"


def pro_margin(odds: float) -> float:
    for threshold, margin in _PRO_MARGINS:
        if odds >= threshold:
            return margin
    return _DEFAULT_PRO_MARGIN


def pro_range(category: Category, predicted_value: float, odds: float) -> tuple[float, float]:
    """Winning range for a Pro bet, clamped to the category's physical domain."""
    margin = pro_margin(odds)
    floor, ceiling = category.rule.domain
    low = max(floor, predicted_value - margin)
    high = min(ceiling, predicted_value + margin)
    return round(low, 2), round(high, 2)


def build_bet(request: BetRequest, odds: float, placed_at: datetime) -> Bet:
    """Create a pending bet record from a validated request."""
    category = request.category
    fields: dict[str, object] = {}

    typed_field = category.rule.typed_field
    if typed_field is not None:
        fields[typed_field] = request.predicted_value

    if request.mode == "Pro" and request.predicted_value is not None:
        fields["range_min"], fields["range_max"] = pro_range(
            category, request.predicted_value, odds
        )

    return Bet(
        id=generate_bet_id(),
        owner=request.owner,
        category=category,
        predicted_value=request.predicted_value,
        stake=request.stake,
        odds=odds,
        mode=request.mode,
        placed_at=placed_at,
        verification_deadline=verification_deadline(category, placed_at),
        **fields,
    )


def apply_settlement(state: LedgerState, bet_id: str, settlement: Settlement) -> Bet | None:
    """Write all settlement fields of one bet in a single replacement.

    Returns the updated bet, or None when the bet was already verified.
    """
    bet = state.bets.get(bet_id)
    if bet is None:
        raise BetNotFoundError(bet_id)
    if bet.verified:
        logger.debug(f"Bet {bet_id} already verified, skipping settlement")
        return None

    settled = bet.model_copy(
        update={
            "status": settlement.status,
            "result": settlement.result,
            "won": settlement.won,
            "explanation": settlement.explanation,
            "resolved_at": settlement.resolved_at,
            "verified": True,
        }
    )
    state.bets[bet_id] = settled
    return settled


def annotate_pending(state: LedgerState, bet_id: str, note: str) -> Bet | None:
    """Attach a progress note to a still-pending bet without settling it."""
    bet = state.bets.get(bet_id)
    if bet is None or bet.verified:
        return None
    updated = bet.model_copy(update={"explanation": note})
    state.bets[bet_id] = updated
    return updated


# ============================================================================
# Ledger
# ============================================================================


class Ledger:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], datetime] = utc_now,
        key: str = LEDGER_KEY,
    ):
        self.store = store
        self.clock = clock
        self.key = key

    def load(self) -> LedgerState:
        raw = self.store.get(self.key)
        if not raw:
            return LedgerState()
        try:
            return LedgerState.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupted ledger document: {e}")
            raise StorageError(f"Corrupted ledger document: {e}", key=self.key) from e

    def save(self, state: LedgerState) -> None:
        state.last_updated = self.clock()
        self.store.set(self.key, state.model_dump_json())

    def append(self, request: BetRequest, odds: float) -> Bet:
        state = self.load()
        bet = build_bet(request, odds, placed_at=self.clock())
        state.bets[bet.id] = bet
        self.save(state)
        logger.info(
            f"Placed {bet.category.value} bet {bet.id} "
            f"(stake={bet.stake}, odds={bet.odds}, mode={bet.mode})"
        )
        return bet

    def discard(self, bet_id: str) -> bool:
        """Remove a bet outright. Used to roll back a failed placement."""
        state = self.load()
        if state.bets.pop(bet_id, None) is None:
            return False
        state.retries.pop(bet_id, None)
        self.save(state)
        logger.info(f"Discarded bet {bet_id}")
        return True

    def get(self, bet_id: str) -> Bet | None:
        return self.load().bets.get(bet_id)

    def query(
        self,
        owner: str | None = None,
        status: BetStatus | None = None,
        category: Category | None = None,
    ) -> list[Bet]:
        """Bets matching every given filter, newest first."""
        bets = [
            bet
            for bet in self.load().bets.values()
            if (owner is None or bet.owner == owner)
            and (status is None or bet.status == status)
            and (category is None or bet.category == category)
        ]
        return sorted(bets, key=lambda b: b.placed_at, reverse=True)

    def mutate(self, bet_id: str, settlement: Settlement) -> Bet:
        """Settle one bet. Reserved for the resolution engine."""
        state = self.load()
        settled = apply_settlement(state, bet_id, settlement)
        if settled is None:
            return state.bets[bet_id]
        state.retries.pop(bet_id, None)
        self.save(state)
        return settled

    def prune(self, older_than: timedelta) -> int:
        """Delete settled bets resolved before ``now - older_than``."""
        state = self.load()
        cutoff = self.clock() - older_than
        expired = [
            bet_id
            for bet_id, bet in state.bets.items()
            if bet.verified and (bet.resolved_at or bet.placed_at) < cutoff
        ]
        if not expired:
            logger.debug("No settled bets old enough to prune")
            return 0

        for bet_id in expired:
            del state.bets[bet_id]
            state.retries.pop(bet_id, None)
        self.save(state)
        logger.info(f"Pruned {len(expired)} settled bets older than {older_than.days} days")
        return len(expired)
