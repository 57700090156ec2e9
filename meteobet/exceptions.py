"""Exception hierarchy for the betting engine."""

from __future__ import annotations

from enum import Enum


class MeteobetError(Exception):
    """Base exception for betting engine errors."""


class RejectionReason(str, Enum):
    """Reason codes returned when a placement is refused."""

    LOCK_HELD = "lock_held"
    STAKE_OUT_OF_BOUNDS = "stake_out_of_bounds"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    QUOTA_EXHAUSTED = "quota_exhausted"


class BetValidationError(MeteobetError):
    """Placement rejected before any state was mutated."""

    def __init__(self, reason: RejectionReason, message: str | None = None):
        super().__init__(message or reason.value)
        self.reason = reason


class ResolutionExhaustedError(MeteobetError):
    """A bet ran out of resolution attempts and was moved to ``error``."""

    def __init__(self, bet_id: str, attempts: int):
        super().__init__(f"Bet {bet_id} could not be resolved after {attempts} attempts")
        self.bet_id = bet_id
        self.attempts = attempts


class StorageError(MeteobetError):
    """The durable store could not be read or written."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class BetNotFoundError(MeteobetError):
    """No bet with the given id exists in the ledger."""

    def __init__(self, bet_id: str):
        super().__init__(f"Bet not found: {bet_id}")
        self.bet_id = bet_id
