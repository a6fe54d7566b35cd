"""Error kinds raised by the position ledger.

Three families:
- PreconditionError: malformed arguments or the wrong lifecycle phase.
- InsufficientBalance: burning or moving more than is held.
- CollateralTransferFailed: the external collateral asset rejected a movement.

Every class carries a snake_case `reason` used as a metrics label.
"""

from __future__ import annotations


class LedgerError(Exception):
    reason = "ledger_error"


class PreconditionError(LedgerError, ValueError):
    reason = "precondition"


class AlreadyPrepared(PreconditionError):
    reason = "already_prepared"


class ConditionNotFound(PreconditionError):
    reason = "condition_not_found"


class AlreadyResolved(PreconditionError):
    reason = "already_resolved"


class ConditionNotResolved(PreconditionError):
    reason = "condition_not_resolved"


class InvalidOutcomeSlotCount(PreconditionError):
    reason = "invalid_outcome_slot_count"


class InvalidPayoutLength(PreconditionError):
    reason = "invalid_payout_length"


class InvalidPayout(PreconditionError):
    reason = "invalid_payout"


class ZeroPayout(PreconditionError):
    reason = "zero_payout"


class InvalidIndexSet(PreconditionError):
    reason = "invalid_index_set"


class InvalidPartition(PreconditionError):
    reason = "invalid_partition"


class InvalidAmount(PreconditionError):
    reason = "invalid_amount"


class NotOracle(PreconditionError):
    reason = "not_oracle"


class NotApproved(PreconditionError):
    reason = "not_approved"


class TokenAlreadyRegistered(PreconditionError):
    reason = "token_already_registered"


class InvalidComplement(PreconditionError):
    reason = "invalid_complement"


class InvalidIdentifier(PreconditionError):
    reason = "invalid_identifier"


class InsufficientBalance(LedgerError):
    reason = "insufficient_balance"

    def __init__(self, owner: str, position_id: int, held: int, requested: int):
        super().__init__(
            f"{owner} holds {held} of position {position_id:#x}, cannot remove {requested}"
        )
        self.owner = owner
        self.position_id = position_id
        self.held = held
        self.requested = requested


class CollateralTransferFailed(LedgerError):
    reason = "collateral_transfer_failed"


def check_amount(amount, allow_zero: bool = True) -> int:
    """Return `amount` if it is a usable token amount, else raise InvalidAmount."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"amount must be an int, got {type(amount).__name__}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(f"amount must be {'non-negative' if allow_zero else 'positive'}, got {amount}")
    return amount
