"""
Resolution and redemption.

What it does:
- `resolve` freezes an oracle-reported payout vector on a prepared condition.
  Prepared -> Resolved is the only transition and it is terminal.
- `redeem` pays out held positions of a resolved condition in proportion to
  the payout numerators of the outcome slots each position covers, and burns
  the redeemed balances (winning or not).

Payouts use truncating integer division. The remainder ("dust") stays in the
ledger's custody and is not redistributed; `redemption_dust` reports it.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ..collateral.token import CollateralAsset
from ..conditions.model import Condition
from ..conditions.registry import ConditionRegistry
from ..errors import (
    AlreadyResolved,
    ConditionNotResolved,
    InvalidPayout,
    InvalidPayoutLength,
    NotOracle,
    ZeroPayout,
)
from ..events.log import EventLog, now_ms
from ..events.schema import ConditionResolution, PayoutRedemption
from ..ids.derive import Bytes32Like, ZERO_COLLECTION, collection_id, condition_id as derive_condition_id, hex32, normalize_address, position_id, to_bytes32
from ..ledger.positions import PositionLedger
from ..metrics.ledger import get_collateral_paid_total, get_conditions_resolved_total, get_redemptions_total
from .custody import Custody
from .partition import Partition


logger = logging.getLogger(__name__)


def payout_amount(cond: Condition, index_set: int, balance: int) -> int:
    return balance * cond.payout_for(index_set) // cond.payout_denominator


def redemption_dust(cond: Condition, index_set: int, balance: int) -> int:
    """Remainder truncated away when `balance` of `index_set` is redeemed.

    Expressed in 1/payout_denominator units of collateral. Remainders from many
    holders add up to whole units that stay locked in custody.
    """
    exact_num = balance * cond.payout_for(index_set)
    return exact_num % cond.payout_denominator


class ResolutionEngine:
    def __init__(
        self,
        registry: ConditionRegistry,
        positions: PositionLedger,
        custody: Custody,
        events: EventLog,
        name: str = "ctf",
    ):
        self.registry = registry
        self.positions = positions
        self.custody = custody
        self.events = events
        self.name = name
        self.resolved_total = get_conditions_resolved_total()
        self.redemptions_total = get_redemptions_total()
        self.paid_total = get_collateral_paid_total()

    def resolve(self, caller: str, condition_id: Bytes32Like, payouts: Sequence[int]) -> Condition:
        cond = self.registry.get(condition_id)
        if not isinstance(caller, str) or normalize_address(caller) != cond.oracle:
            raise NotOracle(f"{caller} is not the oracle for {cond.id_hex}")
        if cond.resolved:
            raise AlreadyResolved(f"payout denominator already set for {cond.id_hex}")
        payouts = list(payouts)
        if len(payouts) != cond.outcome_slot_count:
            raise InvalidPayoutLength(
                f"expected {cond.outcome_slot_count} payouts for {cond.id_hex}, got {len(payouts)}"
            )
        for p in payouts:
            if isinstance(p, bool) or not isinstance(p, int) or p < 0:
                raise InvalidPayout(f"payout numerators must be non-negative ints, got {p!r}")
        if sum(payouts) == 0:
            raise ZeroPayout("payout is all zeroes")

        self.registry.record_resolution(cond, payouts)
        self.resolved_total.labels(str(cond.outcome_slot_count)).inc()
        self.events.emit(
            ConditionResolution(
                ts=now_ms(),
                ledger=self.name,
                condition_id=cond.id_hex,
                oracle=cond.oracle,
                question_id=hex32(cond.question_id),
                outcome_slot_count=cond.outcome_slot_count,
                payout_numerators=list(payouts),
            ),
            correlation_id=cond.id_hex,
        )
        logger.info(f"condition {cond.id_hex} resolved with payouts {payouts}")
        return cond

    def report_payouts(self, oracle: str, question_id: Bytes32Like, payouts: Sequence[int]) -> Condition:
        """Resolve the condition `oracle` prepared for `question_id` with len(payouts) outcomes."""
        payouts = list(payouts)
        if len(payouts) <= 1:
            raise InvalidPayoutLength("there should be more than one outcome slot")
        cid = derive_condition_id(oracle, question_id, len(payouts))
        return self.resolve(oracle, cid, payouts)

    def redeem(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        index_sets: Iterable[int],
    ) -> int:
        parent = to_bytes32(parent_collection_id)
        cond = self.registry.get(condition_id)
        if not cond.resolved:
            raise ConditionNotResolved(f"result for {cond.id_hex} not received yet")
        sets = Partition.of(index_sets, cond.outcome_slot_count)

        total = 0
        for s in sets:
            pid = position_id(collateral.address, collection_id(parent, cond.condition_id, s))
            balance = self.positions.balance_of(caller, pid)
            if balance:
                total += payout_amount(cond, s, balance)
                self.positions.burn(caller, pid, balance)

        if total > 0:
            if parent == ZERO_COLLECTION:
                self.custody.release(collateral, caller, total)
                self.paid_total.labels(collateral.address).inc(total)
            else:
                self.positions.mint(caller, position_id(collateral.address, parent), total)

        self.redemptions_total.labels(collateral.address).inc()
        self.events.emit(
            PayoutRedemption(
                ts=now_ms(),
                ledger=self.name,
                redeemer=caller,
                collateral=collateral.address,
                parent_collection_id=hex32(parent),
                condition_id=cond.id_hex,
                index_sets=list(sets),
                payout=total,
            ),
            correlation_id=cond.id_hex,
        )
        return total
