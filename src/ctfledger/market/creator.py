"""
Binary market creation on top of the position ledger.

What it does:
- Prepares a two-outcome condition for the configured oracle.
- Splits the creator's collateral into the YES (index set 1) and NO
  (index set 2) positions; the creator keeps both.
- Registers the pair with the exchange's token registry as complements.

Token ids are derived before anything is written, so a pair that the registry
would reject is refused before the condition is prepared. If the split fails
(no allowance, not enough collateral) the condition stays prepared and a retry
reuses it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..collateral.token import CollateralAsset
from ..engine.ctf import ConditionalTokens
from ..errors import TokenAlreadyRegistered
from ..ids.derive import Bytes32Like, ZERO_COLLECTION, condition_id, hex32, position_ids_for, to_bytes32
from .registry import TokenRegistry


logger = logging.getLogger(__name__)

YES = 1
NO = 2
BINARY_PARTITION = (YES, NO)


@dataclass
class Market:
    condition_id: bytes
    question_id: bytes
    oracle: str
    collateral: str
    yes_position_id: int
    no_position_id: int


class MarketCreator:
    def __init__(self, ctf: ConditionalTokens, registry: TokenRegistry, oracle: str):
        self.ctf = ctf
        self.registry = registry
        self.oracle = oracle

    def position_ids(self, question_id: Bytes32Like, collateral: CollateralAsset):
        cid = condition_id(self.oracle, question_id, 2)
        yes, no = position_ids_for(collateral.address, ZERO_COLLECTION, cid, BINARY_PARTITION)
        return cid, yes, no

    def create_market(self, creator: str, question_id: Bytes32Like, collateral: CollateralAsset, amount: int) -> Market:
        cid, yes, no = self.position_ids(question_id, collateral)
        if self.registry.is_registered(yes) or self.registry.is_registered(no):
            raise TokenAlreadyRegistered(f"market for condition {hex32(cid)} already registered")

        # A condition left prepared by an earlier, unfunded attempt is reused
        if cid not in self.ctf.conditions:
            self.ctf.prepare_condition(self.oracle, question_id, 2)
        self.ctf.split_position(creator, collateral, ZERO_COLLECTION, cid, BINARY_PARTITION, amount)
        self.registry.register_token(yes, no, cid)
        logger.info(f"market created: condition={hex32(cid)} yes={yes:#x} no={no:#x} funded={amount} by {creator}")
        return Market(
            condition_id=cid,
            question_id=to_bytes32(question_id),
            oracle=self.oracle,
            collateral=collateral.address,
            yes_position_id=yes,
            no_position_id=no,
        )
