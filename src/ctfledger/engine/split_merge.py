from __future__ import annotations

import logging
from typing import Iterable, List

from ..collateral.token import CollateralAsset
from ..conditions.registry import ConditionRegistry
from ..errors import InsufficientBalance, check_amount
from ..events.log import EventLog, now_ms
from ..events.schema import PositionSplit, PositionsMerge
from ..ids.derive import Bytes32Like, ZERO_COLLECTION, collection_id, hex32, position_id, to_bytes32
from ..ledger.positions import PositionLedger
from ..metrics.ledger import get_merges_total, get_splits_total
from .custody import Custody
from .partition import Partition


logger = logging.getLogger(__name__)


class SplitMergeEngine:
    """Converts collateral or a parent position into finer outcome positions and back.

    Every split or merge is value-neutral: one unit of the coarser asset maps
    to one unit of each position in the partition.
    """

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
        self.splits_total = get_splits_total()
        self.merges_total = get_merges_total()

    def _children(self, collateral: CollateralAsset, parent: bytes, condition: bytes, partition: Partition) -> List[int]:
        return [position_id(collateral.address, collection_id(parent, condition, s)) for s in partition]

    def _prepare(self, condition_id: Bytes32Like, partition: Iterable[int], amount: int, op: str):
        cond = self.registry.get(condition_id)
        part = Partition.of(partition, cond.outcome_slot_count)
        check_amount(amount, allow_zero=False)
        if not part.is_disjoint() or not part.is_complete():
            logger.debug(
                f"{op} on {cond.id_hex} with non-exclusive or partial partition {list(part)}"
            )
        return cond, part

    def split(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        partition: Iterable[int],
        amount: int,
    ) -> List[int]:
        """Lock `amount` of collateral (or of the parent position) and mint each child.

        Returns the minted position ids in partition order.
        """
        parent = to_bytes32(parent_collection_id)
        cond, part = self._prepare(condition_id, partition, amount, "split")
        children = self._children(collateral, parent, cond.condition_id, part)

        if parent == ZERO_COLLECTION:
            self.custody.pull(collateral, caller, amount)
            source = "collateral"
        else:
            self.positions.burn(caller, position_id(collateral.address, parent), amount)
            source = "position"
        for pid in children:
            self.positions.mint(caller, pid, amount)

        self.splits_total.labels(collateral.address, source).inc()
        self.events.emit(
            PositionSplit(
                ts=now_ms(),
                ledger=self.name,
                stakeholder=caller,
                collateral=collateral.address,
                parent_collection_id=hex32(parent),
                condition_id=cond.id_hex,
                partition=list(part),
                amount=amount,
            ),
            correlation_id=cond.id_hex,
        )
        return children

    def merge(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        partition: Iterable[int],
        amount: int,
    ) -> None:
        """Burn `amount` of each child and release collateral or mint the parent position."""
        parent = to_bytes32(parent_collection_id)
        cond, part = self._prepare(condition_id, partition, amount, "merge")
        children = self._children(collateral, parent, cond.condition_id, part)

        # A redundant partition may name the same position more than once
        need = {}
        for pid in children:
            need[pid] = need.get(pid, 0) + amount
        for pid, total in need.items():
            held = self.positions.balance_of(caller, pid)
            if total > held:
                raise InsufficientBalance(caller, pid, held, total)
        for pid in children:
            self.positions.burn(caller, pid, amount)

        if parent == ZERO_COLLECTION:
            self.custody.release(collateral, caller, amount)
            target = "collateral"
        else:
            self.positions.mint(caller, position_id(collateral.address, parent), amount)
            target = "position"

        self.merges_total.labels(collateral.address, target).inc()
        self.events.emit(
            PositionsMerge(
                ts=now_ms(),
                ledger=self.name,
                stakeholder=caller,
                collateral=collateral.address,
                parent_collection_id=hex32(parent),
                condition_id=cond.id_hex,
                partition=list(part),
                amount=amount,
            ),
            correlation_id=cond.id_hex,
        )
