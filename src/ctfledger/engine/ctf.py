"""
ConditionalTokens: one ledger instance.

What it does:
- Owns the condition registry, the position ledger, the custody account and
  the event log, and wires them into the split/merge and resolution engines.
- Runs every public operation as one atomic transition: balance writes are
  journaled and events buffered, so a rejected call leaves no trace except a
  rejection metric and a WARNING log line.

Where it is used:
- `market.creator.MarketCreator` and `market.resolver.OracleResolver`.
- `ctfledger.main` demo flow and `ledger.export`.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from ..collateral.token import CollateralAsset
from ..conditions.model import Condition
from ..conditions.registry import ConditionRegistry
from ..errors import LedgerError
from ..events.log import EventLog
from ..events.schema import EventEnvelope
from ..ids.derive import Bytes32Like, ZERO_COLLECTION, collection_id, condition_id, position_id
from ..ledger.positions import PositionLedger
from ..metrics.ledger import get_operation_latency_seconds, get_operations_rejected_total
from .custody import Custody
from .resolution import ResolutionEngine
from .split_merge import SplitMergeEngine


logger = logging.getLogger(__name__)


class ConditionalTokens:
    def __init__(
        self,
        address: str = "ctf",
        publisher: Optional[Callable[[EventEnvelope], None]] = None,
    ):
        self.address = address
        self.events = EventLog(publisher)
        self.conditions = ConditionRegistry(self.events, name=address)
        self.positions = PositionLedger(self.events, name=address)
        self.custody = Custody(address)
        self.splitter = SplitMergeEngine(self.conditions, self.positions, self.custody, self.events, name=address)
        self.resolver = ResolutionEngine(self.conditions, self.positions, self.custody, self.events, name=address)
        self.collaterals: Dict[str, CollateralAsset] = {}
        self.rejected_total = get_operations_rejected_total()
        self.latency = get_operation_latency_seconds()

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            with self.events.transaction(), self.positions.atomic():
                yield
        except LedgerError as e:
            self.rejected_total.labels(name, e.reason).inc()
            logger.warning(f"{name} rejected ({e.reason}): {e}")
            raise
        finally:
            self.latency.labels(name).observe(time.perf_counter() - t0)

    def _track(self, collateral: CollateralAsset) -> None:
        self.collaterals.setdefault(collateral.address, collateral)

    # ---- conditions ----

    def prepare_condition(self, oracle: str, question_id: Bytes32Like, outcome_slot_count: int) -> Condition:
        with self._operation("prepare"):
            return self.conditions.prepare(oracle, question_id, outcome_slot_count)

    def resolve(self, caller: str, condition_id: Bytes32Like, payouts: Sequence[int]) -> Condition:
        with self._operation("resolve"):
            return self.resolver.resolve(caller, condition_id, payouts)

    def report_payouts(self, oracle: str, question_id: Bytes32Like, payouts: Sequence[int]) -> Condition:
        with self._operation("resolve"):
            return self.resolver.report_payouts(oracle, question_id, payouts)

    def get_condition(self, condition_id: Bytes32Like) -> Condition:
        return self.conditions.get(condition_id)

    def get_outcome_slot_count(self, condition_id: Bytes32Like) -> int:
        return self.conditions.outcome_slot_count(condition_id)

    # ---- positions ----

    def split_position(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        partition: Iterable[int],
        amount: int,
    ) -> List[int]:
        with self._operation("split"):
            ids = self.splitter.split(caller, collateral, parent_collection_id, condition_id, partition, amount)
        self._track(collateral)
        return ids

    def merge_positions(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        partition: Iterable[int],
        amount: int,
    ) -> None:
        with self._operation("merge"):
            self.splitter.merge(caller, collateral, parent_collection_id, condition_id, partition, amount)

    def redeem_positions(
        self,
        caller: str,
        collateral: CollateralAsset,
        parent_collection_id: Bytes32Like,
        condition_id: Bytes32Like,
        index_sets: Iterable[int],
    ) -> int:
        with self._operation("redeem"):
            return self.resolver.redeem(caller, collateral, parent_collection_id, condition_id, index_sets)

    # ---- position-holding interface ----

    def balance_of(self, owner: str, position_id: int) -> int:
        return self.positions.balance_of(owner, position_id)

    def balance_of_batch(self, owners: Sequence[str], position_ids: Sequence[int]) -> List[int]:
        return self.positions.balance_of_batch(owners, position_ids)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        with self._operation("approve"):
            self.positions.set_approval_for_all(owner, operator, approved)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.positions.is_approved_for_all(owner, operator)

    def transfer(self, operator: str, sender: str, recipient: str, position_id: int, amount: int) -> None:
        with self._operation("transfer"):
            self.positions.transfer(operator, sender, recipient, position_id, amount)

    def batch_transfer(
        self,
        operator: str,
        sender: str,
        recipient: str,
        position_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        with self._operation("batch_transfer"):
            self.positions.batch_transfer(operator, sender, recipient, position_ids, amounts)

    # ---- identifier helpers (pure; mirror ids.derive) ----

    @staticmethod
    def get_condition_id(oracle: str, question_id: Bytes32Like, outcome_slot_count: int) -> bytes:
        return condition_id(oracle, question_id, outcome_slot_count)

    @staticmethod
    def get_collection_id(parent_collection_id: Bytes32Like, condition: Bytes32Like, index_set: int) -> bytes:
        return collection_id(parent_collection_id, condition, index_set)

    @staticmethod
    def get_position_id(collateral: CollateralAsset, collection: Bytes32Like = ZERO_COLLECTION) -> int:
        return position_id(collateral.address, collection)

    def collateral_in_custody(self, collateral: CollateralAsset) -> int:
        return self.custody.held(collateral)
