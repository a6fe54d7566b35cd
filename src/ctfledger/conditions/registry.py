from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from ..errors import AlreadyPrepared, ConditionNotFound, InvalidOutcomeSlotCount, PreconditionError
from ..events.log import EventLog, now_ms
from ..events.schema import ConditionPreparation
from ..ids.derive import Bytes32Like, MAX_OUTCOME_SLOTS, condition_id as derive_condition_id, hex32, normalize_address, to_bytes32
from ..metrics.ledger import get_conditions_prepared_total
from .model import Condition


logger = logging.getLogger(__name__)


class ConditionRegistry:
    """One record per prepared condition, keyed by the derived condition id."""

    def __init__(self, events: EventLog, name: str = "ctf"):
        self.events = events
        self.name = name
        self._conditions: Dict[bytes, Condition] = {}
        self.prepared_total = get_conditions_prepared_total()

    def prepare(self, oracle: str, question_id: Bytes32Like, outcome_slot_count: int) -> Condition:
        if isinstance(outcome_slot_count, bool) or not isinstance(outcome_slot_count, int):
            raise InvalidOutcomeSlotCount("outcome_slot_count must be an int")
        if outcome_slot_count <= 1:
            raise InvalidOutcomeSlotCount("there should be more than one outcome slot")
        if outcome_slot_count > MAX_OUTCOME_SLOTS:
            raise InvalidOutcomeSlotCount(f"too many outcome slots (max {MAX_OUTCOME_SLOTS})")
        if not isinstance(oracle, str) or not oracle.strip():
            raise PreconditionError("oracle address must be set")
        oracle = normalize_address(oracle)
        qid = to_bytes32(question_id)
        cid = derive_condition_id(oracle, qid, outcome_slot_count)
        if cid in self._conditions:
            raise AlreadyPrepared(f"condition {hex32(cid)} already prepared")

        cond = Condition(condition_id=cid, oracle=oracle, question_id=qid, outcome_slot_count=outcome_slot_count)
        self._conditions[cid] = cond
        self.prepared_total.labels(str(outcome_slot_count)).inc()
        self.events.emit(
            ConditionPreparation(
                ts=now_ms(),
                ledger=self.name,
                condition_id=cond.id_hex,
                oracle=oracle,
                question_id=hex32(qid),
                outcome_slot_count=outcome_slot_count,
            ),
            correlation_id=cond.id_hex,
        )
        logger.debug(f"prepared condition {cond.id_hex} oracle={oracle} slots={outcome_slot_count}")
        return cond

    def get(self, condition_id: Bytes32Like) -> Condition:
        cond = self.find(condition_id)
        if cond is None:
            raise ConditionNotFound(f"condition {hex32(condition_id)} not prepared")
        return cond

    def find(self, condition_id: Bytes32Like) -> Optional[Condition]:
        return self._conditions.get(to_bytes32(condition_id))

    def outcome_slot_count(self, condition_id: Bytes32Like) -> int:
        """Number of outcome slots, or 0 when the condition was never prepared."""
        cond = self.find(condition_id)
        return cond.outcome_slot_count if cond is not None else 0

    def payouts(self, condition_id: Bytes32Like) -> List[int]:
        return list(self.get(condition_id).payout_numerators)

    def record_resolution(self, cond: Condition, payouts: List[int]) -> None:
        """Freeze a validated payout vector on the record (see engine.resolution)."""
        cond.payout_numerators = list(payouts)
        cond.payout_denominator = sum(payouts)
        cond.resolved = True

    def __contains__(self, condition_id) -> bool:
        try:
            return self.find(condition_id) is not None
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._conditions)

    def __iter__(self) -> Iterator[Condition]:
        return iter(self._conditions.values())
