from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..ids.derive import hex32


@dataclass
class Condition:
    """A prepared question with a designated resolving oracle.

    Attributes:
        condition_id: Derived 32-byte id (see ids.derive.condition_id)
        oracle: Normalized address allowed to resolve the condition
        question_id: Caller-chosen 32-byte question identifier
        outcome_slot_count: Number of mutually exclusive outcomes (2..256)
        payout_numerators: One weight per outcome slot; empty until resolved
        payout_denominator: Sum of the numerators; 0 until resolved
        resolved: Set exactly once, by resolution
    """

    condition_id: bytes
    oracle: str
    question_id: bytes
    outcome_slot_count: int
    payout_numerators: List[int] = field(default_factory=list)
    payout_denominator: int = 0
    resolved: bool = False

    @property
    def id_hex(self) -> str:
        return hex32(self.condition_id)

    def payout_for(self, index_set: int) -> int:
        """Sum of payout numerators over the outcome slots selected by `index_set`."""
        return sum(
            self.payout_numerators[j]
            for j in range(self.outcome_slot_count)
            if (index_set >> j) & 1
        )
