"""
Partition value type used by split, merge and redeem.

A partition is validated to be non-empty with every index set a positive
bitmask inside the condition's outcome slots. Disjointness and coverage are
NOT enforced: overlapping or partial partitions are accepted so callers can
hold redundant outcome positions or split only part of the outcome space.
`is_disjoint()` and `is_complete()` report those properties for callers that
want to insist on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from ..errors import InvalidIndexSet, InvalidPartition
from ..ids.derive import full_index_set


@dataclass(frozen=True)
class Partition:
    index_sets: Tuple[int, ...]
    outcome_slot_count: int

    @classmethod
    def of(cls, index_sets: Iterable[int], outcome_slot_count: int) -> "Partition":
        if isinstance(index_sets, int):
            raise InvalidPartition("partition must be a sequence of index sets, not a single int")
        sets = tuple(index_sets)
        if not sets:
            raise InvalidPartition("partition is empty")
        full = full_index_set(outcome_slot_count)
        for s in sets:
            if isinstance(s, bool) or not isinstance(s, int):
                raise InvalidIndexSet(f"index set must be an int, got {type(s).__name__}")
            if s <= 0:
                raise InvalidIndexSet(f"index set must be positive, got {s}")
            if s > full:
                raise InvalidIndexSet(f"index set {s:#b} selects slots beyond {outcome_slot_count} outcomes")
        return cls(index_sets=sets, outcome_slot_count=outcome_slot_count)

    def union(self) -> int:
        acc = 0
        for s in self.index_sets:
            acc |= s
        return acc

    def is_disjoint(self) -> bool:
        seen = 0
        for s in self.index_sets:
            if seen & s:
                return False
            seen |= s
        return True

    def is_complete(self) -> bool:
        return self.union() == full_index_set(self.outcome_slot_count)

    def __iter__(self) -> Iterator[int]:
        return iter(self.index_sets)

    def __len__(self) -> int:
        return len(self.index_sets)
