from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from ..errors import InsufficientBalance, InvalidAmount, NotApproved, check_amount
from ..events.log import EventLog, now_ms
from ..events.schema import ApprovalForAll, TransferBatch, TransferSingle


logger = logging.getLogger(__name__)

Key = Tuple[str, int]


class PositionLedger:
    """Multi-asset balance table: (owner, position_id) -> amount.

    Balances are only changed through `_write`, which records the previous value
    in the open journal so `atomic()` can restore every touched entry if the
    enclosing block raises.
    """

    def __init__(self, events: EventLog, name: str = "ctf"):
        self.events = events
        self.name = name
        self._balances: Dict[str, Dict[int, int]] = {}
        self._supply: Dict[int, int] = {}
        self._operators: Dict[str, Set[str]] = {}
        self._journal: Optional[Dict[Key, int]] = None

    # ---- journal ----

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._journal is not None:
            # Nested blocks join the outermost journal
            yield
            return
        self._journal = {}
        try:
            yield
        except BaseException:
            journal, self._journal = self._journal, None
            for (owner, pid), old in journal.items():
                self._write(owner, pid, old)
            logger.debug(f"rolled back {len(journal)} balance entries")
            raise
        else:
            self._journal = None

    def _write(self, owner: str, position_id: int, amount: int) -> None:
        held = self._balances.setdefault(owner, {})
        old = held.get(position_id, 0)
        if self._journal is not None:
            self._journal.setdefault((owner, position_id), old)
        if amount:
            held[position_id] = amount
        else:
            held.pop(position_id, None)
        supply = self._supply.get(position_id, 0) + amount - old
        if supply:
            self._supply[position_id] = supply
        else:
            self._supply.pop(position_id, None)

    # ---- primitives ----

    def balance_of(self, owner: str, position_id: int) -> int:
        return self._balances.get(owner, {}).get(position_id, 0)

    def balance_of_batch(self, owners: Sequence[str], position_ids: Sequence[int]) -> List[int]:
        if len(owners) != len(position_ids):
            raise ValueError("owners and position_ids length mismatch")
        return [self.balance_of(o, p) for o, p in zip(owners, position_ids)]

    def total_supply(self, position_id: int) -> int:
        return self._supply.get(position_id, 0)

    def positions_of(self, owner: str) -> Dict[int, int]:
        return dict(self._balances.get(owner, {}))

    def holdings(self) -> Iterator[Tuple[str, int, int]]:
        for owner, held in self._balances.items():
            for pid, amount in held.items():
                yield owner, pid, amount

    def mint(self, owner: str, position_id: int, amount: int) -> None:
        check_amount(amount)
        self._write(owner, position_id, self.balance_of(owner, position_id) + amount)

    def burn(self, owner: str, position_id: int, amount: int) -> None:
        check_amount(amount)
        held = self.balance_of(owner, position_id)
        if amount > held:
            raise InsufficientBalance(owner, position_id, held, amount)
        self._write(owner, position_id, held - amount)

    # ---- approvals ----

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        if owner == operator:
            raise NotApproved("setting approval status for self")
        ops = self._operators.setdefault(owner, set())
        if approved:
            ops.add(operator)
        else:
            ops.discard(operator)
        self.events.emit(
            ApprovalForAll(ts=now_ms(), ledger=self.name, owner=owner, operator=operator, approved=bool(approved)),
            correlation_id=owner,
        )

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return operator in self._operators.get(owner, ())

    def _check_operator(self, operator: str, sender: str) -> None:
        if operator != sender and not self.is_approved_for_all(sender, operator):
            raise NotApproved(f"{operator} is neither {sender} nor approved by it")

    # ---- transfers ----

    def transfer(self, operator: str, sender: str, recipient: str, position_id: int, amount: int) -> None:
        self._check_operator(operator, sender)
        check_amount(amount)
        held = self.balance_of(sender, position_id)
        if amount > held:
            raise InsufficientBalance(sender, position_id, held, amount)
        self._write(sender, position_id, held - amount)
        self._write(recipient, position_id, self.balance_of(recipient, position_id) + amount)
        self.events.emit(
            TransferSingle(
                ts=now_ms(), ledger=self.name, operator=operator, sender=sender,
                recipient=recipient, position_id=position_id, amount=amount,
            ),
            correlation_id=sender,
        )

    def batch_transfer(
        self,
        operator: str,
        sender: str,
        recipient: str,
        position_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        self._check_operator(operator, sender)
        if len(position_ids) != len(amounts):
            raise InvalidAmount("position_ids and amounts length mismatch")
        need: Dict[int, int] = {}
        for pid, amount in zip(position_ids, amounts):
            need[pid] = need.get(pid, 0) + check_amount(amount)
        for pid, total in need.items():
            held = self.balance_of(sender, pid)
            if total > held:
                raise InsufficientBalance(sender, pid, held, total)
        for pid, total in need.items():
            self._write(sender, pid, self.balance_of(sender, pid) - total)
            self._write(recipient, pid, self.balance_of(recipient, pid) + total)
        self.events.emit(
            TransferBatch(
                ts=now_ms(), ledger=self.name, operator=operator, sender=sender,
                recipient=recipient, position_ids=list(position_ids), amounts=list(amounts),
            ),
            correlation_id=sender,
        )
