"""
Collateral asset interface and an in-memory fungible token.

What it does:
- `CollateralAsset` is the surface the ledger needs from a fungible asset:
  balances, allowances and two transfer calls returning a success flag.
- `InMemoryCollateral` implements it ERC-20 style (balances, allowances,
  a `mint` faucet) for the demo, tests and simulations.

Where it is used:
- `engine.split_merge` pulls collateral into custody with `transfer_from`.
- `engine.split_merge` and `engine.resolution` release it with `transfer`.
"""

from __future__ import annotations

import logging
from typing import Dict, Protocol, Tuple, runtime_checkable

from ..errors import check_amount


logger = logging.getLogger(__name__)


@runtime_checkable
class CollateralAsset(Protocol):
    address: str

    def balance_of(self, owner: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


class InMemoryCollateral:
    def __init__(self, address: str, symbol: str = "", decimals: int = 6):
        self.address = address
        self.symbol = symbol or address
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply = 0

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        check_amount(amount)
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        check_amount(amount)
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(sender) < amount:
            logger.debug(f"{self.symbol}: transfer of {amount} from {sender} rejected")
            return False
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        allowed = self.allowance(owner, spender)
        if amount < 0 or allowed < amount or self.balance_of(owner) < amount:
            logger.debug(
                f"{self.symbol}: transfer_from {owner} by {spender} of {amount} rejected "
                f"(allowance={allowed}, balance={self.balance_of(owner)})"
            )
            return False
        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)
        return True

    def _move(self, sender: str, to: str, amount: int) -> None:
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[to] = self.balance_of(to) + amount
