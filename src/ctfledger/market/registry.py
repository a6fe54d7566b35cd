from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..errors import InvalidComplement, TokenAlreadyRegistered
from ..events.log import EventLog, now_ms
from ..events.schema import TokenRegistered
from ..ids.derive import Bytes32Like, hex32, to_bytes32


@dataclass
class TokenInfo:
    complement: int
    condition_id: bytes


class TokenRegistry:
    """The exchange-side registry of tradeable position pairs.

    A pair is registered in both directions so either side can look up its
    complement. Matching and pricing live in the exchange, not here.
    """

    def __init__(self, events: EventLog, name: str = "exchange"):
        self.events = events
        self.name = name
        self._tokens: Dict[int, TokenInfo] = {}

    def register_token(self, token: int, complement: int, condition_id: Bytes32Like) -> None:
        if token == complement:
            raise InvalidComplement("token and complement must differ")
        if token == 0 or complement == 0:
            raise InvalidComplement("token ids must be non-zero")
        if token in self._tokens or complement in self._tokens:
            raise TokenAlreadyRegistered(f"token {token:#x} or its complement is already registered")
        cid = to_bytes32(condition_id)
        self._tokens[token] = TokenInfo(complement=complement, condition_id=cid)
        self._tokens[complement] = TokenInfo(complement=token, condition_id=cid)
        self.events.emit(
            TokenRegistered(ts=now_ms(), ledger=self.name, token=token, complement=complement, condition_id=hex32(cid)),
            correlation_id=hex32(cid),
        )
        self.events.emit(
            TokenRegistered(ts=now_ms(), ledger=self.name, token=complement, complement=token, condition_id=hex32(cid)),
            correlation_id=hex32(cid),
        )

    def is_registered(self, token: int) -> bool:
        return token in self._tokens

    def get_complement(self, token: int) -> Optional[int]:
        info = self._tokens.get(token)
        return info.complement if info else None

    def get_condition_id(self, token: int) -> Optional[bytes]:
        info = self._tokens.get(token)
        return info.condition_id if info else None
