"""
Identifier derivation for conditions, collections and positions.

What it does:
- Derives a 32-byte condition id from (oracle, question_id, outcome_slot_count).
- Derives a 32-byte collection id from (parent collection, condition id, index set).
  Collection ids combine additively modulo 2**256, so nesting the same set of
  (condition, index set) pairs in any order yields the same collection.
- Derives an integer position id from (collateral address, collection id).

All functions are pure: anyone holding the inputs can pre-compute a position id
before the ledger has ever minted it.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, List, Union

from ..errors import InvalidIdentifier

Bytes32Like = Union[bytes, bytearray, str, int]

WORD = 32
MOD = 1 << 256
ZERO_COLLECTION = bytes(WORD)
MAX_OUTCOME_SLOTS = 256


def _h(*parts: bytes) -> bytes:
    return hashlib.sha3_256(b"".join(parts)).digest()


def normalize_address(addr: str) -> str:
    """Canonical form of an address: surrounding whitespace stripped, lower-cased.

    Condition ids hash this form, so oracle checks must compare it too.
    """
    if not isinstance(addr, str):
        raise InvalidIdentifier(f"address must be a string, got {type(addr).__name__}")
    return addr.strip().lower()


def _address(addr: str) -> bytes:
    norm = normalize_address(addr)
    if not norm:
        raise InvalidIdentifier("address must be a non-empty string")
    raw = norm.encode("utf-8")
    return len(raw).to_bytes(4, "big") + raw


def _uint(value: int) -> bytes:
    return int(value).to_bytes(WORD, "big")


def to_bytes32(value: Bytes32Like) -> bytes:
    """Normalize bytes, `0x` hex strings and ints into a 32-byte identifier."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != WORD:
            raise InvalidIdentifier(f"expected {WORD} bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, bool):
        raise InvalidIdentifier("bool is not an identifier")
    if isinstance(value, int):
        if not 0 <= value < MOD:
            raise InvalidIdentifier("identifier out of uint256 range")
        return _uint(value)
    if isinstance(value, str):
        s = value[2:] if value.lower().startswith("0x") else value
        if len(s) > WORD * 2:
            raise InvalidIdentifier(f"hex identifier longer than {WORD} bytes")
        try:
            return bytes.fromhex(s.rjust(WORD * 2, "0"))
        except ValueError:
            raise InvalidIdentifier(f"malformed hex identifier {value!r}") from None
    raise InvalidIdentifier(f"cannot convert {type(value).__name__} to bytes32")


def hex32(value: Bytes32Like) -> str:
    return "0x" + to_bytes32(value).hex()


def condition_id(oracle: str, question_id: Bytes32Like, outcome_slot_count: int) -> bytes:
    return _h(_address(oracle), to_bytes32(question_id), _uint(outcome_slot_count))


def collection_id(parent_collection_id: Bytes32Like, condition: Bytes32Like, index_set: int) -> bytes:
    child = int.from_bytes(_h(to_bytes32(condition), _uint(index_set)), "big")
    parent = int.from_bytes(to_bytes32(parent_collection_id), "big")
    return _uint((parent + child) % MOD)


def position_id(collateral: str, collection: Bytes32Like) -> int:
    return int.from_bytes(_h(_address(collateral), to_bytes32(collection)), "big")


def full_index_set(outcome_slot_count: int) -> int:
    return (1 << outcome_slot_count) - 1


def index_set_of(*slots: int) -> int:
    """Bitmask selecting the given zero-based outcome slots."""
    mask = 0
    for s in slots:
        if s < 0:
            raise ValueError(f"negative outcome slot {s}")
        mask |= 1 << s
    return mask


def slots_of(index_set: int) -> List[int]:
    out: List[int] = []
    j = 0
    while index_set >> j:
        if (index_set >> j) & 1:
            out.append(j)
        j += 1
    return out


def position_ids_for(collateral: str, parent_collection_id: Bytes32Like, condition: Bytes32Like, index_sets: Iterable[int]) -> List[int]:
    return [position_id(collateral, collection_id(parent_collection_id, condition, s)) for s in index_sets]
