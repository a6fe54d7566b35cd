from __future__ import annotations

from typing import Dict, List, Literal

from ..conditions.model import Condition
from ..engine.ctf import ConditionalTokens
from ..ids.derive import Bytes32Like

Outcome = Literal["yes", "no", "invalid"]

BINARY_PAYOUTS: Dict[str, List[int]] = {
    "yes": [1, 0],
    "no": [0, 1],
    "invalid": [1, 1],
}


class OracleResolver:
    """Reports binary outcomes to the ledger on behalf of one oracle address.

    `invalid` splits the collateral evenly between YES and NO holders.
    """

    def __init__(self, ctf: ConditionalTokens, oracle: str):
        self.ctf = ctf
        self.oracle = oracle

    def resolve_binary(self, question_id: Bytes32Like, outcome: Outcome) -> Condition:
        key = str(outcome).lower()
        if key not in BINARY_PAYOUTS:
            raise ValueError(f"unknown outcome {outcome!r}; expected one of {sorted(BINARY_PAYOUTS)}")
        return self.ctf.report_payouts(self.oracle, question_id, BINARY_PAYOUTS[key])
