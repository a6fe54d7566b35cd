from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Dict

import pandas as pd

if TYPE_CHECKING:  # pragma: no cover
    from ..engine.ctf import ConditionalTokens


# Position ids and amounts are 256-bit; parquet integer columns stop at 64 bits,
# so both are written as strings.

def balances_frame(ctf: "ConditionalTokens") -> pd.DataFrame:
    rows = [
        {"owner": owner, "position_id": f"{pid:#066x}", "amount": str(amount)}
        for owner, pid, amount in ctf.positions.holdings()
    ]
    return pd.DataFrame(rows, columns=["owner", "position_id", "amount"])


def events_frame(ctf: "ConditionalTokens") -> pd.DataFrame:
    rows = []
    for env in ctf.events:
        payload = env.event.model_dump()
        rows.append({
            "sequence": env.sequence,
            "event_type": env.event.event_type,
            "ts": env.event.ts,
            "correlation_id": env.correlation_id,
            "payload": json.dumps(payload, separators=(",", ":"), default=str),
        })
    return pd.DataFrame(rows, columns=["sequence", "event_type", "ts", "correlation_id", "payload"])


def custody_snapshot(ctf: "ConditionalTokens") -> Dict[str, int]:
    return {addr: ctf.custody.held(asset) for addr, asset in ctf.collaterals.items()}


def write_parquet(ctf: "ConditionalTokens", base_dir: str = "data") -> None:
    os.makedirs(base_dir, exist_ok=True)
    balances_frame(ctf).to_parquet(os.path.join(base_dir, "balances.parquet"))
    events_frame(ctf).to_parquet(os.path.join(base_dir, "events.parquet"))
