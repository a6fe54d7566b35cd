"""Ledger package.

Public API:
- PositionLedger: (owner, position_id) balances with mint/burn/transfer and an atomic journal.
"""

from .positions import PositionLedger  # re-export
