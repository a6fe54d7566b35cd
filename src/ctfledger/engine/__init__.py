"""Engine package.

Public API:
- ConditionalTokens: one ledger instance (prepare, split, merge, resolve, redeem).
- Partition: validated index-set sequence; disjointness and coverage unchecked.
"""

from .ctf import ConditionalTokens  # re-export
from .partition import Partition  # re-export
