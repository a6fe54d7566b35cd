from __future__ import annotations

import logging

from ..collateral.token import CollateralAsset
from ..errors import CollateralTransferFailed
from ..metrics.ledger import set_custody


logger = logging.getLogger(__name__)


class Custody:
    """The ledger's own collateral account.

    Any rejected or raising transfer surfaces as CollateralTransferFailed so the
    enclosing operation aborts.
    """

    def __init__(self, address: str):
        self.address = address

    def held(self, collateral: CollateralAsset) -> int:
        return collateral.balance_of(self.address)

    def pull(self, collateral: CollateralAsset, owner: str, amount: int) -> None:
        try:
            ok = collateral.transfer_from(self.address, owner, self.address, amount)
        except Exception as e:
            raise CollateralTransferFailed(f"{collateral.address}: transfer_from {owner} raised: {e}") from e
        if not ok:
            raise CollateralTransferFailed(
                f"{collateral.address}: could not receive {amount} from {owner} (check balance and allowance)"
            )
        set_custody(collateral.address, self.held(collateral))

    def release(self, collateral: CollateralAsset, to: str, amount: int) -> None:
        try:
            ok = collateral.transfer(self.address, to, amount)
        except Exception as e:
            raise CollateralTransferFailed(f"{collateral.address}: transfer to {to} raised: {e}") from e
        if not ok:
            raise CollateralTransferFailed(f"{collateral.address}: could not send {amount} to {to}")
        set_custody(collateral.address, self.held(collateral))
