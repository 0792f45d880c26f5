"""StakeDispatcher protocol - hands the stake transaction to a signer."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from spin_reconciler.models.outcome import DispatchResult


class StakeDispatcher(Protocol):
    """Sends the spin transaction. Errors are fatal and never retried."""

    async def dispatch(self, account: str, stake_amount: Decimal) -> DispatchResult:
        ...
