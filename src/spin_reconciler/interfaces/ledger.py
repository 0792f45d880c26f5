"""LedgerClient protocol - read-only access to the ledger of record."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from spin_reconciler.models.outcome import SpinEvent


class LedgerClient(Protocol):
    """Read-only ledger RPC handle shared across calls."""

    async def get_block_number(self) -> int:
        """Latest ledger sequence."""
        ...

    async def get_balance(self, address: str) -> Decimal:
        """Native balance of ``address`` in XLM."""
        ...

    async def query_spin_events(
        self, player: str, from_block: int, to_block: int
    ) -> list[SpinEvent]:
        """SPIN events for ``player`` in ``[from_block, to_block]``, ascending.

        The caller keeps ``to_block - from_block`` below the RPC range ceiling.
        """
        ...

    async def close(self) -> None:
        ...
