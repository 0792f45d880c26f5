"""Exception types raised across the reconciliation core."""

from __future__ import annotations


class ReconcilerError(Exception):
    """Base class for spin_reconciler errors."""


class LedgerRequestError(ReconcilerError):
    """A ledger read failed at the transport or RPC level.

    ``category`` is one of the transient categories understood by the retry
    envelope ("missing response", "timeout", "server error", "bad response")
    or "client" for failures that retrying cannot fix.
    """

    def __init__(self, category: str, message: str) -> None:
        super().__init__(f"{category}: {message}")
        self.category = category


class DispatchError(ReconcilerError):
    """The stake could not be dispatched (signer rejection, insufficient funds)."""


class InvalidStakeError(ReconcilerError):
    """The stake amount was rejected before dispatch."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason
