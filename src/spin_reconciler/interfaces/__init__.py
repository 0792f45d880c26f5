"""Protocol interfaces for the reconciler's external collaborators."""

from spin_reconciler.interfaces.dispatcher import StakeDispatcher
from spin_reconciler.interfaces.display import DisplaySurface
from spin_reconciler.interfaces.ledger import LedgerClient

__all__ = ["LedgerClient", "StakeDispatcher", "DisplaySurface"]
