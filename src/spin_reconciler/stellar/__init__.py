"""Stellar/Soroban integration components."""

from spin_reconciler.stellar.dispatcher import Sep7StakeDispatcher
from spin_reconciler.stellar.ledger import STROOPS_PER_XLM, SorobanLedgerClient

__all__ = ["SorobanLedgerClient", "Sep7StakeDispatcher", "STROOPS_PER_XLM"]
