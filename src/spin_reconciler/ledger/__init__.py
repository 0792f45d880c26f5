"""Ledger access: retry envelope and chunked event scanning."""

from spin_reconciler.ledger.retry import RetryEnvelope, is_transient
from spin_reconciler.ledger.scanner import ChunkedLogScanner

__all__ = ["RetryEnvelope", "is_transient", "ChunkedLogScanner"]
