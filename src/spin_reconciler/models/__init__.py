"""Data models for spin_reconciler."""

from spin_reconciler.models.config import (
    FallbackConfig,
    LedgerConfig,
    PollConfig,
    ReconcilerConfig,
    RetryConfig,
    ScanConfig,
    StakeConfig,
)
from spin_reconciler.models.outcome import (
    UNVERIFIABLE,
    BalanceSnapshot,
    DispatchResult,
    OutcomeRecord,
    Provenance,
    SpinEvent,
)
from spin_reconciler.models.session import GenerationToken, SessionStatus, SpinSession
from spin_reconciler.models.snapshots import SessionSnapshot

__all__ = [
    "FallbackConfig", "LedgerConfig", "PollConfig", "ReconcilerConfig",
    "RetryConfig", "ScanConfig", "StakeConfig",
    "UNVERIFIABLE", "BalanceSnapshot", "DispatchResult", "OutcomeRecord",
    "Provenance", "SpinEvent",
    "GenerationToken", "SessionStatus", "SpinSession",
    "SessionSnapshot",
]
