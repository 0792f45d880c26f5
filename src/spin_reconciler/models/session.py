"""Spin session state owned by the reconciliation coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spin_reconciler.models.outcome import BalanceSnapshot, OutcomeRecord


class SessionStatus(str, Enum):
    """Lifecycle of one stake attempt."""

    IDLE = "idle"  # coordinator only: no live session
    PENDING_SIGNATURE = "pending_signature"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    POLLING = "polling"
    RESOLVED_ONCHAIN = "resolved_onchain"
    RESOLVED_FALLBACK = "resolved_fallback"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    SessionStatus.RESOLVED_ONCHAIN,
    SessionStatus.RESOLVED_FALLBACK,
    SessionStatus.TIMED_OUT,
    SessionStatus.FAILED,
})


@dataclass(frozen=True)
class GenerationToken:
    """Poll generation token. Only the current token may mutate session state."""

    value: int = 0

    def next(self) -> GenerationToken:
        return GenerationToken(self.value + 1)


@dataclass
class SpinSession:
    """One user-initiated stake attempt."""

    session_id: int
    account: str
    stake_amount: Decimal
    dispatched_at: float  # unix seconds
    status: SessionStatus = SessionStatus.PENDING_SIGNATURE
    attempts: int = 0
    baseline: BalanceSnapshot | None = None  # pre-spin balance, fallback input
    signing_uri: str | None = None
    outcome: OutcomeRecord | None = None
    error: str | None = None
    resolved_at: float | None = None

    @property
    def baseline_balance(self) -> Decimal | None:
        return self.baseline.balance if self.baseline else None

    def age(self, now: float) -> float:
        """Seconds elapsed since the stake was dispatched."""
        return now - self.dispatched_at
