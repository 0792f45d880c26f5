"""Ledger events, outcome records and dispatch results."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from spin_reconciler.wheel import expected_payout, multiplier

UNVERIFIABLE = "unverifiable"


class Provenance(str, Enum):
    """Where an outcome came from."""

    ONCHAIN = "onchain"
    FALLBACK = "fallback-heuristic"


@dataclass(frozen=True)
class SpinEvent:
    """A SPIN event decoded from the wheel contract's event stream."""

    player: str  # Stellar address
    stake: Decimal  # XLM
    segment: int
    payout: Decimal  # XLM
    timestamp: int  # unix seconds, from the contract
    ledger_sequence: int
    tx_hash: str | None = None


@dataclass(frozen=True)
class OutcomeRecord:
    """The authoritative or best-effort result of one spin.

    For ``Provenance.FALLBACK`` the payout equality is a construction rule,
    not an observed fact; consumers must show such records as unverified.
    """

    player: str
    stake_amount: Decimal
    segment_index: int
    payout_amount: Decimal
    event_timestamp: int
    provenance: Provenance
    transaction_reference: str
    ledger_sequence: int | None = None

    @classmethod
    def from_event(cls, event: SpinEvent) -> OutcomeRecord:
        return cls(
            player=event.player,
            stake_amount=event.stake,
            segment_index=event.segment,
            payout_amount=event.payout,
            event_timestamp=event.timestamp,
            provenance=Provenance.ONCHAIN,
            transaction_reference=event.tx_hash or f"ledger:{event.ledger_sequence}",
            ledger_sequence=event.ledger_sequence,
        )

    @property
    def verified(self) -> bool:
        return self.provenance == Provenance.ONCHAIN

    @property
    def multiplier(self) -> Decimal:
        return multiplier(self.segment_index)

    @property
    def payout_consistent(self) -> bool:
        return self.payout_amount == expected_payout(self.stake_amount, self.segment_index)

    def to_dict(self) -> dict:
        return {
            "player": self.player,
            "stake_amount": str(self.stake_amount),
            "segment_index": self.segment_index,
            "multiplier": str(self.multiplier),
            "payout_amount": str(self.payout_amount),
            "event_timestamp": self.event_timestamp,
            "provenance": self.provenance.value,
            "verified": self.verified,
            "transaction_reference": self.transaction_reference,
            "ledger_sequence": self.ledger_sequence,
        }


@dataclass(frozen=True)
class BalanceSnapshot:
    """Point-in-time native balance read from the ledger."""

    account: str
    balance: Decimal
    taken_at: float


@dataclass(frozen=True)
class DispatchResult:
    """What the stake dispatcher handed back.

    Either an immediate outcome (a synchronous receipt carried the event) or
    ``pending`` when the transaction went to an external signer.
    """

    outcome: OutcomeRecord | None = None
    pending: bool = False
    signing_uri: str | None = None

    @classmethod
    def immediate(cls, outcome: OutcomeRecord) -> DispatchResult:
        return cls(outcome=outcome)

    @classmethod
    def pending_signature(cls, signing_uri: str | None = None) -> DispatchResult:
        return cls(pending=True, signing_uri=signing_uri)
