"""Fallback heuristic: spent-stake detection and unverified outcomes."""

from __future__ import annotations

import random
from decimal import Decimal

from spin_reconciler.models.outcome import UNVERIFIABLE, Provenance
from spin_reconciler.models.session import SpinSession
from spin_reconciler.reconcile.fallback import FallbackHeuristicEngine
from spin_reconciler.wheel import expected_payout

from tests.conftest import PLAYER


def make_session(stake: str = "0.5") -> SpinSession:
    return SpinSession(
        session_id=1,
        account=PLAYER,
        stake_amount=Decimal(stake),
        dispatched_at=1_700_000_000.0,
    )


def test_stake_plus_fee_counts_as_spent():
    engine = FallbackHeuristicEngine()
    assert engine.stake_spent(Decimal("10"), Decimal("9.4997"), Decimal("0.5"))


def test_exact_stake_counts_as_spent():
    engine = FallbackHeuristicEngine()
    assert engine.stake_spent(Decimal("10"), Decimal("9.5"), Decimal("0.5"))


def test_fee_only_drop_is_not_spent():
    engine = FallbackHeuristicEngine()
    assert not engine.stake_spent(Decimal("10"), Decimal("9.9997"), Decimal("0.5"))
    assert not engine.stake_spent(Decimal("10"), Decimal("10"), Decimal("0.5"))


def test_winning_spin_credit_is_not_spent():
    """Stake out, payout in: the net balance went up."""
    engine = FallbackHeuristicEngine()
    assert not engine.stake_spent(Decimal("10"), Decimal("10.4999"), Decimal("0.5"))


def test_synthesized_outcome_is_labeled_unverified():
    engine = FallbackHeuristicEngine(rng=random.Random(1))
    session = make_session("0.5")

    record = engine.synthesize(session, now=1_700_000_030.9)

    assert record.provenance == Provenance.FALLBACK
    assert record.transaction_reference == UNVERIFIABLE
    assert not record.verified
    assert record.player == PLAYER
    assert record.stake_amount == Decimal("0.5")
    assert record.payout_amount == expected_payout(Decimal("0.5"), record.segment_index)
    assert record.event_timestamp == 1_700_000_030
    assert record.ledger_sequence is None


def test_segments_are_drawn_from_whole_wheel():
    engine = FallbackHeuristicEngine(rng=random.Random(3))
    session = make_session()

    segments = {engine.synthesize(session, 0).segment_index for _ in range(200)}

    assert segments == set(range(6))


def test_seeded_rng_is_deterministic():
    session = make_session()
    a = FallbackHeuristicEngine(rng=random.Random(11))
    b = FallbackHeuristicEngine(rng=random.Random(11))

    assert [a.synthesize(session, 0).segment_index for _ in range(10)] == [
        b.synthesize(session, 0).segment_index for _ in range(10)
    ]
