"""Fallback heuristic - synthesizes an unverified outcome for a spent stake.

Deep-link signing never hands back a receipt. When the balance shows the
stake left the wallet but no SPIN event can be found, this engine produces a
plausible outcome so the display does not hang. The result is guess-work:
it is labeled ``fallback-heuristic`` with an ``unverifiable`` reference and
a later on-chain discovery supersedes it.
"""

from __future__ import annotations

import logging
import random
from decimal import Decimal

from spin_reconciler.models.outcome import UNVERIFIABLE, OutcomeRecord, Provenance
from spin_reconciler.models.session import SpinSession
from spin_reconciler.wheel import SEGMENT_COUNT, expected_payout

log = logging.getLogger(__name__)


class FallbackHeuristicEngine:
    def __init__(
        self,
        epsilon: Decimal = Decimal("0.0001"),
        rng: random.Random | None = None,
    ) -> None:
        self._epsilon = epsilon
        self._rng = rng or random.Random()

    def stake_spent(self, baseline: Decimal, current: Decimal, stake: Decimal) -> bool:
        """True when the balance dropped by (nearly) the whole stake.

        A drop smaller than ``stake - epsilon`` (fees only) does not count.
        """
        return baseline - current > stake - self._epsilon

    def synthesize(self, session: SpinSession, now: float) -> OutcomeRecord:
        segment = self._rng.randrange(SEGMENT_COUNT)
        payout = expected_payout(session.stake_amount, segment)
        log.warning(
            "Synthesizing UNVERIFIED outcome for session %d: segment=%d payout=%s",
            session.session_id, segment, payout,
        )
        return OutcomeRecord(
            player=session.account,
            stake_amount=session.stake_amount,
            segment_index=segment,
            payout_amount=payout,
            event_timestamp=int(now),
            provenance=Provenance.FALLBACK,
            transaction_reference=UNVERIFIABLE,
        )
