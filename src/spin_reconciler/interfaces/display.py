"""DisplaySurface protocol - renders resolved spins."""

from __future__ import annotations

from typing import Callable, Protocol

from spin_reconciler.models.outcome import OutcomeRecord
from spin_reconciler.models.session import SessionStatus


class DisplaySurface(Protocol):
    """Animation and result surface driven by the coordinator."""

    def animate(
        self, segment_index: int, rotation_target: int, on_complete: Callable[[], None]
    ) -> None:
        """Spin to ``rotation_target`` and call ``on_complete`` when done."""
        ...

    def render_outcome(self, outcome: OutcomeRecord) -> None:
        """Show stake, payout and provenance. Fallback outcomes are unverified."""
        ...

    def notify(self, status: SessionStatus, message: str) -> None:
        """Non-result status messages (pending signature, still pending)."""
        ...
