"""Built-in display surfaces."""

from __future__ import annotations

import logging
from typing import Callable

import click

from spin_reconciler.models.outcome import OutcomeRecord
from spin_reconciler.models.session import SessionStatus
from spin_reconciler.wheel import multiplier_label

log = logging.getLogger(__name__)


class NullDisplay:
    """Headless surface: completes animations immediately and logs results."""

    def animate(
        self, segment_index: int, rotation_target: int, on_complete: Callable[[], None]
    ) -> None:
        on_complete()

    def render_outcome(self, outcome: OutcomeRecord) -> None:
        log.info(
            "Outcome: segment=%d payout=%s (%s)",
            outcome.segment_index, outcome.payout_amount, outcome.provenance.value,
        )

    def notify(self, status: SessionStatus, message: str) -> None:
        log.info("[%s] %s", status.value, message)


class ConsoleDisplay:
    """Terminal surface for the CLI."""

    def animate(
        self, segment_index: int, rotation_target: int, on_complete: Callable[[], None]
    ) -> None:
        click.echo(f"Spinning {rotation_target}° -> segment {segment_index}")
        on_complete()

    def render_outcome(self, outcome: OutcomeRecord) -> None:
        title = "Winner!" if outcome.payout_amount > 0 else "Better luck next time"
        click.echo(title)
        click.echo(f"  Segment:   {multiplier_label(outcome.segment_index)}")
        click.echo(f"  Stake:     {outcome.stake_amount} XLM")
        click.echo(f"  Payout:    {outcome.payout_amount} XLM")
        if outcome.verified:
            click.echo(f"  Tx:        {outcome.transaction_reference}")
        else:
            click.echo("  UNVERIFIED: no ledger event was found for this spin;")
            click.echo("  the segment shown is an estimate, not the on-chain result.")

    def notify(self, status: SessionStatus, message: str) -> None:
        click.echo(f"[{status.value}] {message}")
