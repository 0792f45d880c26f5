"""CLI entry point for spin_reconciler."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time

import click

from spin_reconciler.config import load_config
from spin_reconciler.errors import DispatchError, InvalidStakeError
from spin_reconciler.ledger.retry import RetryEnvelope
from spin_reconciler.ledger.scanner import ChunkedLogScanner
from spin_reconciler.models.config import ReconcilerConfig
from spin_reconciler.models.outcome import OutcomeRecord
from spin_reconciler.models.session import SessionStatus
from spin_reconciler.reconcile.coordinator import ReconciliationCoordinator
from spin_reconciler.reconcile.display import ConsoleDisplay
from spin_reconciler.reconcile.freshness import FreshnessEvaluator
from spin_reconciler.stellar.dispatcher import Sep7StakeDispatcher
from spin_reconciler.stellar.ledger import SorobanLedgerClient


def _require_contract(cfg: ReconcilerConfig) -> None:
    """Exit with error if no contract ID is configured."""
    if not cfg.ledger.contract_id:
        click.echo("Error: No contract ID configured.", err=True)
        click.echo("Set SPIN_RECONCILER_CONTRACT_ID or [ledger] contract_id in config.", err=True)
        sys.exit(1)


def _ledger_client(cfg: ReconcilerConfig) -> SorobanLedgerClient:
    return SorobanLedgerClient(
        cfg.ledger.rpc_url,
        cfg.ledger.contract_id,
        horizon_url=cfg.ledger.horizon_url,
        request_timeout=cfg.ledger.request_timeout,
    )


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """spin-reconciler - discover wheel spin outcomes on the Stellar ledger."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show reconciler configuration."""
    cfg: ReconcilerConfig = ctx.obj["config"]
    click.echo(f"Network:    {cfg.ledger.network}")
    click.echo(f"RPC URL:    {cfg.ledger.rpc_url}")
    click.echo(f"Horizon:    {cfg.ledger.horizon_url}")
    click.echo(f"Contract:   {cfg.ledger.contract_id or '(not set)'}")
    click.echo(f"Lookback:   {cfg.scanner.lookback_blocks} ledgers "
               f"(max {cfg.scanner.max_block_range} per query)")
    click.echo(f"Polling:    {cfg.poll.max_attempts} x {cfg.poll.interval}s, "
               f"session limit {cfg.poll.max_session_age:.0f}s")
    click.echo(f"Freshness:  {cfg.poll.freshness_window:.0f}s")
    click.echo(f"Fallback:   {'enabled (unverified results)' if cfg.fallback.enabled else 'disabled'}")


@cli.command()
@click.argument("account")
@click.pass_context
def balance(ctx: click.Context, account: str) -> None:
    """Show the native balance of ACCOUNT."""
    cfg: ReconcilerConfig = ctx.obj["config"]

    async def _balance():
        ledger = _ledger_client(cfg)
        try:
            retry = RetryEnvelope(cfg.retry.max_retries, cfg.retry.base_delay)
            amount = await retry.call(lambda: ledger.get_balance(account), "get_balance")
            click.echo(f"Balance:    {amount} XLM")
        finally:
            await ledger.close()

    asyncio.run(_balance())


@cli.command()
@click.argument("account")
@click.pass_context
def check(ctx: click.Context, account: str) -> None:
    """Look up the most recent fresh spin result for ACCOUNT."""
    cfg: ReconcilerConfig = ctx.obj["config"]
    _require_contract(cfg)

    async def _check():
        ledger = _ledger_client(cfg)
        try:
            retry = RetryEnvelope(cfg.retry.max_retries, cfg.retry.base_delay)
            scanner = ChunkedLogScanner(
                ledger,
                retry,
                lookback=cfg.scanner.lookback_blocks,
                max_range=cfg.scanner.max_block_range,
                window_delay=cfg.scanner.window_delay,
            )
            event = await scanner.find_latest(account)
            if event is None:
                click.echo("No spin results in the lookback window.")
                return
            freshness = FreshnessEvaluator(cfg.poll.freshness_window)
            if not freshness.is_fresh(event.timestamp, time.time()):
                click.echo(f"Latest spin (ledger {event.ledger_sequence}) is older than "
                           f"{cfg.poll.freshness_window:.0f}s.")
                return
            ConsoleDisplay().render_outcome(OutcomeRecord.from_event(event))
        finally:
            await ledger.close()

    asyncio.run(_check())


# ── Spin ───────────────────────────────────────────────


@cli.command()
@click.argument("account")
@click.argument("stake")
@click.option("--callback", default=None, help="SEP-7 callback URL for the wallet")
@click.option("--json", "as_json", is_flag=True, help="Print the final session snapshot as JSON")
@click.pass_context
def spin(ctx: click.Context, account: str, stake: str, callback: str | None, as_json: bool) -> None:
    """Stake STAKE XLM from ACCOUNT and wait for the outcome.

    The spin transaction is printed as a SEP-7 link to sign in an external
    wallet. The ledger is then polled until the outcome is found, the stake is
    seen leaving the wallet (unverified result), or the session times out.
    """
    cfg: ReconcilerConfig = ctx.obj["config"]
    _require_contract(cfg)

    async def _spin() -> SessionStatus:
        ledger = _ledger_client(cfg)
        dispatcher = Sep7StakeDispatcher(
            cfg.ledger.rpc_url,
            cfg.ledger.contract_id,
            cfg.ledger.network_passphrase,
            callback_url=callback,
        )
        coordinator = ReconciliationCoordinator(ledger, dispatcher, cfg, ConsoleDisplay())
        try:
            try:
                session = await coordinator.submit_stake(account, stake)
            except (InvalidStakeError, DispatchError) as exc:
                click.echo(f"Error: {exc}", err=True)
                return SessionStatus.FAILED

            if session.signing_uri:
                click.echo("Open this link in your wallet to sign the spin:")
                click.echo(session.signing_uri)
            await coordinator.wait()

            if as_json:
                click.echo(json.dumps(coordinator.snapshot().to_dict(), indent=2))
            return coordinator.status
        finally:
            await dispatcher.close()
            await ledger.close()

    final = asyncio.run(_spin())
    if final == SessionStatus.FAILED:
        sys.exit(1)
    if final == SessionStatus.TIMED_OUT:
        sys.exit(2)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
