"""Reconciliation coordinator - owns the spin session lifecycle.

Deep-link signing means the client never sees a receipt, so after a stake is
dispatched the outcome has to be discovered on the ledger:

    idle -> pending_signature -> resolved_onchain            (receipt in hand)
                              -> awaiting_confirmation -> polling
                                   -> resolved_onchain | resolved_fallback | timed_out

Each session gets a fresh GenerationToken. Every suspension point in a poll
loop is followed by a token comparison; a loop whose token is no longer
current returns without touching session state. That is the only
cancellation mechanism.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
import time
from decimal import Decimal
from typing import Callable

from spin_reconciler.errors import DispatchError, InvalidStakeError
from spin_reconciler.interfaces.dispatcher import StakeDispatcher
from spin_reconciler.interfaces.display import DisplaySurface
from spin_reconciler.interfaces.ledger import LedgerClient
from spin_reconciler.ledger.retry import RetryEnvelope, Sleep
from spin_reconciler.ledger.scanner import ChunkedLogScanner
from spin_reconciler.models.config import ReconcilerConfig
from spin_reconciler.models.outcome import BalanceSnapshot, OutcomeRecord
from spin_reconciler.models.session import GenerationToken, SessionStatus, SpinSession
from spin_reconciler.models.snapshots import SessionSnapshot
from spin_reconciler.policy.stake import StakePolicy
from spin_reconciler.reconcile.display import NullDisplay
from spin_reconciler.reconcile.fallback import FallbackHeuristicEngine
from spin_reconciler.reconcile.freshness import FreshnessEvaluator
from spin_reconciler.wheel import rotation_target

log = logging.getLogger(__name__)

STILL_PENDING_MESSAGE = (
    "No result found yet. If you signed the transaction, "
    "wait a bit and refresh to check again."
)


class ReconciliationCoordinator:
    """Discovers the outcome of a dispatched stake under unreliable ledger access."""

    def __init__(
        self,
        ledger: LedgerClient,
        dispatcher: StakeDispatcher,
        config: ReconcilerConfig | None = None,
        display: DisplaySurface | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        cfg = config or ReconcilerConfig()
        self._cfg = cfg
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._display: DisplaySurface = display or NullDisplay()
        self._sleep = sleep
        self._clock = clock

        self._retry = RetryEnvelope(cfg.retry.max_retries, cfg.retry.base_delay, sleep)
        self._scanner = ChunkedLogScanner(
            ledger,
            self._retry,
            lookback=cfg.scanner.lookback_blocks,
            max_range=cfg.scanner.max_block_range,
            window_delay=cfg.scanner.window_delay,
            sleep=sleep,
        )
        self._freshness = FreshnessEvaluator(cfg.poll.freshness_window, cfg.poll.dispatch_skew)
        self._fallback = FallbackHeuristicEngine(cfg.fallback.epsilon, rng)
        self._policy = StakePolicy(cfg.stake.min_stake, cfg.stake.max_stake)

        self._token = GenerationToken()
        self._session: SpinSession | None = None
        self._poll_task: asyncio.Task | None = None
        self._checking = False

    # ── State ──────────────────────────────────────────────

    @property
    def token(self) -> GenerationToken:
        return self._token

    @property
    def session(self) -> SpinSession | None:
        return self._session

    @property
    def status(self) -> SessionStatus:
        if self._session is None:
            return SessionStatus.IDLE
        return self._session.status

    @property
    def outcome(self) -> OutcomeRecord | None:
        return self._session.outcome if self._session else None

    def snapshot(self) -> SessionSnapshot:
        session = self._session
        if session is None:
            return SessionSnapshot(status=SessionStatus.IDLE.value)
        outcome = session.outcome
        return SessionSnapshot(
            status=session.status.value,
            session_id=session.session_id,
            account=session.account,
            stake_amount=str(session.stake_amount),
            age_seconds=int(session.age(self._clock())),
            attempts=session.attempts,
            max_attempts=self._cfg.poll.max_attempts,
            signing_uri=session.signing_uri,
            error=session.error,
            outcome=outcome.to_dict() if outcome else None,
            verified=outcome.verified if outcome else None,
            rotation_target=rotation_target(outcome.segment_index) if outcome else None,
        )

    def _is_current(self, token: GenerationToken) -> bool:
        return token == self._token

    def _still_polling(self, token: GenerationToken, session: SpinSession) -> bool:
        return self._is_current(token) and session.status == SessionStatus.POLLING

    def _supersede(self) -> GenerationToken:
        self._token = self._token.next()
        return self._token

    # ── Entry points ───────────────────────────────────────

    async def submit_stake(
        self,
        account: str,
        stake_amount: Decimal | str | float,
        known_balance: Decimal | None = None,
    ) -> SpinSession:
        """Dispatch a stake and start reconciling its outcome.

        Returns once dispatch has answered; polling continues in a background
        task (see ``wait()``). Raises InvalidStakeError before dispatch and
        DispatchError when the signer rejects the transaction.
        """
        check = self._policy.evaluate(stake_amount, known_balance)
        if not check.accepted:
            raise InvalidStakeError(check.reason, check.message)

        token = self._supersede()
        session = SpinSession(
            session_id=token.value,
            account=account,
            stake_amount=check.stake,
            dispatched_at=self._clock(),
        )
        self._session = session
        log.info(
            "Session %d: dispatching stake of %s XLM for %s",
            session.session_id, session.stake_amount, account[:16],
        )

        try:
            result = await self._dispatcher.dispatch(account, session.stake_amount)
        except Exception as exc:
            self._fail(token, session, f"dispatch failed: {exc}")
            if isinstance(exc, DispatchError):
                raise
            raise DispatchError(str(exc)) from exc

        if not self._is_current(token):
            log.info("Session %d superseded during dispatch", session.session_id)
            return session

        if result.outcome is not None:
            self._resolve(token, session, result.outcome)
            return session

        if not result.pending:
            message = "dispatcher returned neither an outcome nor a pending status"
            self._fail(token, session, message)
            raise DispatchError(message)

        session.status = SessionStatus.AWAITING_CONFIRMATION
        session.signing_uri = result.signing_uri
        self._display.notify(
            SessionStatus.AWAITING_CONFIRMATION,
            "Transaction sent to your wallet. Sign it there; the result loads automatically.",
        )
        self._poll_task = asyncio.create_task(self.poll_for_result(token, known_balance))
        return session

    async def poll_for_result(
        self, token: GenerationToken, known_balance: Decimal | None = None
    ) -> None:
        """Poll the ledger until the session resolves, times out or is superseded."""
        session = self._session
        if session is None or not self._is_current(token):
            return

        baseline = await self._read_baseline(session)
        if not self._is_current(token) or session.status != SessionStatus.AWAITING_CONFIRMATION:
            return
        if baseline is None and known_balance is not None:
            baseline = BalanceSnapshot(session.account, known_balance, self._clock())
        if baseline is None:
            log.warning(
                "Session %d: no baseline balance, fallback detection disabled",
                session.session_id,
            )
        session.baseline = baseline
        session.status = SessionStatus.POLLING

        poll = self._cfg.poll
        for attempt in range(1, poll.max_attempts + 1):
            if not self._still_polling(token, session):
                return
            session.attempts = attempt
            log.debug("Session %d: poll attempt %d/%d", session.session_id, attempt, poll.max_attempts)

            # (b) look for the SPIN event
            record: OutcomeRecord | None = None
            try:
                record = await self._find_outcome(session)
            except Exception as exc:
                self._missed(token, session, "event scan", exc)
            if not self._still_polling(token, session):
                return
            if record is not None:
                self._resolve(token, session, record)
                return

            # (c) stake spent but no event seen
            current: Decimal | None = None
            try:
                current = await self._retry.call(
                    lambda: self._ledger.get_balance(session.account), "get_balance",
                )
            except Exception as exc:
                self._missed(token, session, "balance read", exc)
            if not self._still_polling(token, session):
                return

            if (
                self._cfg.fallback.enabled
                and current is not None
                and baseline is not None
                and self._fallback.stake_spent(baseline.balance, current, session.stake_amount)
            ):
                log.warning(
                    "Session %d: balance %s -> %s but no SPIN event found",
                    session.session_id, baseline.balance, current,
                )
                self._resolve(token, session, self._fallback.synthesize(session, self._clock()))
                return

            # (d) session too old
            age = session.age(self._clock())
            if age > poll.max_session_age:
                log.info("Session %d: %.0fs old, giving up", session.session_id, age)
                self._time_out(token, session)
                return

            if attempt < poll.max_attempts:
                await self._sleep(poll.interval)

        if self._still_polling(token, session):
            log.info("Session %d: no result after %d attempts", session.session_id, poll.max_attempts)
            self._time_out(token, session)

    async def check_for_result(self, force: bool = False) -> OutcomeRecord | None:
        """Single idempotent re-check, used by manual refresh and app resume.

        Overlapping checks are dropped unless ``force`` is set. A fresh
        on-chain event supersedes a fallback outcome or a time-out.
        """
        session = self._session
        if session is None or session.status == SessionStatus.PENDING_SIGNATURE:
            return None
        if session.session_id != self._token.value:
            log.debug("Session %d was cancelled, not checking", session.session_id)
            return None
        if session.status == SessionStatus.RESOLVED_ONCHAIN:
            return session.outcome
        if self._checking and not force:
            log.debug("Result check already in progress")
            return None

        token = self._token
        self._checking = True
        try:
            record = await self._find_outcome(session)
        except Exception as exc:
            log.error("Result check failed for session %d: %s", session.session_id, exc)
            return None
        finally:
            self._checking = False

        if record is None:
            return None
        if not self._resolve(token, session, record):
            # the poll loop may have resolved it while we were scanning
            if session.status == SessionStatus.RESOLVED_ONCHAIN:
                return session.outcome
            return None
        return record

    async def on_foreground_resume(self) -> OutcomeRecord | None:
        """Host event: the app came back from the external wallet."""
        log.info("Foreground resume, checking for result")
        return await self.check_for_result()

    def cancel(self) -> None:
        """Supersede any in-flight poll loop (screen teardown)."""
        self._supersede()
        log.info("Polling cancelled (generation %d)", self._token.value)

    async def wait(self) -> None:
        """Wait for the current poll task to finish."""
        if self._poll_task is not None:
            await self._poll_task

    # ── Internals ──────────────────────────────────────────

    async def _read_baseline(self, session: SpinSession) -> BalanceSnapshot | None:
        try:
            balance = await self._retry.call(
                lambda: self._ledger.get_balance(session.account), "get_balance",
            )
        except Exception as exc:
            log.warning("Session %d: baseline balance read failed: %s", session.session_id, exc)
            return None
        return BalanceSnapshot(session.account, balance, self._clock())

    async def _find_outcome(self, session: SpinSession) -> OutcomeRecord | None:
        event = await self._scanner.find_latest(session.account)
        if event is None:
            return None
        if not self._freshness.is_fresh(event.timestamp, self._clock(), session.dispatched_at):
            return None
        record = OutcomeRecord.from_event(event)
        if not record.payout_consistent:
            log.warning(
                "SPIN event payout %s does not match stake %s x segment %d",
                record.payout_amount, record.stake_amount, record.segment_index,
            )
        return record

    def _missed(self, token: GenerationToken, session: SpinSession, what: str, exc: Exception) -> None:
        """A failed poll-time read counts as nothing found this attempt."""
        if self._is_current(token):
            log.warning(
                "Session %d: %s failed on attempt %d: %s",
                session.session_id, what, session.attempts, exc,
            )

    def _resolve(self, token: GenerationToken, session: SpinSession, record: OutcomeRecord) -> bool:
        if not self._is_current(token) or session.status == SessionStatus.RESOLVED_ONCHAIN:
            return False

        previous = session.outcome
        session.outcome = record
        session.error = None
        session.resolved_at = self._clock()
        session.status = (
            SessionStatus.RESOLVED_ONCHAIN if record.verified else SessionStatus.RESOLVED_FALLBACK
        )
        if previous is not None:
            log.warning(
                "Session %d: on-chain segment %d supersedes fallback segment %d",
                session.session_id, record.segment_index, previous.segment_index,
            )

        target = rotation_target(record.segment_index)
        log.info(
            "Session %d %s: segment=%d payout=%s ref=%s",
            session.session_id, session.status.value, record.segment_index,
            record.payout_amount, record.transaction_reference,
        )
        self._display.animate(
            record.segment_index,
            target,
            functools.partial(self._on_animation_complete, token, record),
        )
        return True

    def _on_animation_complete(self, token: GenerationToken, record: OutcomeRecord) -> None:
        if not self._is_current(token) or self.outcome is not record:
            return
        self._display.render_outcome(record)

    def _time_out(self, token: GenerationToken, session: SpinSession) -> None:
        if not self._is_current(token):
            return
        session.status = SessionStatus.TIMED_OUT
        self._display.notify(SessionStatus.TIMED_OUT, STILL_PENDING_MESSAGE)

    def _fail(self, token: GenerationToken, session: SpinSession, message: str) -> None:
        if not self._is_current(token):
            return
        session.status = SessionStatus.FAILED
        session.error = message
        log.error("Session %d failed: %s", session.session_id, message)
        self._display.notify(SessionStatus.FAILED, message)
