"""Chunked log scanner - newest-first search for a player's latest SPIN event."""

from __future__ import annotations

import asyncio
import logging

from spin_reconciler.interfaces.ledger import LedgerClient
from spin_reconciler.ledger.retry import RetryEnvelope, Sleep
from spin_reconciler.models.outcome import SpinEvent

log = logging.getLogger(__name__)


class ChunkedLogScanner:
    """Walks the lookback window backwards in windows the RPC will accept.

    Windows are ``[max(to - (max_range - 1), floor), to]`` with ``to``
    starting at the latest ledger and stepping down by ``max_range``. The
    first window with any match wins and its last (newest) event is returned;
    older windows are never queried after that.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        retry: RetryEnvelope,
        lookback: int = 200,
        max_range: int = 100,
        window_delay: float = 0.15,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_range < 1:
            raise ValueError("max_range must be positive")
        self._ledger = ledger
        self._retry = retry
        self._lookback = lookback
        self._max_range = max_range
        self._window_delay = window_delay
        self._sleep = sleep

    def windows(self, current: int) -> list[tuple[int, int]]:
        """Query windows for a scan starting at ledger ``current``, newest first."""
        floor = max(current - self._lookback, 0)
        result: list[tuple[int, int]] = []
        to_block = current
        while to_block >= floor:
            from_block = max(to_block - (self._max_range - 1), floor)
            result.append((from_block, to_block))
            if from_block == floor:
                break
            to_block -= self._max_range
        return result

    async def find_latest(self, account: str) -> SpinEvent | None:
        """Most recent SPIN event for ``account`` inside the lookback, or None."""
        current = await self._retry.call(self._ledger.get_block_number, "get_block_number")
        windows = self.windows(current)
        log.debug(
            "Scanning ledgers %d-%d for %s in %d windows",
            windows[-1][0], current, account[:16], len(windows),
        )

        for i, (from_block, to_block) in enumerate(windows):
            events = await self._retry.call(
                lambda: self._ledger.query_spin_events(account, from_block, to_block),
                f"query_spin_events({from_block}-{to_block})",
            )
            log.debug("Found %d SPIN events in %d-%d", len(events), from_block, to_block)
            if events:
                latest = events[-1]
                log.info(
                    "Latest SPIN event for %s: segment=%d ledger=%d",
                    account[:16], latest.segment, latest.ledger_sequence,
                )
                return latest

            if i < len(windows) - 1:
                await self._sleep(self._window_delay)

        log.debug("No SPIN events for %s in lookback window", account[:16])
        return None
