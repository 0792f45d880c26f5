"""Retry envelope - bounded exponential backoff around ledger reads."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from spin_reconciler.errors import LedgerRequestError

log = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

TRANSIENT_MARKERS = (
    "missing response",
    "timeout",
    "server error",
    "server_error",
    "bad response",
    "rate limited",
)


def is_transient(exc: BaseException) -> bool:
    """Classify a ledger failure as worth retrying."""
    if isinstance(exc, LedgerRequestError) and exc.category in TRANSIENT_MARKERS:
        return True
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        # 429: rate limited
        return status == 429 or status >= 500
    if isinstance(exc, httpx.TransportError):
        # request went out, nothing usable came back
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in TRANSIENT_MARKERS)


class RetryEnvelope:
    """Runs a zero-argument coroutine factory with retries on transient errors.

    With the defaults an operation gets 4 attempts in total, sleeping
    0.5s, 1s and 2s before the retries. Non-transient errors propagate on the
    first failure; after the last retry the last error propagates.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._sleep = sleep

    def delay_for(self, retry: int) -> float:
        """Delay before retry number ``retry`` (1-based)."""
        return self._base_delay * 2 ** (retry - 1)

    async def call(self, operation: Callable[[], Awaitable[T]], label: str = "ledger call") -> T:
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if not is_transient(exc) or attempt >= self._max_retries:
                    raise
                attempt += 1
                delay = self.delay_for(attempt)
                log.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    label, attempt, self._max_retries + 1, delay, exc,
                )
                await self._sleep(delay)
