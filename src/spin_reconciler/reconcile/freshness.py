"""Freshness evaluator - rejects events that belong to an earlier spin."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class FreshnessEvaluator:
    """Accepts an event only if ``now - event_timestamp < max_age``.

    When the dispatch time is known, events stamped earlier than
    ``dispatched_at - dispatch_skew`` are rejected as well. Both bounds are
    independent of the scanner's ledger lookback.
    """

    def __init__(self, max_age: float = 300.0, dispatch_skew: float | None = 30.0) -> None:
        self._max_age = max_age
        self._dispatch_skew = dispatch_skew

    @property
    def max_age(self) -> float:
        return self._max_age

    def is_fresh(
        self,
        event_timestamp: float,
        now: float,
        dispatched_at: float | None = None,
    ) -> bool:
        age = now - event_timestamp
        if age >= self._max_age:
            log.info("Event is %.0fs old (limit %.0fs), treating as stale", age, self._max_age)
            return False

        if dispatched_at is not None and self._dispatch_skew is not None:
            if event_timestamp < dispatched_at - self._dispatch_skew:
                log.info(
                    "Event predates dispatch by %.0fs, treating as a previous spin",
                    dispatched_at - event_timestamp,
                )
                return False

        return True
