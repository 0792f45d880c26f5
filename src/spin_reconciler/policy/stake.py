"""Stake policy - validates a stake before it is dispatched."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

log = logging.getLogger(__name__)


@dataclass
class StakeCheck:
    """Result of stake evaluation by the StakePolicy."""

    accepted: bool
    reason: str  # "accepted", "invalid_amount", "below_minimum", ...
    stake: Decimal | None = None
    message: str = ""


class StakePolicy:
    """Checks:

    1. Stake parses to a positive number
    2. Stake >= minimum and <= maximum per spin
    3. Stake does not exceed the known wallet balance
    """

    def __init__(
        self,
        min_stake: Decimal = Decimal("0.001"),
        max_stake: Decimal = Decimal("100"),
    ) -> None:
        self._min_stake = min_stake
        self._max_stake = max_stake

    def evaluate(self, stake: object, balance: Decimal | None = None) -> StakeCheck:
        try:
            amount = Decimal(str(stake))
        except (InvalidOperation, ValueError):
            amount = None

        if amount is None or not amount.is_finite() or amount <= 0:
            return StakeCheck(
                accepted=False,
                reason="invalid_amount",
                message="Please enter a valid amount greater than 0",
            )

        if balance is not None and amount > balance:
            return StakeCheck(
                accepted=False,
                reason="insufficient_balance",
                stake=amount,
                message="Insufficient balance",
            )

        if amount < self._min_stake:
            return StakeCheck(
                accepted=False,
                reason="below_minimum",
                stake=amount,
                message=f"Minimum stake is {self._min_stake} XLM",
            )

        if amount > self._max_stake:
            return StakeCheck(
                accepted=False,
                reason="above_maximum",
                stake=amount,
                message=f"Maximum stake is {self._max_stake} XLM",
            )

        log.debug("Stake accepted: %s XLM", amount)
        return StakeCheck(accepted=True, reason="accepted", stake=amount)
