"""Shared fixtures for spin_reconciler tests."""

from __future__ import annotations

import asyncio
import random
from decimal import Decimal

import pytest
from pytest_metadata.plugin import metadata_key

from spin_reconciler.models.config import ReconcilerConfig
from spin_reconciler.reconcile.coordinator import ReconciliationCoordinator

from tests.mocks import MockDispatcher, MockLedger, RecordingDisplay

PLAYER = "GDNAG4KFFVF5HCSGRWZIXZNL2SR2KBGJSHW2A6FI6DZI62XF6IBLO4GD"
OTHER_PLAYER = "GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H"

CONTRACT_ID = "CCEDYFIHUCJFITWEOT7BWUO2HBQQ72L244ZXQ4YNOC6FYRDN3MKDQFK7"

START_TIME = 1_700_000_000.0


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add wheel setup to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Stellar Testnet (mocked)"
    meta["Wheel Contract"] = CONTRACT_ID
    meta["Player Account"] = PLAYER


class FakeClock:
    """Virtual wall clock. ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # still hand control to other tasks, like a real sleep would
        await asyncio.sleep(0)


async def drain(rounds: int = 20) -> None:
    """Let background tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_test_config(**overrides) -> ReconcilerConfig:
    """Build a ReconcilerConfig suitable for testing.

    Keyword overrides use ``section__field`` names, e.g. ``poll__max_attempts=3``.
    """
    cfg = ReconcilerConfig()
    cfg.ledger.contract_id = CONTRACT_ID
    for key, value in overrides.items():
        section, _, name = key.partition("__")
        setattr(getattr(cfg, section), name, value)
    return cfg


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger():
    return MockLedger(block_number=10_000, balance=Decimal("10"))


@pytest.fixture
def dispatcher():
    return MockDispatcher()


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def config():
    return make_test_config()


def build_coordinator(ledger, dispatcher, display, clock, config=None, **overrides):
    """Coordinator on virtual time with a seeded wheel for fallback draws."""
    return ReconciliationCoordinator(
        ledger,
        dispatcher,
        config or make_test_config(**overrides),
        display,
        sleep=clock.sleep,
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture
def coordinator(ledger, dispatcher, config, display, clock):
    return build_coordinator(ledger, dispatcher, display, clock, config)
