"""Chunked log scanner: window layout and newest-first search."""

from __future__ import annotations

import math

import pytest

from spin_reconciler.errors import LedgerRequestError
from spin_reconciler.ledger.retry import RetryEnvelope
from spin_reconciler.ledger.scanner import ChunkedLogScanner

from tests.conftest import OTHER_PLAYER, PLAYER
from tests.factories import make_spin_event
from tests.mocks import MockLedger


def make_scanner(ledger, clock, lookback=200, max_range=100):
    return ChunkedLogScanner(
        ledger,
        RetryEnvelope(sleep=clock.sleep),
        lookback=lookback,
        max_range=max_range,
        sleep=clock.sleep,
    )


# ── Window layout ────────────────────────────────────────────────


def test_default_windows(clock):
    scanner = make_scanner(MockLedger(), clock)
    assert scanner.windows(1000) == [(901, 1000), (801, 900), (800, 800)]


def test_windows_clamp_at_genesis(clock):
    scanner = make_scanner(MockLedger(), clock)
    assert scanner.windows(150) == [(51, 150), (0, 50)]
    assert scanner.windows(0) == [(0, 0)]


@pytest.mark.parametrize("lookback", [1, 50, 99, 100, 101, 200, 250, 1000])
@pytest.mark.parametrize("current", [0, 5, 150, 1000, 12_345])
def test_windows_cover_lookback_exactly(clock, lookback, current):
    """Contiguous, non-overlapping, descending, each within the RPC limit."""
    scanner = make_scanner(MockLedger(), clock, lookback=lookback)
    floor = max(current - lookback, 0)
    windows = scanner.windows(current)

    assert windows[0][1] == current
    assert windows[-1][0] == floor
    for from_block, to_block in windows:
        assert 0 <= to_block - from_block < 100
    for newer, older in zip(windows, windows[1:]):
        assert older[1] == newer[0] - 1
    assert len(windows) == math.ceil((current - floor + 1) / 100)


def test_rejects_empty_range(clock):
    with pytest.raises(ValueError):
        make_scanner(MockLedger(), clock, max_range=0)


# ── Search ───────────────────────────────────────────────────────


async def test_latest_event_in_first_window(clock):
    ledger = MockLedger(block_number=1000)
    ledger.emit(
        make_spin_event(segment=1, ledger_sequence=950),
        make_spin_event(segment=3, ledger_sequence=990),
    )
    scanner = make_scanner(ledger, clock)

    event = await scanner.find_latest(PLAYER)

    assert event.segment == 3
    assert ledger.queries == [(901, 1000)]
    assert clock.sleeps == []


async def test_stops_at_first_non_empty_window(clock):
    """Older windows are never queried once a match is found."""
    ledger = MockLedger(block_number=1000)
    ledger.emit(
        make_spin_event(segment=0, ledger_sequence=800),
        make_spin_event(segment=2, ledger_sequence=850),
        make_spin_event(segment=5, ledger_sequence=870),
    )
    scanner = make_scanner(ledger, clock)

    event = await scanner.find_latest(PLAYER)

    assert event.segment == 5
    assert event.ledger_sequence == 870
    assert ledger.queries == [(901, 1000), (801, 900)]
    assert clock.sleeps == [0.15]


async def test_no_events_scans_whole_lookback(clock):
    ledger = MockLedger(block_number=1000)
    ledger.emit(make_spin_event(player=OTHER_PLAYER, ledger_sequence=990))
    ledger.emit(make_spin_event(ledger_sequence=799))  # just below the floor
    scanner = make_scanner(ledger, clock)

    assert await scanner.find_latest(PLAYER) is None
    assert ledger.queries == [(901, 1000), (801, 900), (800, 800)]
    # paced between windows, not after the last one
    assert clock.sleeps == [0.15, 0.15]


async def test_transient_failures_are_retried(clock):
    ledger = MockLedger(block_number=1000)
    ledger.emit(make_spin_event(ledger_sequence=995))
    ledger.fail("get_block_number", LedgerRequestError("timeout", "latest ledger"))
    ledger.fail("query_spin_events", LedgerRequestError("missing response", "getEvents"))
    scanner = make_scanner(ledger, clock)

    event = await scanner.find_latest(PLAYER)

    assert event is not None
    assert clock.sleeps == [0.5, 0.5]
    assert ledger.queries == [(901, 1000), (901, 1000)]


async def test_permanent_failure_propagates(clock):
    ledger = MockLedger(block_number=1000)
    ledger.fail("query_spin_events", ValueError("invalid topic filter"))
    scanner = make_scanner(ledger, clock)

    with pytest.raises(ValueError):
        await scanner.find_latest(PLAYER)
