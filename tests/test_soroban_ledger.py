"""Soroban ledger client: SPIN event decoding and Horizon balance reads."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
from stellar_sdk import scval

from spin_reconciler.stellar.ledger import (
    SorobanLedgerClient,
    _parse_spin_event,
    stroops_to_xlm,
    xlm_to_stroops,
)

from tests.conftest import CONTRACT_ID, PLAYER

CLOSE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_event_info(kind="SPIN", fields=None, ledger=9_990, **extra):
    if fields is None:
        fields = {
            "stake": scval.to_int128(10_000_000),
            "segment": scval.to_uint32(4),
            "payout": scval.to_int128(15_000_000),
            "timestamp": scval.to_uint64(1_714_564_790),
        }
    info = dict(
        id=f"{ledger:019d}-0000000001",
        topic=[scval.to_symbol(kind).to_xdr(), scval.to_address(PLAYER).to_xdr()],
        value=scval.to_struct(fields).to_xdr(),
        ledger=ledger,
        ledger_close_at=CLOSE_TIME,
        in_successful_contract_call=True,
    )
    info.update(extra)
    return SimpleNamespace(**info)


# ── Amount conversion ────────────────────────────────────────────


def test_stroop_conversion():
    assert stroops_to_xlm(15_000_000) == Decimal("1.5")
    assert xlm_to_stroops(Decimal("0.5")) == 5_000_000
    # sub-stroop precision is dropped
    assert xlm_to_stroops(Decimal("0.00000019")) == 1


# ── Event decoding ───────────────────────────────────────────────


def test_parse_spin_event():
    event = _parse_spin_event(make_event_info(transaction_hash="deadbeef"))

    assert event.player == PLAYER
    assert event.stake == Decimal("1")
    assert event.segment == 4
    assert event.payout == Decimal("1.5")
    assert event.timestamp == 1_714_564_790
    assert event.ledger_sequence == 9_990
    assert event.tx_hash == "deadbeef"


def test_missing_timestamp_uses_ledger_close_time():
    fields = {
        "stake": scval.to_int128(5_000_000),
        "segment": scval.to_uint32(0),
        "payout": scval.to_int128(0),
    }
    event = _parse_spin_event(make_event_info(fields=fields))

    assert event.timestamp == int(CLOSE_TIME.timestamp())
    assert event.tx_hash is None


def test_other_event_kinds_are_ignored():
    assert _parse_spin_event(make_event_info(kind="INIT")) is None


def test_malformed_value_is_ignored():
    fields = {"stake": scval.to_int128(1), "segment": scval.to_uint32(2)}
    assert _parse_spin_event(make_event_info(fields=fields)) is None


@pytest.mark.parametrize("segment", [6, 9])
def test_segment_off_the_wheel_is_ignored(segment):
    fields = {
        "stake": scval.to_int128(10_000_000),
        "segment": scval.to_uint32(segment),
        "payout": scval.to_int128(0),
        "timestamp": scval.to_uint64(1_714_564_790),
    }
    assert _parse_spin_event(make_event_info(fields=fields)) is None


def test_short_topic_is_ignored():
    info = make_event_info()
    info.topic = info.topic[:1]
    assert _parse_spin_event(info) is None


# ── Horizon balance ──────────────────────────────────────────────


def horizon_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == f"/accounts/{PLAYER}":
        return httpx.Response(200, json={
            "balances": [
                {"asset_type": "credit_alphanum4", "asset_code": "USDC", "balance": "3.0000000"},
                {"asset_type": "native", "balance": "9.4997000"},
            ],
        })
    if request.url.path.startswith("/accounts/"):
        return httpx.Response(404, json={"status": 404})
    return httpx.Response(503)


@pytest.fixture
async def soroban_client():
    client = SorobanLedgerClient("https://soroban-testnet.stellar.org", CONTRACT_ID)
    await client._http.aclose()
    client._http = httpx.AsyncClient(
        base_url="https://horizon-testnet.stellar.org",
        transport=httpx.MockTransport(horizon_handler),
    )
    yield client
    await client.close()


async def test_native_balance(soroban_client):
    assert await soroban_client.get_balance(PLAYER) == Decimal("9.4997")


async def test_unfunded_account_reads_zero(soroban_client):
    assert await soroban_client.get_balance("GUNFUNDED") == Decimal(0)


async def test_server_error_raises(soroban_client):
    await soroban_client._http.aclose()
    soroban_client._http = httpx.AsyncClient(
        base_url="https://horizon-testnet.stellar.org",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await soroban_client.get_balance(PLAYER)
