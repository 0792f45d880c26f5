"""Soroban ledger client - SPIN events via Soroban RPC, balances via Horizon."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import ROUND_DOWN, Decimal
from typing import Iterator

import httpx
from stellar_sdk import Address, SorobanServerAsync, scval, xdr
from stellar_sdk.exceptions import BadResponseError
from stellar_sdk.exceptions import ConnectionError as StellarConnectionError
from stellar_sdk.soroban_rpc import EventFilter, EventFilterType, EventInfo

from spin_reconciler.errors import LedgerRequestError
from spin_reconciler.models.outcome import SpinEvent
from spin_reconciler.wheel import SEGMENT_COUNT

log = logging.getLogger(__name__)

STROOPS_PER_XLM = 10_000_000
EVENT_PAGE_LIMIT = 100

# Topic pattern emitted by the wheel contract:
#   SPIN event: ("SPIN", player) -> {stake, segment, payout, timestamp}
_TOPIC_SPIN = scval.to_symbol("SPIN").to_xdr()


def stroops_to_xlm(stroops: int) -> Decimal:
    return Decimal(stroops) / STROOPS_PER_XLM


def xlm_to_stroops(amount: Decimal) -> int:
    return int((amount * STROOPS_PER_XLM).to_integral_value(rounding=ROUND_DOWN))


def _addr_to_str(addr: object) -> str:
    """Extract the string address from a stellar_sdk.Address or plain str."""
    if isinstance(addr, Address):
        return addr.address
    return str(addr)


def _parse_spin_event(info: EventInfo) -> SpinEvent | None:
    """Decode a raw EventInfo into a SpinEvent.

    Returns None if the event is not a SPIN event or is malformed.
    """
    if len(info.topic) < 2:
        return None

    try:
        kind = scval.from_symbol(xdr.SCVal.from_xdr(info.topic[0]))
        player = _addr_to_str(scval.from_address(xdr.SCVal.from_xdr(info.topic[1])))
    except Exception:
        log.debug("Could not decode topics for event %s", info.id)
        return None

    if kind != "SPIN":
        log.debug("Ignoring event kind: %s", kind)
        return None

    try:
        fields = scval.from_struct(xdr.SCVal.from_xdr(info.value))
        if "timestamp" in fields:
            timestamp = scval.from_uint64(fields["timestamp"])
        else:
            timestamp = int(info.ledger_close_at.timestamp())
        segment = scval.from_uint32(fields["segment"])
        if not 0 <= segment < SEGMENT_COUNT:
            log.warning("Skipping SPIN event %s: segment %d off the wheel", info.id, segment)
            return None
        return SpinEvent(
            player=player,
            stake=stroops_to_xlm(scval.from_int128(fields["stake"])),
            segment=segment,
            payout=stroops_to_xlm(scval.from_int128(fields["payout"])),
            timestamp=timestamp,
            ledger_sequence=info.ledger,
            # txHash is only reported by newer RPC servers
            tx_hash=getattr(info, "transaction_hash", None),
        )
    except Exception as exc:
        log.warning("Failed to parse SPIN event %s: %s", info.id, exc)
        return None


@contextmanager
def _translate_sdk_errors(label: str) -> Iterator[None]:
    """Re-raise stellar_sdk transport failures as categorized LedgerRequestErrors."""
    try:
        yield
    except StellarConnectionError as exc:
        raise LedgerRequestError("missing response", f"{label}: {exc}") from exc
    except BadResponseError as exc:
        if exc.status == 429:
            category = "rate limited"
        elif exc.status >= 500:
            category = "server error"
        else:
            category = "bad response"
        raise LedgerRequestError(category, f"{label}: {exc}") from exc


class SorobanLedgerClient:
    """Read-only LedgerClient for the wheel contract.

    One SorobanServerAsync and one httpx client are reused for every call.
    Soroban's getEvents has no end ledger, so each window is read from
    ``from_block`` forward with cursor pagination and clipped at ``to_block``.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_id: str,
        horizon_url: str = "https://horizon-testnet.stellar.org",
        request_timeout: float = 15.0,
    ) -> None:
        self._server = SorobanServerAsync(rpc_url)
        self._contract_id = contract_id
        self._http = httpx.AsyncClient(
            base_url=horizon_url.rstrip("/"),
            timeout=httpx.Timeout(request_timeout, connect=10),
        )

    async def close(self) -> None:
        await self._server.close()
        await self._http.aclose()

    async def get_block_number(self) -> int:
        with _translate_sdk_errors("get_latest_ledger"):
            latest = await self._server.get_latest_ledger()
        return latest.sequence

    async def get_balance(self, address: str) -> Decimal:
        """Native XLM balance from Horizon. Unfunded accounts read as 0."""
        resp = await self._http.get(f"/accounts/{address}")
        if resp.status_code == 404:
            return Decimal(0)
        resp.raise_for_status()

        for balance in resp.json().get("balances", []):
            if balance.get("asset_type") == "native":
                return Decimal(balance["balance"])
        return Decimal(0)

    async def query_spin_events(
        self, player: str, from_block: int, to_block: int
    ) -> list[SpinEvent]:
        filters = [
            EventFilter(
                event_type=EventFilterType.CONTRACT,
                contract_ids=[self._contract_id],
                topics=[[_TOPIC_SPIN, scval.to_address(player).to_xdr()]],
            )
        ]

        events: list[SpinEvent] = []
        cursor: str | None = None
        while True:
            with _translate_sdk_errors(f"get_events({from_block}-{to_block})"):
                if cursor:
                    response = await self._server.get_events(
                        filters=filters, cursor=cursor, limit=EVENT_PAGE_LIMIT,
                    )
                else:
                    response = await self._server.get_events(
                        start_ledger=from_block, filters=filters, limit=EVENT_PAGE_LIMIT,
                    )

            past_window = False
            for info in response.events:
                if info.ledger > to_block:
                    past_window = True
                    break
                if not info.in_successful_contract_call:
                    continue
                parsed = _parse_spin_event(info)
                if parsed is not None and parsed.player == player:
                    events.append(parsed)

            if past_window or len(response.events) < EVENT_PAGE_LIMIT:
                break
            cursor = response.cursor or response.events[-1].id

        return events
