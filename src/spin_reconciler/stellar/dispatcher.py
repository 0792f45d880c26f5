"""SEP-7 stake dispatcher - hands the spin() transaction to an external wallet."""

from __future__ import annotations

import logging
from decimal import Decimal

from stellar_sdk import SorobanServerAsync, TransactionBuilder, scval
from stellar_sdk.exceptions import (
    AccountNotFoundException,
    NotFoundError,
    PrepareTransactionException,
)
from stellar_sdk.sep.stellar_uri import TransactionStellarUri

from spin_reconciler.errors import DispatchError
from spin_reconciler.models.outcome import DispatchResult
from spin_reconciler.stellar.ledger import xlm_to_stroops

log = logging.getLogger(__name__)


class Sep7StakeDispatcher:
    """Builds and simulates ``spin(player, stake)`` and returns a SEP-7 link.

    Signing happens in the wallet app that opens the link, so there is never
    a receipt: every dispatch is ``pending`` and the outcome has to be found
    on the ledger afterwards.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_id: str,
        network_passphrase: str,
        callback_url: str | None = None,
        base_fee: int = 100,
        tx_timeout: int = 300,
    ) -> None:
        self._server = SorobanServerAsync(rpc_url)
        self._contract_id = contract_id
        self._network_passphrase = network_passphrase
        self._callback_url = callback_url
        self._base_fee = base_fee
        self._tx_timeout = tx_timeout

    async def close(self) -> None:
        await self._server.close()

    async def dispatch(self, account: str, stake_amount: Decimal) -> DispatchResult:
        stroops = xlm_to_stroops(stake_amount)
        log.info("Preparing spin for %s: %d stroops", account[:16], stroops)

        try:
            source = await self._server.load_account(account)
            tx = (
                TransactionBuilder(source, self._network_passphrase, base_fee=self._base_fee)
                .append_invoke_contract_function_op(
                    contract_id=self._contract_id,
                    function_name="spin",
                    parameters=[scval.to_address(account), scval.to_int128(stroops)],
                )
                .set_timeout(self._tx_timeout)
                .build()
            )
            prepared = await self._server.prepare_transaction(tx)
        except (AccountNotFoundException, NotFoundError) as exc:
            raise DispatchError(f"account {account[:16]} not found on ledger") from exc
        except PrepareTransactionException as exc:
            raise DispatchError(f"spin simulation failed: {exc}") from exc

        uri = TransactionStellarUri(
            transaction_envelope=prepared,
            callback=self._callback_url,
            network_passphrase=self._network_passphrase,
        ).to_uri()
        log.info("Spin transaction ready for external signing")
        return DispatchResult.pending_signature(uri)
