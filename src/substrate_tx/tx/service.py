"""TransactionService — prepare, send and watch transactions.

Composes the builder, fee estimator, tracker and monitor around one Chain
Client. ``prepare`` returns a summary the caller can show for confirmation
before ``send`` signs anything.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from substrate_tx.chain.models import CallKind
from substrate_tx.tx.builder import TransactionRequestBuilder
from substrate_tx.tx.fees import FeeEstimator
from substrate_tx.tx.models import PreparedTransaction
from substrate_tx.tx.monitor import BlockInclusionMonitor
from substrate_tx.tx.tracker import SubmissionTracker
from substrate_tx.tx.units import DEFAULT_DECIMALS, format_amount

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from substrate_tx.chain.client import ChainClient
    from substrate_tx.metrics.collector import TxMetrics
    from substrate_tx.tx.models import InclusionRecord, SubmissionOutcome

logger = logging.getLogger(__name__)


class TransactionService:
    """End-to-end transaction lifecycle over a connected Chain Client."""

    def __init__(
        self,
        client: ChainClient,
        *,
        metrics: TxMetrics | None = None,
        decimals: int = DEFAULT_DECIMALS,
        symbol: str = "",
    ) -> None:
        self._client = client
        self._decimals = decimals
        self._symbol = symbol
        self.builder = TransactionRequestBuilder(client)
        self.fees = FeeEstimator(client, metrics=metrics)
        self.tracker = SubmissionTracker(client, metrics=metrics)
        self.monitor = BlockInclusionMonitor(client, metrics=metrics)

    async def prepare(
        self,
        secret: str,
        recipient: str | None,
        amount: int,
        kind: CallKind = CallKind.TRANSFER,
        params: Mapping[str, Any] | None = None,
    ) -> PreparedTransaction:
        """Derive the sender, build the request and estimate its fee.

        The amount is validated before the secret is touched, so a bad
        amount never reaches the network.
        """
        if kind is not CallKind.BATCH:
            TransactionRequestBuilder.validate_amount(amount)
        credential = await self._client.derive_account(secret)
        request = await self.builder.build(credential, recipient, amount, kind, params)
        fee = await self.fees.estimate(request)
        return PreparedTransaction(request=request, fee=fee)

    async def send(
        self,
        prepared: PreparedTransaction,
        timeout: float | None = None,
        *,
        on_update: Callable[[SubmissionOutcome], None] | None = None,
    ) -> SubmissionOutcome:
        """Submit a prepared transaction and wait for its outcome."""
        return await self.tracker.submit(prepared.request, timeout, on_update=on_update)

    async def watch(self, tx_hash: str, timeout: float | None = None) -> InclusionRecord:
        """Wait until *tx_hash* appears in a finalized block."""
        return await self.monitor.wait_for_inclusion(tx_hash, timeout=timeout)

    def describe(self, prepared: PreparedTransaction) -> dict[str, str]:
        """Display-unit summary: from, to, amount and estimated fee."""
        return {
            "from": prepared.sender,
            "to": prepared.recipient or "-",
            "amount": format_amount(prepared.amount, self._symbol, self._decimals),
            "estimated_fee": format_amount(prepared.estimated_fee, self._symbol, self._decimals),
        }
