"""Fee Estimator — project the fee of a request without submitting it."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from substrate_tx.errors.chain_errors import EstimationUnavailableError

if TYPE_CHECKING:
    from substrate_tx.chain.client import ChainClient
    from substrate_tx.chain.models import FeeEstimate
    from substrate_tx.metrics.collector import TxMetrics
    from substrate_tx.tx.models import TransactionRequest

logger = logging.getLogger(__name__)


class FeeEstimator:
    """Queries the network for the projected fee of a request.

    Estimates are recomputed on every call; nothing is cached.
    """

    def __init__(self, client: ChainClient, *, metrics: TxMetrics | None = None) -> None:
        self._client = client
        self._metrics = metrics

    async def estimate(self, request: TransactionRequest) -> FeeEstimate:
        """Return the fee estimate for *request*.

        Raises:
            EstimationUnavailableError: The network could not be queried.
        """
        tracker = self._metrics.track_fee_estimate() if self._metrics else contextlib.nullcontext()
        with tracker:
            try:
                fee = await self._client.estimate_fee(request.call, request.sender_address)
            except EstimationUnavailableError:
                raise
            except OSError as exc:
                msg = f"fee estimation for {request.call.name} failed: {exc}"
                raise EstimationUnavailableError(msg) from exc
        logger.debug("Estimated fee for %s: %d", request.call.name, fee.partial_fee)
        return fee
