"""Block Inclusion Monitor — find a transaction hash in finalized blocks.

Independent of the submission status stream: subscribes to finalized heads,
fetches each block's extrinsics and searches them for the target hash. The
first match produces an :class:`InclusionRecord` and ends the watch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from substrate_tx.errors.chain_errors import MonitorInterruptedError
from substrate_tx.errors.tx_errors import TxCancelledError
from substrate_tx.tx.models import InclusionRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from substrate_tx.chain.client import ChainClient, HeadSubscription
    from substrate_tx.chain.models import ExtrinsicRef
    from substrate_tx.metrics.collector import TxMetrics

logger = logging.getLogger(__name__)


def normalize_hash(value: str) -> str:
    """Lower-case hex without the ``0x`` prefix."""
    value = value.strip().lower()
    return value[2:] if value.startswith("0x") else value


def find_extrinsic(extrinsics: Sequence[ExtrinsicRef], tx_hash: str) -> int | None:
    """Index of *tx_hash* in *extrinsics*, or None. Linear scan."""
    target = normalize_hash(tx_hash)
    for index, extrinsic in enumerate(extrinsics):
        if extrinsic.hash is not None and normalize_hash(extrinsic.hash) == target:
            return index
    return None


class InclusionWatch:
    """Handle to one running inclusion search."""

    def __init__(
        self,
        client: ChainClient,
        feed: HeadSubscription,
        tx_hash: str,
        *,
        on_inclusion: Callable[[InclusionRecord], None] | None = None,
        metrics: TxMetrics | None = None,
    ) -> None:
        self.tx_hash = tx_hash
        self._client = client
        self._feed = feed
        self._on_inclusion = on_inclusion
        self._metrics = metrics
        self._record: InclusionRecord | None = None
        self._released = False
        self._task: asyncio.Task[InclusionRecord] = asyncio.get_running_loop().create_task(
            self._scan(), name=f"inclusion-{normalize_hash(tx_hash)[:8]}"
        )

    @property
    def record(self) -> InclusionRecord | None:
        """The inclusion record once found."""
        return self._record

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self, timeout: float | None = None) -> InclusionRecord:
        """Wait for the first finalized block containing the transaction.

        Raises:
            TxCancelledError: The watch was cancelled or *timeout* expired.
            MonitorInterruptedError: The head feed ended before a match.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except TimeoutError:
            if not await self.cancel() and not self._task.cancelled():
                # The match landed together with the deadline
                return self._task.result()
            raise TxCancelledError(
                f"{self.tx_hash} not found in a finalized block within {timeout}s"
            ) from None
        except asyncio.CancelledError:
            if not self._task.cancelled():
                await self.cancel()
                raise
            raise TxCancelledError(f"inclusion watch for {self.tx_hash} cancelled") from None

    async def cancel(self) -> bool:
        """Stop scanning and release the head feed.

        Returns:
            False if the watch had already finished.
        """
        if self._task.done():
            return False
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        await self._release()
        logger.info("Inclusion watch for %s cancelled", self.tx_hash)
        return True

    async def _scan(self) -> InclusionRecord:
        try:
            async for head in self._feed:
                extrinsics = await self._client.get_block_extrinsics(head.block_hash)
                if self._metrics is not None:
                    self._metrics.record_block_scanned()
                index = find_extrinsic(extrinsics, self.tx_hash)
                if index is None:
                    logger.debug("%s not in block #%d", self.tx_hash, head.block_number)
                    continue
                return self._found(head.block_number, head.block_hash, index)
            msg = f"finalized head feed ended before {self.tx_hash} was found"
            raise MonitorInterruptedError(msg)
        finally:
            await self._release()

    def _found(self, block_number: int, block_hash: str, index: int) -> InclusionRecord:
        record = InclusionRecord(
            block_number=block_number,
            block_hash=block_hash,
            tx_hash=self.tx_hash,
            extrinsic_index=index,
        )
        self._record = record
        logger.info(
            "%s included in finalized block #%d (%s)", self.tx_hash, block_number, block_hash
        )
        if self._metrics is not None:
            self._metrics.record_inclusion()
        if self._on_inclusion is not None:
            self._on_inclusion(record)
        return record

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._feed.unsubscribe()


class BlockInclusionMonitor:
    """Starts inclusion watches against a Chain Client.

    Usage::

        monitor = BlockInclusionMonitor(client)
        record = await monitor.wait_for_inclusion("0xabc...", timeout=120)
    """

    def __init__(self, client: ChainClient, *, metrics: TxMetrics | None = None) -> None:
        self._client = client
        self._metrics = metrics

    async def start(
        self,
        tx_hash: str,
        *,
        on_inclusion: Callable[[InclusionRecord], None] | None = None,
    ) -> InclusionWatch:
        """Subscribe to finalized heads and start searching for *tx_hash*.

        Raises:
            MonitorUnavailableError: The head feed could not be established.
        """
        feed = await self._client.subscribe_finalized_heads()
        logger.info("Watching finalized blocks for %s", tx_hash)
        return InclusionWatch(
            self._client,
            feed,
            tx_hash,
            on_inclusion=on_inclusion,
            metrics=self._metrics,
        )

    async def wait_for_inclusion(
        self,
        tx_hash: str,
        *,
        timeout: float | None = None,
        on_inclusion: Callable[[InclusionRecord], None] | None = None,
    ) -> InclusionRecord:
        """Return the record of the first finalized block containing *tx_hash*."""
        watch = await self.start(tx_hash, on_inclusion=on_inclusion)
        return await watch.wait(timeout)
