"""Submission & Status Tracker — submit a request and fold its status stream.

Status events are applied in delivery order by :func:`fold_status`:

- ``IN_BLOCK`` / ``FINALIZED`` with ``System.ExtrinsicSuccess`` -> SUCCEEDED
- ``IN_BLOCK`` / ``FINALIZED`` with ``System.ExtrinsicFailed``  -> FAILED
- ``IN_BLOCK`` with neither marker                               -> IN_BLOCK
- ``FINALIZED`` with neither marker                              -> FINALIZED
- ``DROPPED`` / ``INVALID`` / ``USURPED`` / ``FINALITY_TIMEOUT``  -> FAILED
- ``PENDING`` / ``RETRACTED``                                     -> unchanged

The first terminal outcome wins and the subscription is released as soon as
it is reached. Finality is the last status a node sends, so a FINALIZED
outcome with no marker resolves ``FAILED("indeterminate")``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import weakref
from typing import TYPE_CHECKING, Any

from substrate_tx.chain.models import StatusPhase
from substrate_tx.errors.chain_errors import MonitorInterruptedError, SubmissionRejectedError
from substrate_tx.tx.models import INDETERMINATE, OutcomeStatus, SubmissionOutcome

if TYPE_CHECKING:
    from collections.abc import Callable

    from substrate_tx.chain.client import ChainClient, StatusSubscription
    from substrate_tx.chain.models import StatusEvent, SystemEvent
    from substrate_tx.metrics.collector import TxMetrics
    from substrate_tx.tx.models import TransactionRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------


def failure_reason(event: SystemEvent) -> str:
    """Render the payload of ``System.ExtrinsicFailed`` as a reason string."""
    data = event.data
    if data is None:
        return "ExtrinsicFailed"
    if isinstance(data, str):
        return data
    return str(data)


def fold_status(current: SubmissionOutcome, event: StatusEvent) -> SubmissionOutcome:
    """Apply one status event to the current outcome.

    Pure function. Terminal outcomes are returned unchanged and the status
    never moves backwards.
    """
    if current.is_terminal:
        return current

    phase = event.phase
    if phase.is_pool_failure:
        return SubmissionOutcome.failed(current.tx_hash, current.block_hash, phase.value)
    if phase not in (StatusPhase.IN_BLOCK, StatusPhase.FINALIZED):
        return current

    block_hash = event.block_hash or current.block_hash
    for system_event in event.events:
        if system_event.is_success:
            return SubmissionOutcome.succeeded(current.tx_hash, block_hash)
        if system_event.is_failure:
            return SubmissionOutcome.failed(
                current.tx_hash, block_hash, failure_reason(system_event)
            )

    if phase is StatusPhase.FINALIZED:
        return SubmissionOutcome.finalized(current.tx_hash, block_hash)
    if current.status is OutcomeStatus.FINALIZED:
        return current
    return SubmissionOutcome.in_block(current.tx_hash, block_hash)


# ---------------------------------------------------------------------------
# Submission handle
# ---------------------------------------------------------------------------


class Submission:
    """Handle to one in-flight submission.

    Owns the status subscription and the task consuming it. Use
    :meth:`wait` to obtain the terminal outcome and :meth:`cancel` to stop
    tracking early.
    """

    def __init__(
        self,
        subscription: StatusSubscription,
        *,
        on_update: Callable[[SubmissionOutcome], None] | None = None,
        metrics: TxMetrics | None = None,
    ) -> None:
        self.tx_hash = subscription.tx_hash
        self._subscription = subscription
        self._on_update = on_update
        self._metrics = metrics
        self._outcome = SubmissionOutcome.pending(self.tx_hash)
        self._released = False
        self._started_at = time.monotonic()
        self._task: asyncio.Task[SubmissionOutcome] = asyncio.get_running_loop().create_task(
            self._consume(), name=f"submission-{self.tx_hash[:10]}"
        )

    @property
    def outcome(self) -> SubmissionOutcome:
        """The current (possibly non-terminal) outcome."""
        return self._outcome

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self, timeout: float | None = None) -> SubmissionOutcome:
        """Wait for the terminal outcome.

        Args:
            timeout: Seconds to wait. On expiry the submission is cancelled
                and the ``CANCELLED`` outcome returned. None waits forever.

        Raises:
            MonitorInterruptedError: The status stream closed before a
                terminal outcome.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except TimeoutError:
            logger.info("Submission %s timed out after %ss", self.tx_hash, timeout)
            await self.cancel()
        except asyncio.CancelledError:
            if not self._task.cancelled():
                await self.cancel()
                raise
        return self._outcome

    async def cancel(self) -> bool:
        """Stop tracking and resolve ``CANCELLED``.

        Returns:
            False if the submission had already resolved.
        """
        if self._task.done() or self._outcome.is_terminal:
            return False
        self._transition(SubmissionOutcome.cancelled(self.tx_hash, self._outcome.block_hash))
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        await self._release()
        return True

    async def _consume(self) -> SubmissionOutcome:
        try:
            async for event in self._subscription:
                self._apply(event)
                if self._outcome.is_terminal:
                    return self._outcome
            msg = f"status stream for {self.tx_hash} closed before a terminal outcome"
            raise MonitorInterruptedError(msg)
        finally:
            await self._release()

    def _apply(self, event: StatusEvent) -> None:
        if event.phase is StatusPhase.RETRACTED:
            logger.warning("Block %s retracted for %s", event.block_hash, self.tx_hash)
            return
        outcome = fold_status(self._outcome, event)
        if outcome != self._outcome:
            self._transition(outcome)
        if outcome.status is OutcomeStatus.FINALIZED:
            self._transition(
                SubmissionOutcome.failed(self.tx_hash, outcome.block_hash, INDETERMINATE)
            )

    def _transition(self, outcome: SubmissionOutcome) -> None:
        if self._outcome.is_terminal:
            return
        self._outcome = outcome
        logger.debug("Submission %s -> %s", self.tx_hash, outcome.status)
        if outcome.is_terminal:
            log = logger.info if outcome.is_success else logger.warning
            log("Submission %s resolved %s", self.tx_hash, outcome.status)
            if self._metrics is not None:
                self._metrics.record_submission(
                    outcome.status.value, time.monotonic() - self._started_at
                )
        if self._on_update is not None:
            self._on_update(outcome)

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._subscription.unsubscribe()


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class SubmissionTracker:
    """Submits requests and tracks them to a terminal outcome.

    Each ``TransactionRequest`` can be submitted once.
    """

    def __init__(self, client: ChainClient, *, metrics: TxMetrics | None = None) -> None:
        self._client = client
        self._metrics = metrics
        self._submitted: weakref.WeakSet[Any] = weakref.WeakSet()

    async def start(
        self,
        request: TransactionRequest,
        *,
        on_update: Callable[[SubmissionOutcome], None] | None = None,
    ) -> Submission:
        """Sign and submit *request*, returning its tracking handle.

        Raises:
            SubmissionRejectedError: The request was already submitted, or
                the network refused it before any status was reported.
        """
        if request in self._submitted:
            msg = f"request for {request.call.name} was already submitted"
            raise SubmissionRejectedError(msg)
        self._submitted.add(request)
        subscription = await self._client.submit(request.call, request.credential)
        logger.info("Tracking %s (%s)", subscription.tx_hash, request.call.name)
        return Submission(subscription, on_update=on_update, metrics=self._metrics)

    async def submit(
        self,
        request: TransactionRequest,
        timeout: float | None = None,
        *,
        on_update: Callable[[SubmissionOutcome], None] | None = None,
    ) -> SubmissionOutcome:
        """Submit *request* and wait for its terminal outcome."""
        submission = await self.start(request, on_update=on_update)
        return await submission.wait(timeout)
