"""Network-layer errors raised at the Chain Client boundary."""

from __future__ import annotations

from substrate_tx.errors.tx_errors import TxError


class ChainConnectionError(TxError):
    """The node could not be reached or the client is not connected."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="connection-failed")


class EstimationUnavailableError(TxError):
    """Fee estimation could not reach the network."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="estimation-unavailable")


class SubmissionRejectedError(TxError):
    """The network never accepted the submission (signature, nonce, pool)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="submission-rejected")


class MonitorUnavailableError(TxError):
    """A finalized-block feed could not be established."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="monitor-unavailable")


class MonitorInterruptedError(TxError):
    """A confirmation channel closed before a result was reached."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="monitor-interrupted")
