"""Error taxonomy for the transaction lifecycle."""

from substrate_tx.errors.chain_errors import (
    ChainConnectionError,
    EstimationUnavailableError,
    MonitorInterruptedError,
    MonitorUnavailableError,
    SubmissionRejectedError,
)
from substrate_tx.errors.tx_errors import (
    InvalidAddressError,
    InvalidAmountError,
    InvalidCallParamsError,
    InvalidSecretError,
    SubmissionFailedError,
    TxCancelledError,
    TxError,
    ValidationError,
)

__all__ = [
    "ChainConnectionError",
    "EstimationUnavailableError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidCallParamsError",
    "InvalidSecretError",
    "MonitorInterruptedError",
    "MonitorUnavailableError",
    "SubmissionFailedError",
    "SubmissionRejectedError",
    "TxCancelledError",
    "TxError",
    "ValidationError",
]
