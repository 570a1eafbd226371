"""Transaction lifecycle — build, estimate, submit, track, confirm."""

from __future__ import annotations

from substrate_tx.tx.builder import TransactionRequestBuilder
from substrate_tx.tx.fees import FeeEstimator
from substrate_tx.tx.models import (
    InclusionRecord,
    OutcomeStatus,
    PreparedTransaction,
    SubmissionOutcome,
    TransactionRequest,
)
from substrate_tx.tx.monitor import BlockInclusionMonitor, InclusionWatch
from substrate_tx.tx.service import TransactionService
from substrate_tx.tx.tracker import Submission, SubmissionTracker, fold_status

__all__ = [
    "BlockInclusionMonitor",
    "FeeEstimator",
    "InclusionRecord",
    "InclusionWatch",
    "OutcomeStatus",
    "PreparedTransaction",
    "Submission",
    "SubmissionOutcome",
    "SubmissionTracker",
    "TransactionRequest",
    "TransactionRequestBuilder",
    "TransactionService",
    "fold_status",
]
