"""Lifecycle data models — TransactionRequest, SubmissionOutcome, InclusionRecord."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from substrate_tx.errors.tx_errors import SubmissionFailedError, TxCancelledError

if TYPE_CHECKING:
    from substrate_tx.chain.models import CallDescription, CallKind, Credential, FeeEstimate

# ---------------------------------------------------------------------------
# Transaction request
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class TransactionRequest:
    """A validated, signable request. Immutable once built.

    Compared and hashed by identity: each request is submitted at most once.

    Attributes:
        credential: Sender account (keypair excluded from repr).
        recipient: Destination address, or None for kinds without one.
        amount: Balance moved, in smallest units.
        kind: Call family.
        params: Kind-specific parameters (read-only).
        call: The composed call.
    """

    credential: Credential = field(repr=False)
    recipient: str | None
    amount: int
    kind: CallKind
    params: Mapping[str, Any]
    call: CallDescription

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def sender_address(self) -> str:
        return self.credential.address


# ---------------------------------------------------------------------------
# Submission outcome
# ---------------------------------------------------------------------------


class OutcomeStatus(enum.StrEnum):
    """Submission lifecycle states.

    Lifecycle: PENDING → IN_BLOCK → FINALIZED, ending in one of
               SUCCEEDED | FAILED | CANCELLED
    """

    PENDING = "pending"
    IN_BLOCK = "in_block"
    FINALIZED = "finalized"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OutcomeStatus.SUCCEEDED, OutcomeStatus.FAILED, OutcomeStatus.CANCELLED)

    @property
    def rank(self) -> int:
        """Position in the lifecycle; terminal states share the top rank."""
        return _RANKS[self]


_RANKS = {
    OutcomeStatus.PENDING: 0,
    OutcomeStatus.IN_BLOCK: 1,
    OutcomeStatus.FINALIZED: 2,
    OutcomeStatus.SUCCEEDED: 3,
    OutcomeStatus.FAILED: 3,
    OutcomeStatus.CANCELLED: 3,
}

INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Folded state of one submission.

    Attributes:
        status: Current lifecycle state.
        tx_hash: Extrinsic hash (0x-prefixed).
        block_hash: Block the extrinsic was seen in, when known.
        reason: Failure reason for ``FAILED``.
    """

    status: OutcomeStatus
    tx_hash: str = ""
    block_hash: str | None = None
    reason: str | None = None

    @classmethod
    def pending(cls, tx_hash: str) -> SubmissionOutcome:
        return cls(OutcomeStatus.PENDING, tx_hash)

    @classmethod
    def in_block(cls, tx_hash: str, block_hash: str | None) -> SubmissionOutcome:
        return cls(OutcomeStatus.IN_BLOCK, tx_hash, block_hash)

    @classmethod
    def finalized(cls, tx_hash: str, block_hash: str | None) -> SubmissionOutcome:
        return cls(OutcomeStatus.FINALIZED, tx_hash, block_hash)

    @classmethod
    def succeeded(cls, tx_hash: str, block_hash: str | None) -> SubmissionOutcome:
        return cls(OutcomeStatus.SUCCEEDED, tx_hash, block_hash)

    @classmethod
    def failed(cls, tx_hash: str, block_hash: str | None, reason: str) -> SubmissionOutcome:
        return cls(OutcomeStatus.FAILED, tx_hash, block_hash, reason)

    @classmethod
    def cancelled(cls, tx_hash: str, block_hash: str | None = None) -> SubmissionOutcome:
        return cls(OutcomeStatus.CANCELLED, tx_hash, block_hash)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    def raise_for_outcome(self) -> SubmissionOutcome:
        """Return self, raising for ``FAILED`` and ``CANCELLED``.

        Raises:
            SubmissionFailedError: The extrinsic failed on-chain.
            TxCancelledError: The submission was cancelled.
        """
        if self.status is OutcomeStatus.FAILED:
            raise SubmissionFailedError(self.reason or INDETERMINATE, block_hash=self.block_hash)
        if self.status is OutcomeStatus.CANCELLED:
            raise TxCancelledError(f"submission {self.tx_hash} cancelled")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        data = asdict(self)
        data["status"] = self.status.value
        return data


# ---------------------------------------------------------------------------
# Inclusion record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InclusionRecord:
    """Where a transaction was found in the finalized chain."""

    block_number: int
    block_hash: str
    tx_hash: str
    extrinsic_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Prepared transaction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PreparedTransaction:
    """A built request together with its fee estimate, ready to send."""

    request: TransactionRequest
    fee: FeeEstimate

    @property
    def sender(self) -> str:
        return self.request.sender_address

    @property
    def recipient(self) -> str | None:
        return self.request.recipient

    @property
    def amount(self) -> int:
        return self.request.amount

    @property
    def estimated_fee(self) -> int:
        return self.fee.partial_fee

    def to_dict(self) -> dict[str, Any]:
        """Summary with amounts as integer strings (smallest units)."""
        return {
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "estimatedFee": str(self.estimated_fee),
            "call": self.request.call.name,
        }
