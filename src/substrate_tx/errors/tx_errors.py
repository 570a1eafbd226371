"""TxError — base exception class plus validation and outcome errors."""

from __future__ import annotations


class TxError(Exception):
    """Base error for all substrate-tx operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string.
    """

    def __init__(self, message: str, *, code: str = "tx-error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict[str, str]:
        """Structured description used by the CLI error channel."""
        return {"code": self.code, "message": self.message}


# -- Validation ------------------------------------------------------------


class ValidationError(TxError):
    """Local input validation failed; no network call was made."""


class InvalidAddressError(ValidationError):
    """Recipient address failed format validation."""

    def __init__(self, address: str) -> None:
        super().__init__(f"invalid recipient address: {address!r}", code="invalid-address")
        self.address = address


class InvalidAmountError(ValidationError):
    """Amount is not a positive integer in smallest units."""

    def __init__(self, message: str = "amount must be a positive integer") -> None:
        super().__init__(message, code="invalid-amount")


class InvalidSecretError(ValidationError):
    """Secret could not be turned into an account credential."""

    def __init__(self, message: str = "invalid account secret") -> None:
        super().__init__(message, code="invalid-secret")


class InvalidCallParamsError(ValidationError):
    """Kind-specific call parameters are missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid-call-params")


# -- Outcome ---------------------------------------------------------------


class SubmissionFailedError(TxError):
    """The extrinsic was included but its dispatch failed on-chain."""

    def __init__(self, reason: str, *, block_hash: str | None = None) -> None:
        super().__init__(f"transaction failed: {reason}", code="submission-failed")
        self.reason = reason
        self.block_hash = block_hash


class TxCancelledError(TxError):
    """A submission or inclusion watch was cancelled before resolving."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(message, code="cancelled")
