"""Transaction Request Builder — validate inputs and compose calls.

Validation runs before anything is composed, in a fixed order:

1. amount (positive integer, smallest units)
2. recipient address (SS58 checksum via the Chain Client)
3. kind-specific parameters

Validation is local. Only the final composition goes through
``ChainClient.build_call``, so invalid input never reaches the node.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from substrate_tx.chain.models import CallKind
from substrate_tx.errors.tx_errors import (
    InvalidAddressError,
    InvalidAmountError,
    InvalidCallParamsError,
)
from substrate_tx.tx.models import TransactionRequest

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from substrate_tx.chain.client import ChainClient
    from substrate_tx.chain.models import Credential

logger = logging.getLogger(__name__)

# Reward destinations accepted by Staking.bond besides an explicit account
PAYEE_KINDS = ("Staked", "Stash", "Controller", "None")

CONVICTIONS = (
    "None",
    "Locked1x",
    "Locked2x",
    "Locked3x",
    "Locked4x",
    "Locked5x",
    "Locked6x",
)

_NEEDS_RECIPIENT = (CallKind.TRANSFER, CallKind.CROSS_CHAIN_TRANSFER)


class TransactionRequestBuilder:
    """Builds immutable ``TransactionRequest`` objects.

    Usage::

        builder = TransactionRequestBuilder(client)
        request = await builder.transfer(credential, "5Grw...", 10**12)
    """

    def __init__(self, client: ChainClient) -> None:
        self._client = client

    # ------------------------------------------------------------------
    # Generic entry point
    # ------------------------------------------------------------------

    async def build(
        self,
        credential: Credential,
        recipient: str | None,
        amount: int,
        kind: CallKind = CallKind.TRANSFER,
        params: Mapping[str, Any] | None = None,
    ) -> TransactionRequest:
        """Validate and compose a request of any kind.

        Args:
            credential: Sender account.
            recipient: Destination address. Required for transfers and
                cross-chain transfers; ignored by votes.
            amount: Balance in smallest units.
            kind: Call family.
            params: Extra kind-specific parameters:

                - STAKE: ``payee`` (reward destination or address),
                  ``bond_extra`` (bool)
                - VOTE: ``poll_index`` (int), ``aye`` (bool),
                  ``conviction`` (str)
                - CROSS_CHAIN_TRANSFER: ``dest_para_id`` (int)
                - BATCH: ``requests`` (sequence of TransactionRequest)

        Raises:
            InvalidAmountError: Amount is not a positive integer.
            InvalidAddressError: Recipient fails address validation.
            InvalidCallParamsError: Kind-specific parameters are invalid.
        """
        kind = CallKind(kind)
        extra = dict(params or {})
        if kind is CallKind.BATCH:
            return await self.batch(credential, extra.get("requests") or ())

        self.validate_amount(amount)
        if kind in _NEEDS_RECIPIENT or (recipient is not None and kind is not CallKind.VOTE):
            self._validate_recipient(recipient)
        if kind is CallKind.VOTE:
            recipient = None

        call_params = self._call_params(kind, recipient, amount, extra)
        call = await self._client.build_call(kind, call_params)
        logger.debug("Built %s request for %s", call.name, credential.address)
        return TransactionRequest(
            credential=credential,
            recipient=recipient,
            amount=amount,
            kind=kind,
            params=call_params,
            call=call,
        )

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def transfer(
        self, credential: Credential, recipient: str, amount: int
    ) -> TransactionRequest:
        """Balance transfer that keeps the sender alive."""
        return await self.build(credential, recipient, amount, CallKind.TRANSFER)

    async def stake(
        self,
        credential: Credential,
        amount: int,
        *,
        payee: str = "Staked",
        bond_extra: bool = False,
    ) -> TransactionRequest:
        """Bond *amount*, or add it to an existing bond with ``bond_extra``."""
        return await self.build(
            credential,
            None,
            amount,
            CallKind.STAKE,
            {"payee": payee, "bond_extra": bond_extra},
        )

    async def vote(
        self,
        credential: Credential,
        poll_index: int,
        amount: int,
        *,
        aye: bool = True,
        conviction: str = "Locked1x",
    ) -> TransactionRequest:
        """Standard conviction vote on a referendum."""
        return await self.build(
            credential,
            None,
            amount,
            CallKind.VOTE,
            {"poll_index": poll_index, "aye": aye, "conviction": conviction},
        )

    async def cross_chain_transfer(
        self,
        credential: Credential,
        recipient: str,
        amount: int,
        *,
        dest_para_id: int,
    ) -> TransactionRequest:
        """Reserve-transfer the native token to *recipient* on a parachain."""
        return await self.build(
            credential,
            recipient,
            amount,
            CallKind.CROSS_CHAIN_TRANSFER,
            {"dest_para_id": dest_para_id},
        )

    async def batch(
        self, credential: Credential, requests: Sequence[TransactionRequest]
    ) -> TransactionRequest:
        """Wrap pre-built requests in one atomic ``batch_all``, order preserved."""
        requests = list(requests)
        if not requests:
            raise InvalidCallParamsError("batch requires at least one request")
        for request in requests:
            if not isinstance(request, TransactionRequest):
                msg = f"batch entries must be TransactionRequest, got {type(request).__name__}"
                raise InvalidCallParamsError(msg)
            if request.sender_address != credential.address:
                msg = f"batch entry signed by {request.sender_address}, not {credential.address}"
                raise InvalidCallParamsError(msg)

        calls = tuple(request.call for request in requests)
        call = await self._client.build_call(CallKind.BATCH, {"calls": calls})
        return TransactionRequest(
            credential=credential,
            recipient=None,
            amount=sum(request.amount for request in requests),
            kind=CallKind.BATCH,
            params={"calls": calls},
            call=call,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_amount(amount: Any) -> int:
        """Return *amount* if it is a positive ``int`` (bools rejected)."""
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmountError(
                f"amount must be an integer in smallest units, got {type(amount).__name__}"
            )
        if amount <= 0:
            raise InvalidAmountError(f"amount must be positive, got {amount}")
        return amount

    def _validate_recipient(self, recipient: str | None) -> str:
        if not recipient or not self._client.validate_address(recipient):
            raise InvalidAddressError(recipient or "")
        return recipient

    def _call_params(
        self,
        kind: CallKind,
        recipient: str | None,
        amount: int,
        extra: dict[str, Any],
    ) -> dict[str, Any]:
        if kind is CallKind.TRANSFER:
            return {"dest": recipient, "value": amount}
        if kind is CallKind.STAKE:
            return {
                "value": amount,
                "payee": self._payee(extra.get("payee", "Staked")),
                "bond_extra": bool(extra.get("bond_extra", False)),
            }
        if kind is CallKind.VOTE:
            poll_index = extra.get("poll_index")
            if isinstance(poll_index, bool) or not isinstance(poll_index, int) or poll_index < 0:
                raise InvalidCallParamsError(f"invalid poll index: {poll_index!r}")
            conviction = extra.get("conviction", "Locked1x")
            if conviction not in CONVICTIONS:
                raise InvalidCallParamsError(f"invalid conviction: {conviction!r}")
            return {
                "poll_index": poll_index,
                "value": amount,
                "aye": bool(extra.get("aye", True)),
                "conviction": conviction,
            }
        if kind is CallKind.CROSS_CHAIN_TRANSFER:
            para_id = extra.get("dest_para_id")
            if isinstance(para_id, bool) or not isinstance(para_id, int) or para_id <= 0:
                raise InvalidCallParamsError(f"invalid destination parachain id: {para_id!r}")
            return {"dest_para_id": para_id, "beneficiary": recipient, "value": amount}
        raise InvalidCallParamsError(f"unsupported call kind: {kind}")

    def _payee(self, payee: Any) -> Any:
        """Reward destination: a named kind or ``{"Account": address}``."""
        if payee in PAYEE_KINDS:
            return payee
        if isinstance(payee, str) and self._client.validate_address(payee):
            return {"Account": payee}
        raise InvalidCallParamsError(f"invalid staking payee: {payee!r}")
