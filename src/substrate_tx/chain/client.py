"""Chain Client protocol — the network boundary.

Defines the interface the lifecycle components depend on, not a concrete
implementation. This keeps the builder, tracker and monitor testable
against in-memory fakes.

Concrete implementations:
    - SubstrateChainClient (substrate-interface)
    - fakes in tests/conftest.py

Everything that may touch the node is async, including ``build_call``:
composing a call can refresh runtime metadata. ``validate_address`` is
local and synchronous.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence

    from substrate_tx.chain.models import (
        CallDescription,
        CallKind,
        Credential,
        ExtrinsicRef,
        FeeEstimate,
        FinalizedHead,
        StatusEvent,
    )


@runtime_checkable
class StatusSubscription(Protocol):
    """Status events for one submitted extrinsic.

    Iterating yields events in network delivery order and stops when the
    underlying subscription closes. ``unsubscribe`` is idempotent.
    """

    tx_hash: str

    def __aiter__(self) -> AsyncIterator[StatusEvent]: ...

    async def unsubscribe(self) -> None: ...


@runtime_checkable
class HeadSubscription(Protocol):
    """Feed of finalized block headers."""

    def __aiter__(self) -> AsyncIterator[FinalizedHead]: ...

    async def unsubscribe(self) -> None: ...


@runtime_checkable
class ChainClient(Protocol):
    """Interface for Substrate network operations."""

    async def derive_account(self, secret: str) -> Credential:
        """Derive an account from a seed, URI or mnemonic.

        Raises:
            InvalidSecretError: If the secret cannot be decoded.
        """
        ...

    def validate_address(self, address: str) -> bool:
        """Check an address is well-formed. No network I/O."""
        ...

    async def build_call(self, kind: CallKind, params: Mapping[str, Any]) -> CallDescription:
        """Compose a runtime call from builder-level parameters.

        Raises:
            InvalidCallParamsError: The runtime rejects the parameters.
        """
        ...

    async def estimate_fee(self, call: CallDescription, sender_address: str) -> FeeEstimate:
        """Project the fee of *call* for *sender_address* without submitting.

        Raises:
            EstimationUnavailableError: If the node cannot be reached.
        """
        ...

    async def submit(self, call: CallDescription, credential: Credential) -> StatusSubscription:
        """Sign and submit *call*, returning its status stream.

        Raises:
            SubmissionRejectedError: If the node refuses the extrinsic
                before it enters the pool.
        """
        ...

    async def subscribe_finalized_heads(self) -> HeadSubscription:
        """Subscribe to finalized block headers.

        Raises:
            MonitorUnavailableError: If the subscription cannot be opened.
        """
        ...

    async def get_block_extrinsics(self, block_hash: str) -> Sequence[ExtrinsicRef]:
        """Return the extrinsics of a block, in block order."""
        ...
