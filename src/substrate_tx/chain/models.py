"""Chain Client boundary types — credentials, calls, status events, blocks.

Plain data classes exchanged between the lifecycle components and a
Chain Client implementation. SDK objects (keypairs, composed calls) ride
along as opaque attributes and are never inspected outside the adapter.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

# ---------------------------------------------------------------------------
# Accounts and calls
# ---------------------------------------------------------------------------


class CallKind(enum.StrEnum):
    """Supported call families."""

    TRANSFER = "transfer"
    STAKE = "stake"
    VOTE = "vote"
    BATCH = "batch"
    CROSS_CHAIN_TRANSFER = "cross_chain_transfer"


@dataclass(frozen=True)
class Credential:
    """An account derived from a secret.

    Attributes:
        address: SS58 address of the account.
        public_key: Hex public key (0x-prefixed).
        keypair: SDK keypair used for signing. Excluded from repr.
    """

    address: str
    public_key: str = ""
    keypair: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class CallDescription:
    """A concrete, signable call.

    Attributes:
        kind: The call family this call was built for.
        module: Runtime pallet name (e.g. ``Balances``).
        function: Call name inside the pallet (e.g. ``transfer_keep_alive``).
        params: Builder-level parameters the call was composed from.
        value: Balance moved by the call, in smallest units.
        raw: The SDK's composed call object.
    """

    kind: CallKind
    module: str
    function: str
    params: Mapping[str, Any] = field(default_factory=dict)
    value: int = 0
    raw: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def name(self) -> str:
        return f"{self.module}.{self.function}"


@dataclass(frozen=True)
class FeeEstimate:
    """Projected cost of a call, as returned by ``payment_queryInfo``.

    Attributes:
        partial_fee: Inclusion fee in smallest units (excludes tip).
        weight: Opaque computational-cost value reported by the runtime.
        dispatch_class: Dispatch class (``normal``, ``operational``, ...).
    """

    partial_fee: int
    weight: Any = 0
    dispatch_class: str = "normal"


# ---------------------------------------------------------------------------
# Submission status stream
# ---------------------------------------------------------------------------


class StatusPhase(enum.StrEnum):
    """Transaction pool status reported by ``author_submitAndWatchExtrinsic``."""

    PENDING = "pending"
    IN_BLOCK = "in_block"
    FINALIZED = "finalized"
    RETRACTED = "retracted"
    USURPED = "usurped"
    DROPPED = "dropped"
    INVALID = "invalid"
    FINALITY_TIMEOUT = "finality_timeout"

    @property
    def is_pool_failure(self) -> bool:
        """Whether the pool gave up on the transaction."""
        return self in (
            StatusPhase.USURPED,
            StatusPhase.DROPPED,
            StatusPhase.INVALID,
            StatusPhase.FINALITY_TIMEOUT,
        )


@dataclass(frozen=True)
class SystemEvent:
    """A runtime event triggered by the extrinsic."""

    module: str
    name: str
    data: Any = None

    @property
    def is_success(self) -> bool:
        return self.module == "System" and self.name == "ExtrinsicSuccess"

    @property
    def is_failure(self) -> bool:
        return self.module == "System" and self.name == "ExtrinsicFailed"


@dataclass(frozen=True)
class StatusEvent:
    """One status update for a submitted extrinsic.

    ``events`` is only populated for ``IN_BLOCK`` and ``FINALIZED``.
    """

    phase: StatusPhase
    block_hash: str | None = None
    events: tuple[SystemEvent, ...] = ()


# ---------------------------------------------------------------------------
# Finalized block feed
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FinalizedHead:
    """A finalized block header."""

    block_number: int
    block_hash: str


@dataclass(frozen=True)
class ExtrinsicRef:
    """An extrinsic inside a block. ``hash`` is None for unsigned inherents."""

    hash: str | None
    raw: str = ""
