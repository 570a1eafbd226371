"""Shared test fixtures for the substrate-tx test suite.

``FakeChainClient`` is an in-memory Chain Client: it records every call in
``calls`` and replays scripted status events and finalized heads.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import pytest

from substrate_tx.chain.models import (
    CallDescription,
    CallKind,
    Credential,
    ExtrinsicRef,
    FeeEstimate,
    FinalizedHead,
    StatusEvent,
)
from substrate_tx.errors.tx_errors import InvalidSecretError

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
ALICE_SEED = "0xe5be9a5092b81bca64be81d212e7f2f9eba183bb7a90954f7b76361f6edb5c0a"

_RUNTIME_CALLS = {
    CallKind.TRANSFER: ("Balances", "transfer_keep_alive"),
    CallKind.STAKE: ("Staking", "bond"),
    CallKind.VOTE: ("ConvictionVoting", "vote"),
    CallKind.BATCH: ("Utility", "batch_all"),
    CallKind.CROSS_CHAIN_TRANSFER: ("XcmPallet", "limited_reserve_transfer_assets"),
}


class FakeStatusSubscription:
    """Replays *events*, then ends (or blocks until unsubscribed with ``hang``)."""

    def __init__(
        self,
        events: list[StatusEvent],
        tx_hash: str = "0x" + "ab" * 32,
        *,
        hang: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.tx_hash = tx_hash
        self.delivered: list[StatusEvent] = []
        self.unsubscribe_calls = 0
        self._events = list(events)
        self._hang = hang
        self._error = error
        self._closed = asyncio.Event()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self._events:
            await asyncio.sleep(0)
            self.delivered.append(event)
            yield event
        if self._error is not None:
            raise self._error
        if self._hang:
            await self._closed.wait()

    async def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self._closed.set()


class FakeHeadSubscription:
    """Replays finalized heads, then ends (or blocks with ``hang``)."""

    def __init__(self, heads: list[FinalizedHead], *, hang: bool = False) -> None:
        self.delivered: list[FinalizedHead] = []
        self.unsubscribe_calls = 0
        self._heads = list(heads)
        self._hang = hang
        self._closed = asyncio.Event()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for head in self._heads:
            await asyncio.sleep(0)
            self.delivered.append(head)
            yield head
        if self._hang:
            await self._closed.wait()

    async def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self._closed.set()


class FakeChainClient:
    """In-memory Chain Client with scripted responses."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.valid_addresses = {ALICE, BOB}
        self.fee = FeeEstimate(partial_fee=15_600_000, weight=1_000, dispatch_class="normal")
        self.fee_error: Exception | None = None
        self.submit_error: Exception | None = None
        self.head_error: Exception | None = None
        self.status_events: list[StatusEvent] = []
        self.status_hang = False
        self.heads: list[FinalizedHead] = []
        self.head_hang = False
        self.blocks: dict[str, list[ExtrinsicRef]] = {}
        self.subscriptions: list[FakeStatusSubscription] = []
        self.head_feeds: list[FakeHeadSubscription] = []

    @property
    def network_calls(self) -> int:
        """Calls that would reach the node (everything except local checks)."""
        return sum(n for name, n in self.calls.items() if name != "validate_address")

    async def derive_account(self, secret: str) -> Credential:
        self.calls["derive_account"] += 1
        if not secret.startswith("0x"):
            raise InvalidSecretError(f"cannot derive account from {secret[:4]}...")
        return Credential(address=ALICE, public_key="0x" + "d4" * 32, keypair=object())

    def validate_address(self, address: str) -> bool:
        self.calls["validate_address"] += 1
        return address in self.valid_addresses

    async def build_call(self, kind: CallKind, params: Any) -> CallDescription:
        self.calls["build_call"] += 1
        module, function = _RUNTIME_CALLS[kind]
        if kind is CallKind.BATCH:
            value = sum(call.value for call in params["calls"])
        else:
            value = params.get("value", 0)
        return CallDescription(
            kind=kind,
            module=module,
            function=function,
            params=params,
            value=value,
            raw={"call_module": module, "call_function": function},
        )

    async def estimate_fee(self, call: CallDescription, sender_address: str) -> FeeEstimate:
        self.calls["estimate_fee"] += 1
        if self.fee_error is not None:
            raise self.fee_error
        return self.fee

    async def submit(self, call: CallDescription, credential: Credential) -> FakeStatusSubscription:
        self.calls["submit"] += 1
        if self.submit_error is not None:
            raise self.submit_error
        tx_hash = "0x" + f"{len(self.subscriptions) + 1:064x}"
        subscription = FakeStatusSubscription(
            self.status_events, tx_hash=tx_hash, hang=self.status_hang
        )
        self.subscriptions.append(subscription)
        return subscription

    async def subscribe_finalized_heads(self) -> FakeHeadSubscription:
        self.calls["subscribe_finalized_heads"] += 1
        if self.head_error is not None:
            raise self.head_error
        feed = FakeHeadSubscription(self.heads, hang=self.head_hang)
        self.head_feeds.append(feed)
        return feed

    async def get_block_extrinsics(self, block_hash: str) -> list[ExtrinsicRef]:
        self.calls["get_block_extrinsics"] += 1
        return list(self.blocks.get(block_hash, []))


@pytest.fixture
def chain_client() -> FakeChainClient:
    """Provide a fresh in-memory Chain Client."""
    return FakeChainClient()


@pytest.fixture
def credential() -> Credential:
    """Alice's account, as ``derive_account`` would return it."""
    return Credential(address=ALICE, public_key="0x" + "d4" * 32, keypair=object())


@pytest.fixture
def app_config(monkeypatch):
    """Provide a test AppConfig isolated from the caller's environment."""
    from substrate_tx.config.settings import AppConfig

    for name in ("SUBSTRATE_TX_CONFIG_PATH", "SUBSTRATE_TX_DEBUG", "SUBSTRATE_TX_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return AppConfig(debug=True)
