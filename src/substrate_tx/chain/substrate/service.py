"""substrate-interface Chain Client — accounts, calls, fees, submission, blocks.

Implements the ``ChainClient`` protocol on top of the synchronous
``substrateinterface`` SDK:

- request/response calls run on a worker thread (``asyncio.to_thread``)
  behind a lock, since one SDK connection is not safe for concurrent use
- each subscription (``author_submitAndWatchExtrinsic``, finalized heads)
  gets a dedicated connection driven by a ``ThreadedSubscription``
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Any, TypeVar

from substrateinterface import ExtrinsicReceipt, Keypair, KeypairType, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from substrateinterface.utils.ss58 import is_valid_ss58_address, ss58_decode
from websocket import WebSocketException

from substrate_tx.chain.models import (
    CallDescription,
    CallKind,
    Credential,
    ExtrinsicRef,
    FeeEstimate,
    FinalizedHead,
    StatusEvent,
    StatusPhase,
    SystemEvent,
)
from substrate_tx.chain.substrate.subscription import ThreadedSubscription
from substrate_tx.config.settings import CryptoType
from substrate_tx.errors.chain_errors import (
    ChainConnectionError,
    EstimationUnavailableError,
    MonitorInterruptedError,
    MonitorUnavailableError,
    SubmissionRejectedError,
)
from substrate_tx.errors.tx_errors import InvalidCallParamsError, InvalidSecretError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from substrate_tx.config.settings import ChainConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Exceptions the SDK raises for transport and node-side failures
_SDK_ERRORS: tuple[type[Exception], ...] = (SubstrateRequestException, WebSocketException, OSError)

_KEYPAIR_TYPES = {
    CryptoType.SR25519: KeypairType.SR25519,
    CryptoType.ED25519: KeypairType.ED25519,
}

# String statuses from author_submitAndWatchExtrinsic
_SIMPLE_STATUSES = {
    "future": StatusPhase.PENDING,
    "ready": StatusPhase.PENDING,
    "dropped": StatusPhase.DROPPED,
    "invalid": StatusPhase.INVALID,
}

# Object statuses, keyed by their single field name
_OBJECT_STATUSES = {
    "broadcast": StatusPhase.PENDING,
    "inBlock": StatusPhase.IN_BLOCK,
    "retracted": StatusPhase.RETRACTED,
    "finalityTimeout": StatusPhase.FINALITY_TIMEOUT,
    "finalized": StatusPhase.FINALIZED,
    "usurped": StatusPhase.USURPED,
}


# ---------------------------------------------------------------------------
# Message parsing
# ---------------------------------------------------------------------------


def parse_extrinsic_status(message: dict[str, Any]) -> StatusEvent | None:
    """Convert an ``author_extrinsicUpdate`` notification to a StatusEvent."""
    result = message.get("params", {}).get("result")
    if isinstance(result, str):
        return StatusEvent(phase=_SIMPLE_STATUSES.get(result, StatusPhase.PENDING))
    if isinstance(result, dict) and result:
        key, value = next(iter(result.items()))
        phase = _OBJECT_STATUSES.get(key)
        if phase is None:
            logger.debug("Ignoring unknown extrinsic status %r", key)
            return None
        block_hash = value if isinstance(value, str) and phase != StatusPhase.USURPED else None
        return StatusEvent(phase=phase, block_hash=block_hash)
    return None


def parse_block_number(header: dict[str, Any]) -> int:
    """Read the block number from a decoded or raw header."""
    number = header["number"]
    if isinstance(number, str):
        return int(number, 16) if number.startswith("0x") else int(number)
    return int(number)


def _header_of(obj: Any) -> dict[str, Any] | None:
    if isinstance(obj, dict):
        header = obj.get("header", obj)
        return header if isinstance(header, dict) else None
    return None


def _system_event(record: Any) -> SystemEvent:
    value = getattr(record, "value", record) or {}
    event = value.get("event", value)
    return SystemEvent(
        module=event.get("module_id", ""),
        name=event.get("event_id", ""),
        data=event.get("attributes"),
    )


def _extrinsic_hash(extrinsic: Any) -> str | None:
    value = getattr(extrinsic, "value", None)
    if isinstance(value, dict) and value.get("extrinsic_hash"):
        return str(value["extrinsic_hash"])
    return None


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------


class SubstrateStatusStream:
    """Status events for one extrinsic, with triggered events attached."""

    def __init__(
        self,
        subscription: ThreadedSubscription[StatusEvent],
        tx_hash: str,
        fetch_events: Callable[[str, str], Awaitable[tuple[SystemEvent, ...]]],
    ) -> None:
        self.tx_hash = tx_hash
        self._subscription = subscription
        self._fetch_events = fetch_events

    def __aiter__(self) -> SubstrateStatusStream:
        return self

    async def __anext__(self) -> StatusEvent:
        try:
            event = await self._subscription.__anext__()
        except _SDK_ERRORS as exc:
            raise MonitorInterruptedError(f"status stream for {self.tx_hash} broke: {exc}") from exc
        if event.phase in (StatusPhase.IN_BLOCK, StatusPhase.FINALIZED) and event.block_hash:
            events = await self._fetch_events(self.tx_hash, event.block_hash)
            event = replace(event, events=events)
        return event

    async def unsubscribe(self) -> None:
        await self._subscription.unsubscribe()


class SubstrateHeadStream:
    """Finalized headers resolved to (number, hash) pairs."""

    def __init__(
        self,
        subscription: ThreadedSubscription[dict[str, Any]],
        resolve_hash: Callable[[int], Awaitable[str]],
    ) -> None:
        self._subscription = subscription
        self._resolve_hash = resolve_hash

    def __aiter__(self) -> SubstrateHeadStream:
        return self

    async def __anext__(self) -> FinalizedHead:
        try:
            header = await self._subscription.__anext__()
            number = parse_block_number(header)
            block_hash = await self._resolve_hash(number)
        except _SDK_ERRORS as exc:
            raise MonitorInterruptedError(f"finalized head feed broke: {exc}") from exc
        return FinalizedHead(block_number=number, block_hash=block_hash)

    async def unsubscribe(self) -> None:
        await self._subscription.unsubscribe()


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class SubstrateChainClient:
    """Async Chain Client backed by substrate-interface.

    Usage::

        client = SubstrateChainClient(config.chain)
        await client.connect()
        try:
            credential = await client.derive_account("0x...")
            ...
        finally:
            await client.close()
    """

    def __init__(
        self,
        config: ChainConfig,
        *,
        connection_factory: Callable[[], SubstrateInterface] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Chain connection settings.
            connection_factory: Opens a new SDK connection. Defaults to
                ``SubstrateInterface`` on the configured endpoint.
        """
        self._config = config
        self._factory = connection_factory or self._open_connection
        self._substrate: SubstrateInterface | None = None
        self._lock = threading.Lock()
        self._chain_name = ""

    async def connect(self) -> None:
        """Open the shared connection and read the chain name."""
        try:
            self._substrate = await asyncio.to_thread(self._factory)
            self._chain_name = str(await self._run(lambda s: s.chain))
        except _SDK_ERRORS as exc:
            self._substrate = None
            msg = f"cannot connect to {self._config.resolved_url}: {exc}"
            raise ChainConnectionError(msg) from exc
        logger.info("Connected to %s (%s)", self._chain_name, self._config.resolved_url)

    async def close(self) -> None:
        """Close the shared connection."""
        if self._substrate is not None:
            substrate, self._substrate = self._substrate, None
            await asyncio.to_thread(substrate.close)

    @property
    def is_connected(self) -> bool:
        """Check if the shared connection is open."""
        return self._substrate is not None

    @property
    def chain_name(self) -> str:
        """Chain name reported by ``system_chain`` on connect."""
        return self._chain_name

    # ------------------------------------------------------------------
    # Accounts and calls
    # ------------------------------------------------------------------

    async def derive_account(self, secret: str) -> Credential:
        """Derive a keypair from a hex seed, a ``//`` URI or a mnemonic."""
        ss58_format = self._config.resolved_ss58_format
        crypto_type = _KEYPAIR_TYPES[self._config.crypto_type]

        def _derive() -> Keypair:
            if secret.startswith("0x"):
                return Keypair.create_from_seed(
                    secret, ss58_format=ss58_format, crypto_type=crypto_type
                )
            if secret.startswith("/"):
                return Keypair.create_from_uri(
                    secret, ss58_format=ss58_format, crypto_type=crypto_type
                )
            return Keypair.create_from_mnemonic(
                secret, ss58_format=ss58_format, crypto_type=crypto_type
            )

        try:
            keypair = await asyncio.to_thread(_derive)
        except (ValueError, TypeError) as exc:
            raise InvalidSecretError(f"cannot derive account: {exc}") from exc
        return Credential(
            address=keypair.ss58_address,
            public_key="0x" + bytes(keypair.public_key).hex(),
            keypair=keypair,
        )

    def validate_address(self, address: str) -> bool:
        """Check SS58 encoding and checksum."""
        if not isinstance(address, str) or not address:
            return False
        try:
            return bool(is_valid_ss58_address(address))
        except (ValueError, TypeError):
            return False

    async def build_call(self, kind: CallKind, params: Mapping[str, Any]) -> CallDescription:
        """Compose the runtime call for *kind* on the worker thread.

        ``compose_call`` may refresh the runtime from the chain head, so it
        shares the connection lock with every other request.
        """
        module, function, call_params = self._runtime_call(kind, params)
        try:
            raw = await self._run(
                lambda s: s.compose_call(
                    call_module=module,
                    call_function=function,
                    call_params=call_params,
                )
            )
        except (ValueError, TypeError, SubstrateRequestException) as exc:
            raise InvalidCallParamsError(f"cannot compose {module}.{function}: {exc}") from exc
        except (WebSocketException, OSError) as exc:
            raise ChainConnectionError(f"cannot compose {module}.{function}: {exc}") from exc
        return CallDescription(
            kind=kind,
            module=module,
            function=function,
            params=params,
            value=_call_value(kind, params),
            raw=raw,
        )

    # ------------------------------------------------------------------
    # Fees and submission
    # ------------------------------------------------------------------

    async def estimate_fee(self, call: CallDescription, sender_address: str) -> FeeEstimate:
        """Query ``TransactionPaymentApi`` for the fee of *call*."""
        payer = Keypair(ss58_address=sender_address)
        try:
            info = await self._run(lambda s: s.get_payment_info(call=call.raw, keypair=payer))
        except _SDK_ERRORS as exc:
            msg = f"fee estimation for {call.name} failed: {exc}"
            raise EstimationUnavailableError(msg) from exc
        info = info or {}
        return FeeEstimate(
            partial_fee=int(info.get("partial_fee", info.get("partialFee", 0))),
            weight=info.get("weight", 0),
            dispatch_class=str(info.get("class", "normal")),
        )

    async def submit(self, call: CallDescription, credential: Credential) -> SubstrateStatusStream:
        """Sign *call* with *credential* and watch it through the pool."""
        try:
            extrinsic = await self._run(
                lambda s: s.create_signed_extrinsic(call=call.raw, keypair=credential.keypair)
            )
        except (*_SDK_ERRORS, ValueError, TypeError) as exc:
            raise SubmissionRejectedError(f"cannot sign {call.name}: {exc}") from exc

        tx_hash = "0x" + bytes(extrinsic.extrinsic_hash).hex()
        payload = str(extrinsic.data)
        try:
            connection = await asyncio.to_thread(self._factory)
        except _SDK_ERRORS as exc:
            raise SubmissionRejectedError(f"cannot open submission channel: {exc}") from exc

        subscription: ThreadedSubscription[StatusEvent] = ThreadedSubscription(
            connection,
            lambda conn, handler: conn.rpc_request(
                "author_submitAndWatchExtrinsic", [payload], result_handler=handler
            ),
            parse=parse_extrinsic_status,
            name=f"extrinsic-{tx_hash[:10]}",
        )
        try:
            await subscription.start(wait_established=True)
        except _SDK_ERRORS as exc:
            await subscription.unsubscribe()
            raise SubmissionRejectedError(f"node rejected {tx_hash}: {exc}") from exc

        logger.info("Submitted %s as %s from %s", call.name, tx_hash, credential.address)
        return SubstrateStatusStream(subscription, tx_hash, self._extrinsic_events)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    async def subscribe_finalized_heads(self) -> SubstrateHeadStream:
        """Open a dedicated connection and subscribe to finalized headers."""
        self._ensure_connected()
        try:
            connection = await asyncio.to_thread(self._factory)
        except _SDK_ERRORS as exc:
            raise MonitorUnavailableError(f"cannot open finalized head feed: {exc}") from exc

        subscription: ThreadedSubscription[dict[str, Any]] = ThreadedSubscription(
            connection,
            lambda conn, handler: conn.subscribe_block_headers(handler, finalized_only=True),
            parse=_header_of,
            name="finalized-heads",
        )
        # The node sends the current finalized head straight away.
        try:
            await subscription.start(wait_established=True)
        except _SDK_ERRORS as exc:
            await subscription.unsubscribe()
            raise MonitorUnavailableError(f"finalized head feed refused: {exc}") from exc
        return SubstrateHeadStream(subscription, self._block_hash)

    async def get_block_extrinsics(self, block_hash: str) -> tuple[ExtrinsicRef, ...]:
        """Return the extrinsics of *block_hash* in block order."""
        try:
            block = await self._run(lambda s: s.get_block(block_hash=block_hash))
        except _SDK_ERRORS as exc:
            raise MonitorInterruptedError(f"cannot fetch block {block_hash}: {exc}") from exc
        extrinsics = (block or {}).get("extrinsics") or []
        return tuple(
            ExtrinsicRef(hash=_extrinsic_hash(xt), raw=str(getattr(xt, "data", "")))
            for xt in extrinsics
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _open_connection(self) -> SubstrateInterface:
        kwargs: dict[str, Any] = {
            "url": self._config.resolved_url,
            "ss58_format": self._config.resolved_ss58_format,
        }
        if self._config.type_registry_preset:
            kwargs["type_registry_preset"] = self._config.type_registry_preset
        return SubstrateInterface(**kwargs)

    def _ensure_connected(self) -> SubstrateInterface:
        """Return the shared connection, raising if not connected."""
        if self._substrate is None:
            msg = "Chain client not connected. Call connect() first."
            raise ChainConnectionError(msg)
        return self._substrate

    async def _run(self, fn: Callable[[SubstrateInterface], T]) -> T:
        """Run *fn* against the shared connection on a worker thread."""
        substrate = self._ensure_connected()

        def _locked() -> T:
            with self._lock:
                return fn(substrate)

        return await asyncio.to_thread(_locked)

    async def _block_hash(self, number: int) -> str:
        return str(await self._run(lambda s: s.get_block_hash(number)))

    async def _extrinsic_events(self, tx_hash: str, block_hash: str) -> tuple[SystemEvent, ...]:
        def _fetch(substrate: SubstrateInterface) -> list[Any]:
            receipt = ExtrinsicReceipt(
                substrate=substrate, extrinsic_hash=tx_hash, block_hash=block_hash
            )
            return list(receipt.triggered_events)

        try:
            records = await self._run(_fetch)
        except _SDK_ERRORS as exc:
            msg = f"cannot read events of {tx_hash} in {block_hash}: {exc}"
            raise MonitorInterruptedError(msg) from exc
        return tuple(_system_event(record) for record in records)

    def _runtime_call(
        self, kind: CallKind, params: Mapping[str, Any]
    ) -> tuple[str, str, dict[str, Any]]:
        """Map builder-level parameters onto the runtime call."""
        value = params.get("value", 0)
        if kind is CallKind.TRANSFER:
            return "Balances", "transfer_keep_alive", {"dest": params["dest"], "value": value}
        if kind is CallKind.STAKE:
            if params.get("bond_extra"):
                return "Staking", "bond_extra", {"max_additional": value}
            return "Staking", "bond", {"value": value, "payee": params.get("payee", "Staked")}
        if kind is CallKind.VOTE:
            vote = {
                "Standard": {
                    "vote": {"aye": params["aye"], "conviction": params["conviction"]},
                    "balance": value,
                }
            }
            return "ConvictionVoting", "vote", {"poll_index": params["poll_index"], "vote": vote}
        if kind is CallKind.BATCH:
            return "Utility", "batch_all", {"calls": [call.raw for call in params["calls"]]}
        if kind is CallKind.CROSS_CHAIN_TRANSFER:
            try:
                account = "0x" + ss58_decode(params["beneficiary"])
            except ValueError as exc:
                raise InvalidCallParamsError(f"invalid beneficiary: {exc}") from exc
            para_id = params["dest_para_id"]
            return (
                "XcmPallet",
                "limited_reserve_transfer_assets",
                {
                    "dest": {"V3": {"parents": 0, "interior": {"X1": {"Parachain": para_id}}}},
                    "beneficiary": {
                        "V3": {
                            "parents": 0,
                            "interior": {"X1": {"AccountId32": {"network": None, "id": account}}},
                        }
                    },
                    "assets": {
                        "V3": [
                            {
                                "id": {"Concrete": {"parents": 0, "interior": "Here"}},
                                "fun": {"Fungible": value},
                            }
                        ]
                    },
                    "fee_asset_item": 0,
                    "weight_limit": "Unlimited",
                },
            )
        raise InvalidCallParamsError(f"unsupported call kind: {kind}")


def _call_value(kind: CallKind, params: Mapping[str, Any]) -> int:
    if kind is CallKind.BATCH:
        return sum(call.value for call in params["calls"])
    return int(params.get("value", 0))
