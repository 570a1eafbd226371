"""substrate-tx — build, send and watch Substrate transactions from the shell.

    # Interactive balance transfer (prompts for network, secret, recipient, amount)
    substrate-tx transfer

    # Wait until a transaction hash appears in a finalized block
    substrate-tx watch <tx_hash> [timeout_s]

Settings come from ``SUBSTRATE_TX_*`` environment variables or the YAML file
named by ``SUBSTRATE_TX_CONFIG_PATH``. The secret must be a 32-byte hex seed
(``0x`` followed by 64 hex characters).
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from decimal import Decimal, InvalidOperation
from getpass import getpass
from typing import TYPE_CHECKING

from substrate_tx.chain.substrate.service import SubstrateChainClient
from substrate_tx.config.settings import AppConfig, Network
from substrate_tx.errors.tx_errors import InvalidAmountError, TxError
from substrate_tx.metrics.collector import TxMetrics
from substrate_tx.tx.service import TransactionService
from substrate_tx.tx.units import to_smallest_unit

if TYPE_CHECKING:
    from substrate_tx.config.settings import ChainConfig

logger = logging.getLogger(__name__)

_SEED_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

NETWORK_CHOICES = {"1": Network.POLKADOT, "2": Network.WESTEND}


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def validate_transfer_input(secret: str, recipient: str, amount: str, decimals: int) -> list[str]:
    """Check interactive input before any connection is opened.

    Returns a list of human-readable problems; empty when the input is usable.
    """
    errors: list[str] = []
    if not _SEED_RE.match(secret):
        errors.append("Secret must be 0x followed by 64 hex characters")
    if not recipient.strip():
        errors.append("Recipient address is required")
    try:
        value = Decimal(amount.strip())
    except InvalidOperation:
        errors.append(f"Amount is not a number: {amount!r}")
        return errors
    if not value.is_finite() or value <= 0:
        errors.append("Amount must be a positive number")
        return errors
    try:
        to_smallest_unit(value, decimals)
    except InvalidAmountError as exc:
        errors.append(exc.message)
    return errors


def _choose_network(choice: str) -> Network | None:
    choice = choice.strip().lower()
    if not choice:
        return Network.WESTEND
    if choice in NETWORK_CHOICES:
        return NETWORK_CHOICES[choice]
    try:
        return Network(choice)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _print_error(exc: TxError) -> None:
    print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)


def _build_service(
    config: AppConfig, chain: ChainConfig
) -> tuple[SubstrateChainClient, TransactionService]:
    metrics: TxMetrics | None = None
    if config.metrics.enabled:
        metrics = TxMetrics()
        metrics.serve(config.metrics.port)
    logger.debug("Using %s endpoint %s", chain.network, chain.resolved_url)
    client = SubstrateChainClient(chain)
    service = TransactionService(
        client,
        metrics=metrics,
        decimals=chain.decimals,
        symbol=chain.resolved_token_symbol,
    )
    return client, service


def _cmd_transfer(config: AppConfig) -> int:
    """Prompt for a transfer, confirm it and send it."""
    print("Networks: 1) Polkadot  2) Westend")
    network = _choose_network(input("Network [2]: "))
    if network is None:
        print("Error: unknown network", file=sys.stderr)
        return 1
    chain = config.chain.model_copy(update={"network": network})

    secret = getpass("Secret seed (0x...): ").strip()
    recipient = input("Recipient address: ").strip()
    amount = input(f"Amount ({chain.resolved_token_symbol}): ").strip()

    errors = validate_transfer_input(secret, recipient, amount, chain.decimals)
    if errors:
        print("Invalid input:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    planck = to_smallest_unit(amount, chain.decimals)

    async def _run() -> int:
        client, service = _build_service(config, chain)
        try:
            await client.connect()
            prepared = await service.prepare(secret, recipient, planck)
            summary = service.describe(prepared)
            print()
            print(f"From:          {summary['from']}")
            print(f"To:            {summary['to']}")
            print(f"Amount:        {summary['amount']}")
            print(f"Estimated Fee: {summary['estimated_fee']}")
            print()
            if input("Send transaction? [y/N]: ").strip().lower() not in ("y", "yes"):
                print("Aborted.")
                return 1
            outcome = await service.send(
                prepared, on_update=lambda o: print(f"  status: {o.status}")
            )
            outcome.raise_for_outcome()
            print(f"Transaction succeeded: {outcome.tx_hash}")
            print(f"Block: {outcome.block_hash}")
            return 0
        except TxError as exc:
            _print_error(exc)
            return 1
        finally:
            await client.close()

    return asyncio.run(_run())


def _cmd_watch(config: AppConfig, tx_hash: str, timeout: float | None) -> int:
    """Wait for *tx_hash* in a finalized block and print where it landed."""

    async def _run() -> int:
        client, service = _build_service(config, config.chain)
        try:
            await client.connect()
            print(f"Watching {client.chain_name} for {tx_hash} ...")
            record = await service.watch(tx_hash, timeout)
            print(f"Included in block #{record.block_number} ({record.block_hash})")
            print(f"Extrinsic index: {record.extrinsic_index}")
            return 0
        except TxError as exc:
            _print_error(exc)
            return 1
        finally:
            await client.close()

    return asyncio.run(_run())


def _configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=config.effective_log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # substrate-interface logs every RPC frame at DEBUG
    if not config.debug:
        logging.getLogger("substrateinterface").setLevel(logging.WARNING)


def main() -> None:
    """CLI entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    config = AppConfig()
    _configure_logging(config)
    cmd = sys.argv[1].lower()

    if cmd == "transfer":
        code = _cmd_transfer(config)
    elif cmd == "watch":
        if len(sys.argv) < 3:
            print("Usage: substrate-tx watch <tx_hash> [timeout_s]")
            sys.exit(1)
        try:
            timeout = float(sys.argv[3]) if len(sys.argv) > 3 else None
        except ValueError:
            print(f"Invalid timeout: {sys.argv[3]}")
            sys.exit(1)
        code = _cmd_watch(config, sys.argv[2], timeout)
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
