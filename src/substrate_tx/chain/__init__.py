"""Chain Client boundary — protocol, value types and the substrate adapter."""

from substrate_tx.chain.client import ChainClient, HeadSubscription, StatusSubscription
from substrate_tx.chain.substrate.service import SubstrateChainClient

__all__ = ["ChainClient", "HeadSubscription", "StatusSubscription", "SubstrateChainClient"]
