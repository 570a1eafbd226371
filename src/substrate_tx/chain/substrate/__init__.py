"""substrate-interface implementation of the Chain Client."""

from substrate_tx.chain.substrate.service import SubstrateChainClient
from substrate_tx.chain.substrate.subscription import ThreadedSubscription

__all__ = ["SubstrateChainClient", "ThreadedSubscription"]
