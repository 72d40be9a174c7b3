"""
StateProof Chain Integration

Talks to the two chains a verification depends on:
- Ethereum L1 core contract (anchored state root and block number)
- Starknet full node (contract and storage proofs)
"""

from .rpc_client import JsonRpcClient, StarknetProofClient
from .anchor_source import CoreContractAnchorSource

__all__ = [
    "JsonRpcClient",
    "StarknetProofClient",
    "CoreContractAnchorSource",
]
