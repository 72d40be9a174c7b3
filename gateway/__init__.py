"""
StateProof Offchain Lookup

Two-phase request/response exchange that fetches proof bytes from a
gateway and hands them to the verifier.
"""

from .offchain_lookup import (
    OffchainLookup,
    OffchainResolver,
    GatewayClient,
    StorageRequest,
    CALLBACK,
)

__all__ = [
    "OffchainLookup",
    "OffchainResolver",
    "GatewayClient",
    "StorageRequest",
    "CALLBACK",
]
