"""
Verifier configuration.

One immutable object, built once (usually from the environment) and passed
to whatever needs it. Nothing in the verifier reads globals.
"""

import os
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .hashing import get_hash_provider
from .orchestrator import StorageProofVerifier


# Starknet core contract on Goerli
DEFAULT_CORE_CONTRACT = "0xde29d060D45901Fb19ED6C6e959EB22d8626708e"


class VerifierConfig(BaseModel):
    """StateProof configuration."""

    model_config = ConfigDict(frozen=True)

    hash_provider: str = Field(
        default="pedersen",
        description="Trie hash primitive (pedersen, sha256)"
    )

    # Chain endpoints
    starknet_rpc_url: str = Field(
        default="http://127.0.0.1:9545/rpc/v0.4",
        description="Starknet full node JSON-RPC endpoint (serves getProof)"
    )
    l1_rpc_url: str = Field(
        default="http://127.0.0.1:8545",
        description="Ethereum JSON-RPC endpoint hosting the core contract"
    )
    core_contract_address: str = Field(
        default=DEFAULT_CORE_CONTRACT,
        description="L1 core contract publishing stateRoot/stateBlockNumber"
    )

    # Offchain lookup
    resolver_address: str = Field(
        default="0x0",
        description="Address reported as the lookup sender"
    )
    gateway_urls: List[str] = Field(
        default_factory=lambda: ["http://127.0.0.1:8002/api/v1/proof/{sender}/{data}.json"],
        description="EIP-3668 URL templates; {sender} and {data} are substituted"
    )

    request_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")

    @classmethod
    def from_env(cls) -> "VerifierConfig":
        """Build configuration from STATEPROOF_* environment variables."""
        defaults = cls()
        gateways = os.getenv("STATEPROOF_GATEWAY_URLS")
        return cls(
            hash_provider=os.getenv("STATEPROOF_HASH", defaults.hash_provider),
            starknet_rpc_url=os.getenv("STATEPROOF_STARKNET_RPC", defaults.starknet_rpc_url),
            l1_rpc_url=os.getenv("STATEPROOF_L1_RPC", defaults.l1_rpc_url),
            core_contract_address=os.getenv("STATEPROOF_CORE_CONTRACT", defaults.core_contract_address),
            resolver_address=os.getenv("STATEPROOF_RESOLVER", defaults.resolver_address),
            gateway_urls=(
                [u.strip() for u in gateways.split(",") if u.strip()]
                if gateways else defaults.gateway_urls
            ),
            request_timeout=float(os.getenv("STATEPROOF_TIMEOUT", str(defaults.request_timeout))),
        )


def build_verifier(config: VerifierConfig) -> StorageProofVerifier:
    """Verifier wired with the configured hash primitive."""
    return StorageProofVerifier(get_hash_provider(config.hash_provider))
