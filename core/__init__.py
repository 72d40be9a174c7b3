"""
StateProof Core Module

Stateless verification of remote-chain storage values:
- Field and bit-path helpers (251-bit Stark field)
- Pluggable trie hash (Pedersen, SHA-256)
- Merkle-Patricia trie proof verification
- Two-tier storage/contract verification against an anchored root
- Wire codec and reference prover
"""

from stateproof.core.errors import (
    StateProofError,
    ConfigurationError,
    MalformedProof,
    HashMismatch,
    PathMismatch,
    IncompleteProof,
    RootMismatch,
    StaleOrInvalidRoot,
    AnchorUnavailable,
    RpcError,
    GatewayError,
)
from stateproof.core.field import STARK_PRIME, PATH_BITS
from stateproof.core.nodes import BinaryNode, EdgeNode, EntityRecord, CompositeProof
from stateproof.core.hashing import (
    HashProvider,
    PedersenHash,
    Sha256FieldHash,
    get_hash_provider,
    commitment_of,
    state_commitment,
)
from stateproof.core.bitpath import bits_equal, extract_bits
from stateproof.core.trie_verifier import verify_trie_proof
from stateproof.core.anchor import AnchorSource, StaticAnchorSource
from stateproof.core.orchestrator import StorageProofVerifier, VerificationResult, ProofStatus
from stateproof.core.config import VerifierConfig, build_verifier
from stateproof.core.codec import encode_composite_proof, decode_composite_proof, decode_getproof_result
from stateproof.core.trie_builder import PatriciaTrie

__all__ = [
    "StateProofError",
    "ConfigurationError",
    "MalformedProof",
    "HashMismatch",
    "PathMismatch",
    "IncompleteProof",
    "RootMismatch",
    "StaleOrInvalidRoot",
    "AnchorUnavailable",
    "RpcError",
    "GatewayError",
    "STARK_PRIME",
    "PATH_BITS",
    "BinaryNode",
    "EdgeNode",
    "EntityRecord",
    "CompositeProof",
    "HashProvider",
    "PedersenHash",
    "Sha256FieldHash",
    "get_hash_provider",
    "commitment_of",
    "state_commitment",
    "bits_equal",
    "extract_bits",
    "verify_trie_proof",
    "AnchorSource",
    "StaticAnchorSource",
    "StorageProofVerifier",
    "VerificationResult",
    "ProofStatus",
    "VerifierConfig",
    "build_verifier",
    "encode_composite_proof",
    "decode_composite_proof",
    "decode_getproof_result",
    "PatriciaTrie",
]
