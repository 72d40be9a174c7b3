"""
Hash primitives and the canonical commitment formulas.

The trie hash is a pluggable two-input function over the Stark field:

- PedersenHash: the Starknet primitive, via starknet-py
- Sha256FieldHash: SHA-256 reduced into the field, for development and tests

Commitments:

- Binary node:  hash(left, right)
- Edge node:    (hash(child, path) + length) mod P
- State leaf:   hash(hash(hash(class_hash, storage_root), nonce), hash_version)
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Dict, Type

from .errors import ConfigurationError, StateProofError
from .field import FELT_BYTES, STARK_PRIME, is_field_element
from .nodes import BinaryNode, EdgeNode, ProofNode

logger = logging.getLogger(__name__)

try:
    from starknet_py.hash.utils import pedersen_hash as _pedersen_hash
    PEDERSEN_AVAILABLE = True
except ImportError:
    logger.warning("starknet-py not installed. Pedersen hash disabled. Install with: pip install stateproof[starknet]")
    PEDERSEN_AVAILABLE = False
    _pedersen_hash = None


class HashProvider(ABC):
    """
    Two-input collision-resistant hash over the Stark field.

    Implementations must be deterministic and return a field element.
    """

    name = "abstract"

    @abstractmethod
    def hash(self, a: int, b: int) -> int:
        """
        Hash two field elements.

        Args:
            a: First input
            b: Second input

        Returns:
            Field element
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PedersenHash(HashProvider):
    """Starknet Pedersen hash (starknet-py)."""

    name = "pedersen"

    def __init__(self):
        if not PEDERSEN_AVAILABLE:
            raise ConfigurationError(
                "Pedersen hash requires starknet-py (pip install stateproof[starknet])"
            )

    def hash(self, a: int, b: int) -> int:
        return _pedersen_hash(a, b)


class Sha256FieldHash(HashProvider):
    """
    SHA-256 of both inputs (32-byte big-endian each), reduced mod P.

    Not Starknet compatible; proofs built with it only verify against
    tries built with it.
    """

    name = "sha256"

    def __init__(self, domain: bytes = b""):
        self.domain = domain

    def hash(self, a: int, b: int) -> int:
        digest = hashlib.sha256(
            self.domain + a.to_bytes(FELT_BYTES, "big") + b.to_bytes(FELT_BYTES, "big")
        ).digest()
        return int.from_bytes(digest, "big") % STARK_PRIME

    def __repr__(self) -> str:
        return f"Sha256FieldHash(domain={self.domain!r})"


HASH_PROVIDERS: Dict[str, Type[HashProvider]] = {
    PedersenHash.name: PedersenHash,
    Sha256FieldHash.name: Sha256FieldHash,
}


def get_hash_provider(name: str) -> HashProvider:
    """
    Instantiate a hash provider by name.

    Raises:
        ConfigurationError: Unknown name or provider unavailable
    """
    provider_cls = HASH_PROVIDERS.get(name.lower())
    if provider_cls is None:
        raise ConfigurationError(f"Unknown hash provider: {name}")
    return provider_cls()


def checked_hash(hasher: HashProvider, a: int, b: int) -> int:
    """
    Call the provider and insist on a field element back.

    Any provider failure is a misconfiguration, never a proof failure.
    """
    if hasher is None:
        raise ConfigurationError("No hash provider configured")
    try:
        result = hasher.hash(a, b)
    except StateProofError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Hash provider {hasher!r} failed: {e}") from e
    if not is_field_element(result):
        raise ConfigurationError(f"Hash provider {hasher!r} returned a non-field value: {result!r}")
    return result


def commitment_of(node: ProofNode, hasher: HashProvider) -> int:
    """Canonical commitment of a proof node."""
    if isinstance(node, BinaryNode):
        return checked_hash(hasher, node.left, node.right)
    if isinstance(node, EdgeNode):
        return (checked_hash(hasher, node.child, node.path) + node.length) % STARK_PRIME
    raise TypeError(f"Not a proof node: {type(node).__name__}")


def state_commitment(
    class_hash: int,
    storage_root: int,
    nonce: int,
    hash_version: int,
    hasher: HashProvider,
) -> int:
    """Leaf value the global trie stores for a contract."""
    h = checked_hash(hasher, class_hash, storage_root)
    h = checked_hash(hasher, h, nonce)
    return checked_hash(hasher, h, hash_version)
