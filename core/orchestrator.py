"""
Two-tier storage proof verification.

A storage value is accepted only when:

1. the proof is pinned to the anchor's block number
2. the value verifies against the contract's own storage root
3. the contract's state commitment, rebuilt from that same storage root,
   verifies against the anchored global root

Step 3 is what ties the storage root to the anchor; without it an attacker
could present a valid storage proof under a storage root of their choosing.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .anchor import AnchorSource
from .errors import (
    AnchorUnavailable,
    MalformedProof,
    RootMismatch,
    StaleOrInvalidRoot,
    StateProofError,
    VERIFICATION_ERRORS,
)
from .field import is_field_element
from .hashing import HashProvider, state_commitment
from .nodes import CompositeProof, EntityRecord, as_proof
from .trie_verifier import verify_trie_proof

logger = logging.getLogger(__name__)


class ProofStatus(Enum):
    """Outcome of a verification call."""
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class VerificationResult:
    """Non-raising summary of one verification call."""

    status: ProofStatus
    block_number: int
    address: int
    storage_slot: int
    value: Optional[int] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    verification_time: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.status == ProofStatus.VALID

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "block_number": self.block_number,
            "address": hex(self.address),
            "storage_slot": hex(self.storage_slot),
            "value": hex(self.value) if self.value is not None else None,
            "error_code": self.error_code,
            "error": self.error,
            "verification_time_ms": round(self.verification_time * 1000, 3),
        }


class StorageProofVerifier:
    """
    Stateless verifier bound to one hash primitive.

    Safe to share between threads; nothing is mutated after construction.
    """

    def __init__(self, hasher: HashProvider):
        """
        Initialize verifier.

        Args:
            hasher: Trie hash primitive (Pedersen for Starknet)
        """
        self.hasher = hasher

    def verified_value(
        self,
        block_number: int,
        record: EntityRecord,
        contract_proof,
        storage_proof,
        anchor_root: int,
        anchor_block_number: int,
    ) -> int:
        """
        Verify one storage value against an anchored global root.

        Args:
            block_number: Block the proof was generated at
            record: Contract state (class hash, storage root, keys, nonce, version)
            contract_proof: Global trie proof for record.address
            storage_proof: Storage trie proof for record.storage_slot
            anchor_root: Trusted global root
            anchor_block_number: Block number of the trusted root

        Returns:
            The verified storage value

        Raises:
            StateProofError: Any verification failure (see core.errors)
        """
        contract_proof = as_proof(contract_proof)
        storage_proof = as_proof(storage_proof)
        if not contract_proof or not storage_proof:
            raise MalformedProof("contract and storage proofs must both be non-empty")

        if (
            not isinstance(anchor_block_number, int)
            or isinstance(anchor_block_number, bool)
            or anchor_block_number <= 0
        ):
            raise StaleOrInvalidRoot(f"anchor block number is not positive: {anchor_block_number!r}")
        if block_number != anchor_block_number:
            raise StaleOrInvalidRoot(
                f"proof block {block_number} does not match anchor block {anchor_block_number}"
            )
        if not is_field_element(anchor_root):
            raise StaleOrInvalidRoot(f"anchor root is not a field element: {anchor_root!r}")

        leaf_commitment = state_commitment(
            record.class_hash,
            record.storage_root,
            record.nonce,
            record.hash_version,
            self.hasher,
        )
        if leaf_commitment == 0:
            raise MalformedProof("contract state commitment is zero")

        storage_value = verify_trie_proof(
            record.storage_root, record.storage_slot, storage_proof, self.hasher
        )
        expected_leaf = verify_trie_proof(
            anchor_root, record.address, contract_proof, self.hasher
        )

        if leaf_commitment != expected_leaf:
            raise RootMismatch(
                f"state commitment {hex(leaf_commitment)} is not the leaf "
                f"{hex(expected_leaf)} committed under the anchored root"
            )

        logger.debug(
            f"Verified slot {hex(record.storage_slot)[:18]}... of "
            f"{hex(record.address)[:18]}... at block {block_number}"
        )
        return storage_value

    def verify(self, proof: CompositeProof, anchor: AnchorSource) -> int:
        """
        Verify a composite proof against the anchor's current root.

        The anchor is read once, before any proof work starts.
        """
        anchor_root, anchor_block_number = self._read_anchor(anchor)
        return self.verified_value(
            proof.block_number,
            proof.record,
            proof.contract_proof,
            proof.storage_proof,
            anchor_root,
            anchor_block_number,
        )

    def check(self, proof: CompositeProof, anchor: AnchorSource) -> VerificationResult:
        """
        Verify and summarise instead of raising on verification failure.

        Only verification failures are folded into the result; anything
        else still propagates.

        Raises:
            ConfigurationError: The hash provider is missing or broken
        """
        start_time = time.time()
        try:
            value = self.verify(proof, anchor)
        except VERIFICATION_ERRORS as e:
            logger.warning(f"Rejected proof for {hex(proof.record.address)[:18]}...: {e.code}: {e.message}")
            return VerificationResult(
                status=ProofStatus.INVALID,
                block_number=proof.block_number,
                address=proof.record.address,
                storage_slot=proof.record.storage_slot,
                error_code=e.code,
                error=e.message,
                verification_time=time.time() - start_time,
            )

        verification_time = time.time() - start_time
        logger.info(
            f"Verified proof for {hex(proof.record.address)[:18]}... "
            f"in {verification_time*1000:.2f}ms: VALID"
        )
        return VerificationResult(
            status=ProofStatus.VALID,
            block_number=proof.block_number,
            address=proof.record.address,
            storage_slot=proof.record.storage_slot,
            value=value,
            verification_time=verification_time,
        )

    @staticmethod
    def _read_anchor(anchor: AnchorSource):
        try:
            return anchor.current_root(), anchor.current_block_number()
        except StateProofError:
            raise
        except Exception as e:
            raise AnchorUnavailable(f"anchor source failed: {e}") from e
