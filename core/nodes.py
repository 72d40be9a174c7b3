"""
Proof data model.

A proof node is one of two disjoint variants:

- BinaryNode: a single-bit branch committing to two children
- EdgeNode: a path-compressed hop over ``length`` bits to a single child

Proofs are ordered root-to-leaf. Everything here is immutable and validated
on construction, so a value that exists is structurally sound.
"""

from dataclasses import dataclass
from typing import Tuple, Union

from .errors import MalformedProof
from .field import PATH_BITS, to_field_element


@dataclass(frozen=True)
class BinaryNode:
    """Branch node; bit 0 selects left, bit 1 selects right."""
    left: int
    right: int

    def __post_init__(self):
        to_field_element(self.left, "binary.left")
        to_field_element(self.right, "binary.right")


@dataclass(frozen=True)
class EdgeNode:
    """Path-compressed hop of 1..251 bits."""
    child: int
    path: int
    length: int

    def __post_init__(self):
        to_field_element(self.child, "edge.child")
        to_field_element(self.path, "edge.path")
        if (
            not isinstance(self.length, int)
            or isinstance(self.length, bool)
            or not 1 <= self.length <= PATH_BITS
        ):
            raise MalformedProof(f"edge.length out of range: {self.length!r}")


ProofNode = Union[BinaryNode, EdgeNode]
Proof = Tuple[ProofNode, ...]


def as_proof(nodes) -> Proof:
    """
    Freeze a node sequence into a Proof.

    Raises:
        MalformedProof: If any element is not a proof node
    """
    proof = tuple(nodes)
    for index, node in enumerate(proof):
        if not isinstance(node, (BinaryNode, EdgeNode)):
            raise MalformedProof(f"proof[{index}] is not a proof node: {type(node).__name__}")
    return proof


@dataclass(frozen=True)
class EntityRecord:
    """
    Contract state needed to bind a storage proof to the global trie.

    ``address`` keys the contract in the global trie; ``storage_slot`` keys
    the value in the contract's own storage trie.
    """
    class_hash: int
    storage_root: int
    address: int
    storage_slot: int
    nonce: int = 0
    hash_version: int = 0

    def __post_init__(self):
        for name in ("class_hash", "storage_root", "address", "storage_slot", "nonce", "hash_version"):
            to_field_element(getattr(self, name), f"record.{name}")


@dataclass(frozen=True)
class CompositeProof:
    """Everything a single verification call needs besides the anchor."""
    block_number: int
    record: EntityRecord
    contract_proof: Proof
    storage_proof: Proof

    def __post_init__(self):
        if not isinstance(self.block_number, int) or isinstance(self.block_number, bool):
            raise MalformedProof(f"block_number is not an integer: {self.block_number!r}")
        if not isinstance(self.record, EntityRecord):
            raise MalformedProof("record is not an EntityRecord")
        # Accept lists from callers, store tuples.
        object.__setattr__(self, "contract_proof", as_proof(self.contract_proof))
        object.__setattr__(self, "storage_proof", as_proof(self.storage_proof))
