"""
Merkle-Patricia trie proof verification.

Replays a root-to-leaf walk through a 251-bit path-compressed binary trie.
Every hop's commitment is recomputed from the node's own fields and must
equal the pointer handed down by its parent (the root for the first hop).
Binary nodes consume one path bit, edge nodes consume ``length`` bits that
must match the target path. A proof is accepted only when exactly 251 bits
are consumed by exactly the nodes supplied.
"""

import logging

from .bitpath import bit_at, bits_equal
from .errors import HashMismatch, IncompleteProof, MalformedProof, PathMismatch
from .field import TOP_BIT_INDEX, to_field_element
from .hashing import HashProvider, commitment_of
from .nodes import BinaryNode, EdgeNode, as_proof

logger = logging.getLogger(__name__)


def verify_trie_proof(root_hash: int, target_path: int, proof, hasher: HashProvider) -> int:
    """
    Verify a membership proof and return the leaf value.

    Args:
        root_hash: Trusted root of the trie
        target_path: 251-bit key being proven
        proof: Root-to-leaf sequence of BinaryNode / EdgeNode
        hasher: Trie hash primitive

    Returns:
        The verified leaf value

    Raises:
        MalformedProof: Empty proof, non-node element, or unread trailing nodes
        HashMismatch: A node does not hash to its parent's pointer
        PathMismatch: An edge leaves the target path
        IncompleteProof: The walk did not consume exactly 251 bits
    """
    to_field_element(root_hash, "root_hash")
    to_field_element(target_path, "target_path")
    proof = as_proof(proof)
    if not proof:
        raise MalformedProof("proof is empty")

    cursor = root_hash
    bit_index = TOP_BIT_INDEX
    i = 0

    while bit_index >= 0 and i < len(proof):
        node = proof[i]

        if commitment_of(node, hasher) != cursor:
            raise HashMismatch(f"node {i} does not hash to {hex(cursor)}")

        if isinstance(node, BinaryNode):
            cursor = node.right if bit_at(target_path, bit_index) else node.left
            bit_index -= 1
        elif isinstance(node, EdgeNode):
            if node.length > bit_index + 1:
                raise IncompleteProof(
                    f"edge {i} spans {node.length} bits, only {bit_index + 1} remain"
                )
            if not bits_equal(target_path, node.path, bit_index, node.length):
                raise PathMismatch(f"edge {i} diverges from target path at bit {bit_index}")
            cursor = node.child
            bit_index -= node.length

        i += 1

    if i < len(proof):
        raise MalformedProof(f"{len(proof) - i} proof node(s) left after the path was exhausted")
    if bit_index != -1:
        raise IncompleteProof(f"proof ended with {bit_index + 1} path bit(s) unconsumed")

    logger.debug(f"Verified {len(proof)}-node proof for path {hex(target_path)[:18]}...")
    return cursor
