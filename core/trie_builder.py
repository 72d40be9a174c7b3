"""
Reference prover: build a 251-bit Merkle-Patricia trie and extract proofs.

Mirrors the structure a Starknet full node commits to. Runs of bits shared
by every key below a node collapse into a single edge; a node whose keys
split on the next bit becomes a binary node. Leaves hold the stored value
directly.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .field import PATH_BITS, to_field_element
from .hashing import HashProvider, commitment_of
from .nodes import BinaryNode, EdgeNode, Proof

logger = logging.getLogger(__name__)


@dataclass
class _Binary:
    left: "_Subtree"
    right: "_Subtree"
    node: BinaryNode
    commitment: int


@dataclass
class _Edge:
    child: "_Subtree"
    node: EdgeNode
    commitment: int


@dataclass
class _Leaf:
    value: int

    @property
    def commitment(self) -> int:
        return self.value


_Subtree = Union[_Binary, _Edge, _Leaf]


class PatriciaTrie:
    """
    Immutable trie over {key: value}.

    Values must be non-zero; a zero leaf is indistinguishable from an
    absent one.
    """

    def __init__(self, entries: Dict[int, int], hasher: HashProvider):
        if not entries:
            raise ValueError("Cannot build a trie with no entries")
        for key, value in entries.items():
            to_field_element(key, "key")
            to_field_element(value, "value")
            if value == 0:
                raise ValueError(f"Zero value for key {hex(key)}")
            if key >= 1 << PATH_BITS:
                raise ValueError(f"Key wider than {PATH_BITS} bits: {hex(key)}")

        self.hasher = hasher
        self.entries = dict(entries)
        self._tree = self._build(sorted(self.entries), PATH_BITS)

        logger.debug(f"Built trie with {len(self.entries)} entries, root {hex(self.root)[:18]}...")

    @property
    def root(self) -> int:
        return self._tree.commitment

    def _build(self, keys: List[int], height: int) -> _Subtree:
        """Build the subtree holding ``keys`` with ``height`` path bits left."""
        if height == 0:
            return _Leaf(self.entries[keys[0]])

        common = self._common_prefix_length(keys, height)
        if common > 0:
            mask = (1 << height) - 1
            # Edge path is the shared run, right-aligned.
            path = (keys[0] & mask) >> (height - common)
            child = self._build(keys, height - common)
            node = EdgeNode(child=child.commitment, path=path, length=common)
            return _Edge(child, node, commitment_of(node, self.hasher))

        split_bit = height - 1
        left_keys = [k for k in keys if not (k >> split_bit) & 1]
        right_keys = [k for k in keys if (k >> split_bit) & 1]
        left = self._build(left_keys, height - 1)
        right = self._build(right_keys, height - 1)
        node = BinaryNode(left=left.commitment, right=right.commitment)
        return _Binary(left, right, node, commitment_of(node, self.hasher))

    @staticmethod
    def _common_prefix_length(keys: List[int], height: int) -> int:
        """Leading bits (of the low ``height``) shared by all keys."""
        if len(keys) == 1:
            return height
        mask = (1 << height) - 1
        first = keys[0] & mask
        diff = 0
        for key in keys[1:]:
            diff |= first ^ (key & mask)
        return height - diff.bit_length()

    def get(self, key: int) -> Optional[int]:
        return self.entries.get(key)

    def prove(self, key: int) -> Proof:
        """
        Root-to-leaf proof for a stored key.

        Raises:
            KeyError: If the key is not in the trie
        """
        if key not in self.entries:
            raise KeyError(hex(key))

        proof = []
        subtree = self._tree
        height = PATH_BITS
        while not isinstance(subtree, _Leaf):
            if isinstance(subtree, _Binary):
                proof.append(subtree.node)
                height -= 1
                subtree = subtree.right if (key >> height) & 1 else subtree.left
            else:
                proof.append(subtree.node)
                height -= subtree.node.length
                subtree = subtree.child
        return tuple(proof)
