"""
Anchor sources: where the trusted global root and its block number come from.

The verifier never owns an anchor; it reads one per call.
"""

from abc import ABC, abstractmethod

from .field import to_field_element


class AnchorSource(ABC):
    """Read-only view of an externally attested (root, block number) pair."""

    @abstractmethod
    def current_root(self) -> int:
        """Latest anchored global trie root."""
        pass

    @abstractmethod
    def current_block_number(self) -> int:
        """Block number the root belongs to."""
        pass


class StaticAnchorSource(AnchorSource):
    """Fixed anchor, e.g. a root read out of band or a test fixture."""

    def __init__(self, root: int, block_number: int):
        self.root = to_field_element(root, "anchor_root")
        self.block_number = block_number

    def current_root(self) -> int:
        return self.root

    def current_block_number(self) -> int:
        return self.block_number

    def __repr__(self) -> str:
        return f"StaticAnchorSource(root={hex(self.root)}, block_number={self.block_number})"
