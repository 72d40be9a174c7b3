"""Shared fixtures for StateProof tests."""

import pytest

from stateproof.core.anchor import StaticAnchorSource
from stateproof.core.hashing import Sha256FieldHash
from stateproof.core.orchestrator import StorageProofVerifier

from proof_world import BLOCK_NUMBER, build_world


@pytest.fixture
def hasher():
    """SHA-256 field hash."""
    return Sha256FieldHash()


@pytest.fixture
def verifier(hasher):
    """Verifier over the test hash."""
    return StorageProofVerifier(hasher)


@pytest.fixture
def world(hasher):
    """Honest storage + contract proof."""
    return build_world(hasher)


@pytest.fixture
def anchor(world):
    """Anchor matching the world's global root and block."""
    return StaticAnchorSource(world.anchor_root, BLOCK_NUMBER)
