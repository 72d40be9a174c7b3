"""
Honest two-tier proofs for tests.

Tries are built with the reference prover over the SHA-256 field hash so
the suite runs without starknet-py.
"""

import random
from dataclasses import dataclass

from stateproof.core.hashing import state_commitment
from stateproof.core.nodes import CompositeProof, EntityRecord
from stateproof.core.trie_builder import PatriciaTrie


BLOCK_NUMBER = 812345


@dataclass
class ProofWorld:
    """A storage trie, a global trie committing to it, and a proof into both."""
    storage_trie: PatriciaTrie
    contract_trie: PatriciaTrie
    record: EntityRecord
    proof: CompositeProof
    value: int

    @property
    def anchor_root(self) -> int:
        return self.contract_trie.root


def random_keys(seed: int, count: int):
    rng = random.Random(seed)
    keys = set()
    while len(keys) < count:
        keys.add(rng.getrandbits(251))
    return sorted(keys)


def build_world(hasher, seed: int = 7, storage_size: int = 12, contract_count: int = 9) -> ProofWorld:
    """Build an honest proof for one slot of one contract."""
    rng = random.Random(seed)
    slots = random_keys(seed, storage_size)
    storage_trie = PatriciaTrie({slot: rng.getrandbits(200) + 1 for slot in slots}, hasher)

    slot = slots[storage_size // 2]
    addresses = random_keys(seed + 1, contract_count)
    address = addresses[contract_count // 3]

    record = EntityRecord(
        class_hash=rng.getrandbits(250),
        storage_root=storage_trie.root,
        address=address,
        storage_slot=slot,
        nonce=5,
        hash_version=0,
    )
    leaf = state_commitment(record.class_hash, record.storage_root, record.nonce, record.hash_version, hasher)

    contract_leaves = {a: rng.getrandbits(250) + 1 for a in addresses}
    contract_leaves[address] = leaf
    contract_trie = PatriciaTrie(contract_leaves, hasher)

    proof = CompositeProof(
        block_number=BLOCK_NUMBER,
        record=record,
        contract_proof=contract_trie.prove(address),
        storage_proof=storage_trie.prove(slot),
    )
    return ProofWorld(storage_trie, contract_trie, record, proof, storage_trie.get(slot))
