"""
Proof serialization.

Two input formats produce a CompositeProof:

1. StateProof wire format (msgpack, version 1)

       {
         "v": 1,
         "block_number": int,
         "record": {class_hash, storage_root, address, storage_slot,
                    nonce, hash_version},          # 32-byte big-endian each
         "contract_proof": [node, ...],
         "storage_proof": [node, ...],
       }

   where a node is [0, left, right] (binary) or [1, child, path, length]
   (edge). The leading integer is the variant discriminant.

2. The JSON ``result`` of a Starknet full node's ``pathfinder_getProof``.

Anything that does not decode cleanly is a MalformedProof.
"""

import logging
from typing import Any, Dict, List

import msgpack

from .errors import MalformedProof
from .field import felt_from_bytes, felt_to_bytes, parse_felt
from .nodes import BinaryNode, CompositeProof, EdgeNode, EntityRecord, Proof, ProofNode

logger = logging.getLogger(__name__)

WIRE_VERSION = 1

NODE_BINARY = 0
NODE_EDGE = 1

RECORD_FIELDS = ("class_hash", "storage_root", "address", "storage_slot", "nonce", "hash_version")


# ===== WIRE FORMAT =====

def _encode_node(node: ProofNode) -> list:
    if isinstance(node, BinaryNode):
        return [NODE_BINARY, felt_to_bytes(node.left), felt_to_bytes(node.right)]
    return [NODE_EDGE, felt_to_bytes(node.child), felt_to_bytes(node.path), node.length]


def _decode_node(item: Any, where: str) -> ProofNode:
    if not isinstance(item, (list, tuple)) or not item:
        raise MalformedProof(f"{where} is not a node array")
    tag = item[0]
    if tag == NODE_BINARY and len(item) == 3:
        return BinaryNode(
            left=felt_from_bytes(item[1], f"{where}.left"),
            right=felt_from_bytes(item[2], f"{where}.right"),
        )
    if tag == NODE_EDGE and len(item) == 4:
        return EdgeNode(
            child=felt_from_bytes(item[1], f"{where}.child"),
            path=felt_from_bytes(item[2], f"{where}.path"),
            length=item[3],
        )
    raise MalformedProof(f"{where} has unknown discriminant or arity: {tag!r}/{len(item)}")


def _decode_nodes(items: Any, name: str) -> Proof:
    if not isinstance(items, (list, tuple)):
        raise MalformedProof(f"{name} is not a list")
    return tuple(_decode_node(item, f"{name}[{i}]") for i, item in enumerate(items))


def encode_composite_proof(proof: CompositeProof) -> bytes:
    """Serialize a composite proof to the msgpack wire format."""
    return msgpack.packb({
        "v": WIRE_VERSION,
        "block_number": proof.block_number,
        "record": {name: felt_to_bytes(getattr(proof.record, name)) for name in RECORD_FIELDS},
        "contract_proof": [_encode_node(n) for n in proof.contract_proof],
        "storage_proof": [_encode_node(n) for n in proof.storage_proof],
    }, use_bin_type=True)


def decode_composite_proof(data: bytes) -> CompositeProof:
    """
    Deserialize a composite proof from the msgpack wire format.

    Raises:
        MalformedProof: On any encoding, version, width or range violation
    """
    try:
        d = msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, msgpack.UnpackException) as e:
        raise MalformedProof(f"undecodable proof bytes: {e}") from e

    if not isinstance(d, dict):
        raise MalformedProof("proof payload is not a map")
    if d.get("v") != WIRE_VERSION:
        raise MalformedProof(f"unsupported wire version: {d.get('v')!r}")

    record = d.get("record")
    if not isinstance(record, dict):
        raise MalformedProof("record is missing")
    missing = [name for name in RECORD_FIELDS if name not in record]
    if missing:
        raise MalformedProof(f"record is missing fields: {', '.join(missing)}")

    return CompositeProof(
        block_number=d.get("block_number"),
        record=EntityRecord(**{
            name: felt_from_bytes(record[name], f"record.{name}") for name in RECORD_FIELDS
        }),
        contract_proof=_decode_nodes(d.get("contract_proof"), "contract_proof"),
        storage_proof=_decode_nodes(d.get("storage_proof"), "storage_proof"),
    )


# ===== FULL NODE JSON =====

def _decode_json_node(item: Any, where: str) -> ProofNode:
    if not isinstance(item, dict) or len(item) != 1:
        raise MalformedProof(f"{where} must hold exactly one of 'binary' or 'edge'")
    if "binary" in item:
        body = item["binary"]
        return BinaryNode(
            left=parse_felt(body["left"], f"{where}.left"),
            right=parse_felt(body["right"], f"{where}.right"),
        )
    if "edge" in item:
        body = item["edge"]
        return EdgeNode(
            child=parse_felt(body["child"], f"{where}.child"),
            path=parse_felt(body["path"]["value"], f"{where}.path"),
            length=body["path"]["len"],
        )
    raise MalformedProof(f"{where} has unknown node type: {list(item)}")


def decode_json_proof(items: List[Dict[str, Any]], name: str = "proof") -> Proof:
    """Decode a full node proof list (``[{"binary": ...} | {"edge": ...}]``)."""
    if not isinstance(items, list):
        raise MalformedProof(f"{name} is not a list")
    try:
        return tuple(_decode_json_node(item, f"{name}[{i}]") for i, item in enumerate(items))
    except (KeyError, TypeError) as e:
        raise MalformedProof(f"{name} has a malformed node: {e}") from e


def decode_getproof_result(
    result: Dict[str, Any],
    block_number: int,
    address: int,
    storage_slot: int,
) -> CompositeProof:
    """
    Build a CompositeProof from a ``pathfinder_getProof`` result.

    Args:
        result: JSON-RPC ``result`` member
        block_number: Block the proof was requested at
        address: Contract address the proof was requested for
        storage_slot: Storage key the proof was requested for

    Raises:
        MalformedProof: Missing contract data or malformed nodes
    """
    if not isinstance(result, dict):
        raise MalformedProof("getProof result is not an object")

    contract_data = result.get("contract_data")
    if not contract_data or not isinstance(contract_data, dict):
        raise MalformedProof(f"no contract data for {hex(address)} (contract not deployed?)")

    storage_proofs = contract_data.get("storage_proofs") or []
    if not isinstance(storage_proofs, list):
        raise MalformedProof("storage_proofs is not a list")
    if len(storage_proofs) != 1:
        raise MalformedProof(f"expected one storage proof, got {len(storage_proofs)}")

    try:
        record = EntityRecord(
            class_hash=parse_felt(contract_data["class_hash"], "class_hash"),
            storage_root=parse_felt(contract_data["root"], "root"),
            address=address,
            storage_slot=storage_slot,
            nonce=parse_felt(contract_data["nonce"], "nonce"),
            hash_version=parse_felt(contract_data.get("contract_state_hash_version", "0x0"),
                                    "contract_state_hash_version"),
        )
    except KeyError as e:
        raise MalformedProof(f"contract data is missing {e}") from e

    logger.debug(f"Decoded getProof result for {hex(address)[:18]}... at block {block_number}")

    return CompositeProof(
        block_number=block_number,
        record=record,
        contract_proof=decode_json_proof(result.get("contract_proof"), "contract_proof"),
        storage_proof=decode_json_proof(storage_proofs[0], "storage_proof"),
    )


def composite_proof_to_json(proof: CompositeProof) -> Dict[str, Any]:
    """Hex-string JSON view of a composite proof, in getProof node shape."""
    def node_json(node: ProofNode) -> Dict[str, Any]:
        if isinstance(node, BinaryNode):
            return {"binary": {"left": hex(node.left), "right": hex(node.right)}}
        return {"edge": {"child": hex(node.child), "path": {"value": hex(node.path), "len": node.length}}}

    return {
        "block_number": proof.block_number,
        "address": hex(proof.record.address),
        "storage_slot": hex(proof.record.storage_slot),
        "contract_proof": [node_json(n) for n in proof.contract_proof],
        "contract_data": {
            "class_hash": hex(proof.record.class_hash),
            "nonce": hex(proof.record.nonce),
            "root": hex(proof.record.storage_root),
            "contract_state_hash_version": hex(proof.record.hash_version),
            "storage_proofs": [[node_json(n) for n in proof.storage_proof]],
        },
    }
