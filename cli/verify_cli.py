#!/usr/bin/env python3
"""
StateProof Command Line Tool

Commands:
- verify: Verify a proof file against an anchor root and block number
- fetch: Fetch a proof from a Starknet full node and save it
- demo: Build two tries locally and verify a proof end to end
"""

import argparse
import json
import sys
from pathlib import Path

from stateproof.blockchain.rpc_client import StarknetProofClient
from stateproof.core.anchor import StaticAnchorSource
from stateproof.core.codec import (
    composite_proof_to_json,
    decode_composite_proof,
    decode_getproof_result,
    encode_composite_proof,
)
from stateproof.core.errors import ConfigurationError, StateProofError
from stateproof.core.field import parse_felt
from stateproof.core.hashing import get_hash_provider, state_commitment
from stateproof.core.nodes import CompositeProof, EntityRecord
from stateproof.core.orchestrator import StorageProofVerifier
from stateproof.core.trie_builder import PatriciaTrie


def load_proof_file(path: Path) -> CompositeProof:
    """
    Load a proof from disk.

    JSON files use the getProof shape with ``block_number``, ``address`` and
    ``storage_slot`` added at top level; anything else is read as wire format.
    """
    data = path.read_bytes()
    if data.lstrip()[:1] == b"{":
        doc = json.loads(data)
        return decode_getproof_result(
            doc,
            doc["block_number"],
            parse_felt(doc["address"], "address"),
            parse_felt(doc["storage_slot"], "storage_slot"),
        )
    return decode_composite_proof(data)


class StateProofCLI:
    """CLI for verifying and fetching storage proofs."""

    def verify(self, args) -> int:
        """Verify a proof file."""
        print(f"🔍 Verifying {args.file}...")

        try:
            proof = load_proof_file(Path(args.file))
            verifier = StorageProofVerifier(get_hash_provider(args.hash))
            anchor = StaticAnchorSource(parse_felt(args.root, "root"), args.block)
        except (OSError, KeyError, TypeError, ValueError, StateProofError) as e:
            print(f"❌ Could not load proof: {e}")
            return 2

        try:
            result = verifier.check(proof, anchor)
        except ConfigurationError as e:
            print(f"❌ Verifier misconfigured: {e}")
            return 2
        for key, value in result.to_dict().items():
            print(f"  {key:<22} {value}")

        if result.is_valid:
            print("✅ Proof is valid")
            return 0
        print("❌ Proof rejected")
        return 1

    def fetch(self, args) -> int:
        """Fetch a proof from a full node."""
        client = StarknetProofClient.from_url(args.rpc, timeout=args.timeout)
        print(f"📥 Fetching proof for {args.address} slot {args.slot} at block {args.block}...")
        try:
            address = parse_felt(args.address, "address")
            slot = parse_felt(args.slot, "slot")
            proof = client.fetch_composite_proof(args.block, address, slot)
        except StateProofError as e:
            print(f"❌ Fetch failed: {e}")
            return 1

        if args.format == "json":
            payload = json.dumps(composite_proof_to_json(proof), indent=2).encode()
        else:
            payload = encode_composite_proof(proof)

        if args.out:
            Path(args.out).write_bytes(payload)
            print(f"✅ Saved {len(payload)} bytes to {args.out}")
        else:
            print(payload.decode() if args.format == "json" else "0x" + payload.hex())
        return 0

    def demo(self, args) -> int:
        """Build a storage trie and a contract trie, then verify a slot."""
        print("🧪 StateProof end-to-end demo")
        print("=" * 60)

        try:
            hasher = get_hash_provider(args.hash)
        except StateProofError as e:
            print(f"❌ {e}")
            return 2

        address = 0x049D36570D4E46F48E99674BD3FCC84644DDD6B96F7C741B1562B82F9E004DC7
        slot = 0x02E8AE33F1A9B1E4FA5E0E8B8A7F8D3B4C2A1E0F9D8C7B6A5F4E3D2C1B0A9F8E
        value = 0x68656C6C6F

        storage = PatriciaTrie({slot: value, slot ^ 1: 7, 0x1234: 99}, hasher)
        record = EntityRecord(
            class_hash=0x0ABC,
            storage_root=storage.root,
            address=address,
            storage_slot=slot,
            nonce=3,
            hash_version=0,
        )
        leaf = state_commitment(record.class_hash, record.storage_root, record.nonce,
                                record.hash_version, hasher)
        contracts = PatriciaTrie({address: leaf, address ^ (1 << 200): 5, 0x42: 6}, hasher)

        block_number = 812345
        proof = CompositeProof(
            block_number=block_number,
            record=record,
            contract_proof=contracts.prove(address),
            storage_proof=storage.prove(slot),
        )
        print(f"  Global root:   {hex(contracts.root)}")
        print(f"  Storage root:  {hex(storage.root)}")
        print(f"  Proof nodes:   {len(proof.contract_proof)} contract, {len(proof.storage_proof)} storage")

        verifier = StorageProofVerifier(hasher)
        result = verifier.check(proof, StaticAnchorSource(contracts.root, block_number))
        print(f"  Status:        {result.status.value}")
        print(f"  Value:         {hex(result.value) if result.value is not None else None}")

        stale = verifier.check(proof, StaticAnchorSource(contracts.root, block_number + 1))
        print(f"  Stale anchor:  {stale.status.value} ({stale.error_code})")

        return 0 if result.is_valid and result.value == value else 1

    def create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            description="StateProof storage proof verifier",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        subparsers = parser.add_subparsers(dest="command", help="Commands")

        verify_parser = subparsers.add_parser("verify", help="Verify a proof file")
        verify_parser.add_argument("file", help="Proof file (wire format or getProof JSON)")
        verify_parser.add_argument("--root", required=True, help="Anchored global root (hex)")
        verify_parser.add_argument("--block", type=int, required=True, help="Anchored block number")
        verify_parser.add_argument("--hash", default="pedersen", help="Hash provider (pedersen, sha256)")

        fetch_parser = subparsers.add_parser("fetch", help="Fetch a proof from a full node")
        fetch_parser.add_argument("--rpc", required=True, help="Starknet JSON-RPC URL")
        fetch_parser.add_argument("--block", type=int, required=True, help="Block number")
        fetch_parser.add_argument("--address", required=True, help="Contract address (hex)")
        fetch_parser.add_argument("--slot", required=True, help="Storage slot (hex)")
        fetch_parser.add_argument("--format", choices=["wire", "json"], default="wire", help="Output format")
        fetch_parser.add_argument("--out", help="Output file (stdout if omitted)")
        fetch_parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout (seconds)")

        demo_parser = subparsers.add_parser("demo", help="Run a local end-to-end demo")
        demo_parser.add_argument("--hash", default="sha256", help="Hash provider (pedersen, sha256)")

        return parser

    def run(self, argv=None) -> int:
        """Run CLI (entry point)."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        if args.command == "verify":
            return self.verify(args)
        elif args.command == "fetch":
            return self.fetch(args)
        elif args.command == "demo":
            return self.demo(args)

        parser.print_help()
        return 1


def main():
    """CLI entry point."""
    cli = StateProofCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
