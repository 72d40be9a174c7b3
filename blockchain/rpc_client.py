"""
StateProof JSON-RPC Client

Minimal JSON-RPC 2.0 client over HTTP, plus a Starknet full node wrapper
that fetches storage proofs with ``pathfinder_getProof``.

Author: StateProof Team
License: MIT
"""

import itertools
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from stateproof.core.codec import decode_getproof_result
from stateproof.core.errors import RpcError
from stateproof.core.nodes import CompositeProof

JSON_RPC_VERSION = "2.0"


class JsonRpcClient:
    """
    JSON-RPC 2.0 client.

    Request ids increase per client instance. Transport failures, non-2xx
    responses, undecodable bodies and ``error`` members all raise RpcError.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize JSON-RPC client.

        Args:
            rpc_url: Endpoint URL
            timeout: Per-request timeout in seconds
            session: Optional requests session (connection reuse, testing)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    def call(self, method: str, params: Any) -> Any:
        """
        Call a remote method and return its ``result`` member.

        Args:
            method: Method name
            params: Positional list or named dict

        Returns:
            Decoded ``result``
        """
        request = {
            "jsonrpc": JSON_RPC_VERSION,
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("JSON-RPC {} -> {}", method, self.rpc_url)

        try:
            response = self.session.post(self.rpc_url, json=request, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise RpcError(f"{method} failed at {self.rpc_url}: {e}") from e
        except ValueError as e:
            raise RpcError(f"{method} returned a non-JSON body: {e}") from e

        if not isinstance(payload, dict):
            raise RpcError(f"{method} returned a non-object payload")

        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(f"{method} error {error.get('code')}: {error.get('message')}")
            raise RpcError(f"{method} error: {error}")

        if "result" not in payload:
            raise RpcError(f"{method} response has no result")

        return payload["result"]


class StarknetProofClient:
    """Fetches contract and storage proofs from a Starknet full node."""

    def __init__(self, rpc: JsonRpcClient):
        self.rpc = rpc

    @classmethod
    def from_url(cls, rpc_url: str, timeout: float = 10.0) -> "StarknetProofClient":
        return cls(JsonRpcClient(rpc_url, timeout=timeout))

    def get_proof(self, block_number: int, address: int, keys: List[int]) -> Dict[str, Any]:
        """
        Raw ``pathfinder_getProof`` result.

        Args:
            block_number: Block to prove against
            address: Contract address
            keys: Storage keys

        Returns:
            JSON result with contract_proof and contract_data
        """
        return self.rpc.call("pathfinder_getProof", {
            "block_id": {"block_number": block_number},
            "contract_address": hex(address),
            "keys": [hex(k) for k in keys],
        })

    def fetch_composite_proof(
        self,
        block_number: int,
        address: int,
        storage_slot: int
    ) -> CompositeProof:
        """Fetch and decode the proof for a single storage slot."""
        result = self.get_proof(block_number, address, [storage_slot])
        proof = decode_getproof_result(result, block_number, address, storage_slot)

        logger.info(
            "Fetched proof for {}... slot {}... at block {} ({} + {} nodes)",
            hex(address)[:18],
            hex(storage_slot)[:18],
            block_number,
            len(proof.contract_proof),
            len(proof.storage_proof),
        )
        return proof
