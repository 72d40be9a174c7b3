"""
Tests for the JSON-RPC client, the full node proof client and the L1
anchor source. All network I/O is mocked.

Author: StateProof Team
License: MIT
"""

from unittest.mock import Mock

import pytest
import requests

from stateproof.blockchain.anchor_source import (
    STATE_BLOCK_NUMBER_SELECTOR,
    STATE_ROOT_SELECTOR,
    CoreContractAnchorSource,
)
from stateproof.blockchain.rpc_client import JsonRpcClient, StarknetProofClient
from stateproof.core.codec import composite_proof_to_json
from stateproof.core.errors import AnchorUnavailable, MalformedProof, RpcError, StaleOrInvalidRoot
from stateproof.core.field import STARK_PRIME

from proof_world import BLOCK_NUMBER


CORE_CONTRACT = "0xde29d060D45901Fb19ED6C6e959EB22d8626708e"


def word(value: int) -> str:
    return "0x" + (value % 2**256).to_bytes(32, "big").hex()


def rpc_session(*payloads):
    """Session whose successive POSTs return the given JSON payloads."""
    session = Mock()
    responses = []
    for payload in payloads:
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = payload
        responses.append(response)
    session.post.side_effect = responses
    return session


@pytest.mark.unit
class TestJsonRpcClient:
    """Envelope handling."""

    def test_call_returns_result(self):
        session = rpc_session({"jsonrpc": "2.0", "id": 1, "result": "0x10"})
        client = JsonRpcClient("http://node", session=session)

        assert client.call("eth_blockNumber", []) == "0x10"

        args, kwargs = session.post.call_args
        assert args[0] == "http://node"
        assert kwargs["json"]["method"] == "eth_blockNumber"
        assert kwargs["json"]["jsonrpc"] == "2.0"
        assert kwargs["timeout"] == 10.0

    def test_request_ids_increase(self):
        session = rpc_session({"result": 1}, {"result": 2})
        client = JsonRpcClient("http://node", session=session)
        client.call("a", [])
        client.call("b", [])
        ids = [c.kwargs["json"]["id"] for c in session.post.call_args_list]
        assert ids == [1, 2]

    def test_error_member(self):
        session = rpc_session({"error": {"code": -32601, "message": "Method not found"}})
        with pytest.raises(RpcError, match="Method not found"):
            JsonRpcClient("http://node", session=session).call("nope", [])

    def test_missing_result(self):
        session = rpc_session({"jsonrpc": "2.0", "id": 1})
        with pytest.raises(RpcError):
            JsonRpcClient("http://node", session=session).call("m", [])

    def test_non_object_payload(self):
        session = rpc_session(["batch"])
        with pytest.raises(RpcError):
            JsonRpcClient("http://node", session=session).call("m", [])

    def test_transport_error(self):
        session = Mock()
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(RpcError):
            JsonRpcClient("http://node", session=session).call("m", [])

    def test_http_error(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
        session = Mock()
        session.post.return_value = response
        with pytest.raises(RpcError):
            JsonRpcClient("http://node", session=session).call("m", [])

    def test_non_json_body(self):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        session = Mock()
        session.post.return_value = response
        with pytest.raises(RpcError):
            JsonRpcClient("http://node", session=session).call("m", [])


@pytest.mark.unit
class TestStarknetProofClient:
    """pathfinder_getProof requests and decoding."""

    def getproof_result(self, world):
        doc = composite_proof_to_json(world.proof)
        for key in ("block_number", "address", "storage_slot"):
            doc.pop(key)
        return doc

    def test_get_proof_params(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = {}
        StarknetProofClient(rpc).get_proof(5, 0xABC, [0x1, 0x2])
        rpc.call.assert_called_once_with("pathfinder_getProof", {
            "block_id": {"block_number": 5},
            "contract_address": "0xabc",
            "keys": ["0x1", "0x2"],
        })

    def test_fetch_composite_proof(self, world, verifier, anchor):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = self.getproof_result(world)
        proof = StarknetProofClient(rpc).fetch_composite_proof(
            BLOCK_NUMBER, world.record.address, world.record.storage_slot
        )
        assert proof == world.proof
        assert verifier.verify(proof, anchor) == world.value

    def test_fetch_undeployed_contract(self, world):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = {"contract_proof": [], "contract_data": None}
        with pytest.raises(MalformedProof):
            StarknetProofClient(rpc).fetch_composite_proof(BLOCK_NUMBER, 1, 2)


@pytest.mark.unit
class TestCoreContractAnchorSource:
    """eth_call based anchor reads."""

    def test_current_root(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = word(0x1234)
        anchor = CoreContractAnchorSource(rpc, CORE_CONTRACT)

        assert anchor.current_root() == 0x1234
        rpc.call.assert_called_once_with(
            "eth_call", [{"to": CORE_CONTRACT, "data": STATE_ROOT_SELECTOR}, "latest"]
        )

    def test_current_block_number(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = word(BLOCK_NUMBER)
        anchor = CoreContractAnchorSource(rpc, CORE_CONTRACT, block_tag="finalized")

        assert anchor.current_block_number() == BLOCK_NUMBER
        rpc.call.assert_called_once_with(
            "eth_call", [{"to": CORE_CONTRACT, "data": STATE_BLOCK_NUMBER_SELECTOR}, "finalized"]
        )

    def test_negative_block_number(self):
        """stateBlockNumber is int256; the pre-genesis value is -1."""
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = word(-1)
        assert CoreContractAnchorSource(rpc, CORE_CONTRACT).current_block_number() == -1

    def test_root_outside_field(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = word(STARK_PRIME)
        with pytest.raises(StaleOrInvalidRoot):
            CoreContractAnchorSource(rpc, CORE_CONTRACT).current_root()

    @pytest.mark.parametrize("reply", ["0x", "0x1234", None, "0x" + "zz" * 32])
    def test_malformed_word(self, reply):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.return_value = reply
        with pytest.raises(AnchorUnavailable):
            CoreContractAnchorSource(rpc, CORE_CONTRACT).current_root()

    def test_rpc_failure(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.side_effect = RpcError("connection refused")
        with pytest.raises(AnchorUnavailable):
            CoreContractAnchorSource(rpc, CORE_CONTRACT).current_root()

    def test_pin_reads_at_one_block(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.side_effect = ["0x12d687", word(0xABC), word(BLOCK_NUMBER)]
        pinned = CoreContractAnchorSource(rpc, CORE_CONTRACT).pin()

        assert pinned.current_root() == 0xABC
        assert pinned.current_block_number() == BLOCK_NUMBER
        tags = [c.args[1][1] for c in rpc.call.call_args_list[1:]]
        assert tags == ["0x12d687", "0x12d687"]

    def test_pin_block_number_failure(self):
        rpc = Mock(spec=JsonRpcClient)
        rpc.call.side_effect = RpcError("timeout")
        with pytest.raises(AnchorUnavailable):
            CoreContractAnchorSource(rpc, CORE_CONTRACT).pin()

    def test_verify_against_core_contract(self, world, verifier):
        rpc = Mock(spec=JsonRpcClient)

        def eth_call(method, params):
            selector = params[0]["data"]
            return word(world.anchor_root) if selector == STATE_ROOT_SELECTOR else word(BLOCK_NUMBER)

        rpc.call.side_effect = eth_call
        anchor = CoreContractAnchorSource(rpc, CORE_CONTRACT)
        assert verifier.verify(world.proof, anchor) == world.value
