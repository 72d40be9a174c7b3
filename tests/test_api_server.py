"""
Tests for the gateway API server.

Chain access is replaced with mocks after startup; the verifier itself is
real and runs over the SHA-256 field hash.

Author: StateProof Team
License: MIT
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from stateproof.api_server import AppState, app, app_state
from stateproof.blockchain.anchor_source import CoreContractAnchorSource
from stateproof.blockchain.rpc_client import StarknetProofClient
from stateproof.core.anchor import StaticAnchorSource
from stateproof.core.codec import decode_composite_proof, encode_composite_proof
from stateproof.core.config import VerifierConfig
from stateproof.core.errors import ConfigurationError, RpcError
from stateproof.core.hashing import HashProvider
from stateproof.core.orchestrator import StorageProofVerifier
from stateproof.gateway.offchain_lookup import StorageRequest

from proof_world import BLOCK_NUMBER


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STATEPROOF_HASH", "sha256")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def chain(client, world):
    """Mocked full node and L1 anchor serving the test world."""
    anchor = Mock(spec=CoreContractAnchorSource)
    anchor.pin.return_value = StaticAnchorSource(world.anchor_root, BLOCK_NUMBER)
    proof_client = Mock(spec=StarknetProofClient)
    proof_client.fetch_composite_proof.return_value = world.proof

    app_state.anchor = anchor
    app_state.proof_client = proof_client
    return proof_client


def verify_body(world, **overrides):
    body = {
        "proof": "0x" + encode_composite_proof(world.proof).hex(),
        "anchor_root": hex(world.anchor_root),
        "anchor_block_number": BLOCK_NUMBER,
    }
    body.update(overrides)
    return body


@pytest.mark.integration
class TestHealth:
    """Health and status."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["verifier_initialized"] is True

    def test_status(self, client):
        data = client.get("/api/v1/status").json()
        assert data["hash_provider"] == "sha256"
        assert "core_contract" in data["chains"]


@pytest.mark.integration
class TestServeProof:
    """Gateway endpoint."""

    def test_serve_proof(self, client, chain, world):
        context = StorageRequest(world.record.address, world.record.storage_slot).encode()
        response = client.get(f"/api/v1/proof/0xabc/0x{context.hex()}.json")

        assert response.status_code == 200
        proof = decode_composite_proof(bytes.fromhex(response.json()["data"][2:]))
        assert proof == world.proof
        chain.fetch_composite_proof.assert_called_once_with(
            BLOCK_NUMBER, world.record.address, world.record.storage_slot
        )

    def test_bad_request_context(self, client, chain):
        response = client.get("/api/v1/proof/0xabc/0xzz.json")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "malformed_proof"

    def test_full_node_failure(self, client, chain, world):
        chain.fetch_composite_proof.side_effect = RpcError("node down")
        context = StorageRequest(world.record.address, world.record.storage_slot).encode()
        response = client.get(f"/api/v1/proof/0xabc/0x{context.hex()}.json")
        assert response.status_code == 502
        assert response.json()["detail"]["code"] == "rpc_error"


@pytest.mark.integration
class TestVerifyEndpoint:
    """Proof verification endpoint."""

    def test_verify_valid(self, client, world):
        response = client.post("/api/v1/verify", json=verify_body(world))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "valid"
        assert data["value"] == hex(world.value)
        assert data["address"] == hex(world.record.address)

    def test_verify_wrong_root(self, client, world):
        response = client.post(
            "/api/v1/verify", json=verify_body(world, anchor_root=hex(world.anchor_root ^ 1))
        )
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "hash_mismatch"

    def test_verify_stale_block(self, client, world):
        response = client.post(
            "/api/v1/verify", json=verify_body(world, anchor_block_number=BLOCK_NUMBER + 1)
        )
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "stale_or_invalid_root"

    def test_verify_garbage_proof(self, client, world):
        response = client.post("/api/v1/verify", json=verify_body(world, proof="0x00ff"))
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "malformed_proof"

    def test_verify_counts(self, client, world):
        before = app_state.proofs_verified
        client.post("/api/v1/verify", json=verify_body(world))
        assert app_state.proofs_verified == before + 1


@pytest.mark.unit
class TestAppState:
    """Startup wiring."""

    @pytest.mark.asyncio
    async def test_initialize(self):
        state = AppState()
        await state.initialize(VerifierConfig(hash_provider="sha256", l1_rpc_url="http://l1"))
        assert state.verifier is not None
        assert isinstance(state.anchor, CoreContractAnchorSource)
        assert state.anchor.rpc.rpc_url == "http://l1"
        await state.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_unknown_hash(self):
        with pytest.raises(ConfigurationError):
            await AppState().initialize(VerifierConfig(hash_provider="blake2"))


@pytest.mark.integration
class TestServiceErrors:
    """Faults on the service side are not proof rejections."""

    def test_misconfigured_verifier(self, client, world, monkeypatch):
        provider = Mock(spec=HashProvider)
        provider.hash.side_effect = RuntimeError("backend down")
        monkeypatch.setattr(app_state, "verifier", StorageProofVerifier(provider))

        response = client.post("/api/v1/verify", json=verify_body(world))

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "configuration_error"

    def test_status_before_startup(self, monkeypatch):
        monkeypatch.setattr(app_state, "config", None)
        response = TestClient(app).get("/api/v1/status")
        assert response.status_code == 503
