"""
StateProof Gateway API Server

FastAPI server that serves storage proofs to offchain lookups and verifies
submitted proofs.

Endpoints:
- GET /health - Liveness check
- GET /api/v1/status - Configuration summary
- GET /api/v1/proof/{sender}/{data}.json - Gateway endpoint: fetch the proof
  for the requested slot at the anchored block
- POST /api/v1/verify - Verify a wire-format proof against a supplied anchor

Author: StateProof Team
License: MIT
"""

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field
from loguru import logger

from stateproof.blockchain.anchor_source import CoreContractAnchorSource
from stateproof.blockchain.rpc_client import StarknetProofClient
from stateproof.core.anchor import StaticAnchorSource
from stateproof.core.codec import decode_composite_proof, encode_composite_proof
from stateproof.core.config import VerifierConfig, build_verifier
from stateproof.core.errors import (
    ConfigurationError,
    MalformedProof,
    RpcError,
    StateProofError,
    StaleOrInvalidRoot,
)
from stateproof.core.field import parse_felt
from stateproof.core.orchestrator import StorageProofVerifier
from stateproof.gateway.offchain_lookup import StorageRequest


# =============================================================================
# API Models
# =============================================================================

class ProofResponse(BaseModel):
    """Gateway response (EIP-3668 shape)."""

    data: str = Field(..., description="0x-prefixed wire-format composite proof")


class VerifyRequest(BaseModel):
    """Proof verification request."""

    proof: str = Field(..., description="0x-prefixed wire-format composite proof")
    anchor_root: str = Field(..., description="Trusted global root (hex)")
    anchor_block_number: int = Field(..., description="Block number of the trusted root")


class VerifyResponse(BaseModel):
    """Successful verification."""

    status: str
    block_number: int
    address: str
    storage_slot: str
    value: str
    verification_time_ms: float


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError as e:
        raise MalformedProof(f"not a hex string: {e}") from e


# =============================================================================
# Global State
# =============================================================================

class AppState:
    """Application state."""

    def __init__(self):
        self.config: Optional[VerifierConfig] = None
        self.verifier: Optional[StorageProofVerifier] = None
        self.proof_client: Optional[StarknetProofClient] = None
        self.anchor: Optional[CoreContractAnchorSource] = None
        self.proofs_served: int = 0
        self.proofs_verified: int = 0

    async def initialize(self, config: VerifierConfig):
        """Initialize application state."""
        self.config = config
        self.verifier = build_verifier(config)
        self.proof_client = StarknetProofClient.from_url(
            config.starknet_rpc_url, timeout=config.request_timeout
        )
        self.anchor = CoreContractAnchorSource.from_url(
            config.l1_rpc_url, config.core_contract_address, timeout=config.request_timeout
        )

        logger.info("✅ StateProof gateway initialized")
        logger.info("   Hash: {}", config.hash_provider)
        logger.info("   Starknet RPC: {}", config.starknet_rpc_url)
        logger.info("   L1 RPC: {}", config.l1_rpc_url)
        logger.info("   Core contract: {}", config.core_contract_address)

    async def shutdown(self):
        """Cleanup resources."""
        logger.info("✅ StateProof gateway shutdown complete")


# Global app state
app_state = AppState()


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    await app_state.initialize(VerifierConfig.from_env())

    yield

    await app_state.shutdown()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="StateProof Gateway API",
    description="Starknet storage proofs anchored to L1",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Health & Status Endpoints
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "stateproof-gateway",
        "timestamp": datetime.utcnow().isoformat(),
        "verifier_initialized": app_state.verifier is not None,
    }


@app.get("/api/v1/status")
async def get_status():
    """Get API status and configuration."""
    if app_state.config is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Gateway not initialized",
        )

    return {
        "service": "StateProof Gateway",
        "version": "0.1.0",
        "hash_provider": app_state.config.hash_provider,
        "chains": {
            "starknet_rpc": app_state.config.starknet_rpc_url,
            "l1_rpc": app_state.config.l1_rpc_url,
            "core_contract": app_state.config.core_contract_address,
        },
        "proofs_served": app_state.proofs_served,
        "proofs_verified": app_state.proofs_verified,
    }


# =============================================================================
# Proofs
# =============================================================================

@app.get("/api/v1/proof/{sender}/{data}.json", response_model=ProofResponse)
async def serve_proof(sender: str, data: str):
    """
    Serve the proof for an offchain lookup.

    The proof is generated at the block currently anchored on L1, so the
    verifier's freshness check will accept it until the anchor moves.
    """
    try:
        request = StorageRequest.decode(_hex_bytes(data))
    except MalformedProof as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())

    try:
        pinned = await asyncio.to_thread(app_state.anchor.pin)
        proof = await asyncio.to_thread(
            app_state.proof_client.fetch_composite_proof,
            pinned.current_block_number(),
            request.address,
            request.storage_slot,
        )
    except (RpcError, StaleOrInvalidRoot, MalformedProof) as e:
        logger.error("Proof fetch failed for {}: {}", sender, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.to_dict())

    app_state.proofs_served += 1
    return ProofResponse(data="0x" + encode_composite_proof(proof).hex())


@app.post("/api/v1/verify", response_model=VerifyResponse)
async def verify_proof(request: VerifyRequest):
    """
    Verify a composite proof against the supplied anchor.

    Verification failures return 422 with the failure code; a misconfigured
    hash provider returns 500.
    """
    try:
        proof = decode_composite_proof(_hex_bytes(request.proof))
        anchor = StaticAnchorSource(
            parse_felt(request.anchor_root, "anchor_root"), request.anchor_block_number
        )
    except StateProofError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.to_dict())

    try:
        result = app_state.verifier.check(proof, anchor)
    except ConfigurationError as e:
        logger.error("Verifier misconfigured: {}", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.to_dict())

    if not result.is_valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": result.error_code, "message": result.error},
        )

    app_state.proofs_verified += 1
    return VerifyResponse(
        status=result.status.value,
        block_number=result.block_number,
        address=hex(result.address),
        storage_slot=hex(result.storage_slot),
        value=hex(result.value),
        verification_time_ms=round(result.verification_time * 1000, 3),
    )


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Run API server."""
    # Configure logging
    logger.add(
        "logs/stateproof_api_{time}.log",
        rotation="1 day",
        retention="30 days",
        level="INFO"
    )

    host = os.getenv("STATEPROOF_API_HOST", "127.0.0.1")
    port = int(os.getenv("STATEPROOF_API_PORT", "8002"))
    workers = int(os.getenv("WORKERS", "1"))

    logger.info("🚀 Starting StateProof gateway on {}:{}", host, port)
    logger.info("   Workers: {}", workers)

    uvicorn.run(
        "stateproof.api_server:app",
        host=host,
        port=port,
        workers=workers,
        log_level="info",
    )


if __name__ == "__main__":
    main()
