"""
Offchain lookup (EIP-3668 style), as two explicit messages.

Phase 1 returns an OffchainLookup value describing what to fetch and where.
The caller (or GatewayClient) fetches the proof bytes from a gateway.
Phase 2 takes those bytes plus the original request context and runs an
ordinary synchronous verification.

Nothing here raises to mean "go fetch"; raising always means failure.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import msgpack
import requests
from loguru import logger

from stateproof.core.anchor import AnchorSource
from stateproof.core.codec import decode_composite_proof
from stateproof.core.config import VerifierConfig
from stateproof.core.errors import GatewayError, MalformedProof
from stateproof.core.field import felt_from_bytes, felt_to_bytes
from stateproof.core.orchestrator import StorageProofVerifier

CALLBACK = "resolveWithProof"


@dataclass(frozen=True)
class StorageRequest:
    """The single storage variable a lookup asks for."""

    address: int
    storage_slot: int

    def encode(self) -> bytes:
        return msgpack.packb({
            "address": felt_to_bytes(self.address),
            "storage_slot": felt_to_bytes(self.storage_slot),
        }, use_bin_type=True)

    @staticmethod
    def decode(data: bytes) -> "StorageRequest":
        """
        Decode a request context.

        Raises:
            MalformedProof: If the context does not decode
        """
        try:
            d = msgpack.unpackb(data, raw=False)
        except (ValueError, TypeError, msgpack.UnpackException) as e:
            raise MalformedProof(f"undecodable request context: {e}") from e
        if not isinstance(d, dict) or "address" not in d or "storage_slot" not in d:
            raise MalformedProof("request context is missing address or storage_slot")
        return StorageRequest(
            address=felt_from_bytes(d["address"], "address"),
            storage_slot=felt_from_bytes(d["storage_slot"], "storage_slot"),
        )


@dataclass(frozen=True)
class OffchainLookup:
    """Phase 1 output: everything needed to fetch the proof and resume."""

    sender: str
    urls: Tuple[str, ...]
    call_data: bytes
    callback: str
    extra_data: bytes

    @property
    def call_data_hex(self) -> str:
        return "0x" + self.call_data.hex()


class OffchainResolver:
    """Issues lookups and verifies their answers."""

    def __init__(self, config: VerifierConfig, verifier: StorageProofVerifier):
        """
        Initialize resolver.

        Args:
            config: Supplies the sender address and gateway URL templates
            verifier: Verifier used in phase 2
        """
        self.config = config
        self.verifier = verifier

    def request_storage_proof(self, address: int, storage_slot: int) -> OffchainLookup:
        """Phase 1: describe the proof to fetch."""
        context = StorageRequest(address, storage_slot).encode()
        lookup = OffchainLookup(
            sender=self.config.resolver_address,
            urls=tuple(self.config.gateway_urls),
            call_data=context,
            callback=CALLBACK,
            extra_data=context,
        )
        logger.debug(
            "Issued offchain lookup for {}... slot {}... via {} gateway(s)",
            hex(address)[:18], hex(storage_slot)[:18], len(lookup.urls)
        )
        return lookup

    def resolve_with_proof(self, response: bytes, extra_data: bytes, anchor: AnchorSource) -> int:
        """
        Phase 2: verify the fetched proof for the original request.

        Args:
            response: Proof bytes returned by the gateway (wire format)
            extra_data: Request context from phase 1
            anchor: Source of the trusted root and block number

        Returns:
            The verified storage value

        Raises:
            MalformedProof: Undecodable response or a proof for another slot
            StateProofError: Any verification failure
        """
        request = StorageRequest.decode(extra_data)
        proof = decode_composite_proof(response)

        if (proof.record.address, proof.record.storage_slot) != (request.address, request.storage_slot):
            raise MalformedProof(
                f"gateway answered for {hex(proof.record.address)}/{hex(proof.record.storage_slot)}, "
                f"requested {hex(request.address)}/{hex(request.storage_slot)}"
            )

        return self.verifier.verify(proof, anchor)

    def lookup(
        self,
        address: int,
        storage_slot: int,
        gateway: "GatewayClient",
        anchor: AnchorSource
    ) -> int:
        """Run both phases with a gateway client in between."""
        request = self.request_storage_proof(address, storage_slot)
        response = gateway.fetch(request)
        return self.resolve_with_proof(response, request.extra_data, anchor)


class GatewayClient:
    """
    Fetches lookup answers from gateway URL templates.

    Templates are tried in order. A template containing ``{data}`` is
    fetched with GET; otherwise the request is POSTed as JSON. A 4xx
    response stops the search; 5xx and transport errors move on to the next
    template.
    """

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, lookup: OffchainLookup) -> bytes:
        """
        Fetch the response bytes for a lookup.

        Raises:
            GatewayError: No gateway produced a usable response
        """
        sender = lookup.sender.lower()
        data = lookup.call_data_hex
        failures = []

        for template in lookup.urls:
            url = template.replace("{sender}", sender).replace("{data}", data)
            try:
                if "{data}" in template:
                    response = self.session.get(url, timeout=self.timeout)
                else:
                    response = self.session.post(
                        url, json={"sender": sender, "data": data}, timeout=self.timeout
                    )
            except requests.RequestException as e:
                logger.warning("Gateway {} unreachable: {}", url, e)
                failures.append(f"{url}: {e}")
                continue

            if 400 <= response.status_code < 500:
                raise GatewayError(f"gateway {url} rejected the request: HTTP {response.status_code}")
            if response.status_code >= 500:
                logger.warning("Gateway {} failed: HTTP {}", url, response.status_code)
                failures.append(f"{url}: HTTP {response.status_code}")
                continue

            try:
                body = response.json()
                payload = body["data"]
                return bytes.fromhex(payload[2:] if payload.startswith("0x") else payload)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Gateway {} returned an unusable body: {}", url, e)
                failures.append(f"{url}: bad body")

        raise GatewayError("no gateway answered: " + "; ".join(failures or ["no URLs configured"]))
