"""
Verification failure taxonomy.

Every failure is immediate and non-retryable. Each exception carries a
stable ``code`` so API and CLI layers can report it without string matching.
"""


class StateProofError(Exception):
    """Base class for all StateProof failures."""

    code = "state_proof_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ConfigurationError(StateProofError):
    """Hash primitive unavailable or returning malformed output."""

    code = "configuration_error"


class MalformedProof(StateProofError):
    """Empty proof, zero leaf commitment, or structurally invalid node."""

    code = "malformed_proof"


class HashMismatch(StateProofError):
    """A node's recomputed commitment disagrees with its parent's pointer."""

    code = "hash_mismatch"


class PathMismatch(StateProofError):
    """An edge node's path segment disagrees with the target path."""

    code = "path_mismatch"


class IncompleteProof(StateProofError):
    """The 251-bit path budget was not consumed exactly."""

    code = "incomplete_proof"


class RootMismatch(StateProofError):
    """Storage-tier and contract-tier results are not consistent."""

    code = "root_mismatch"


class StaleOrInvalidRoot(StateProofError):
    """Proof block number differs from the anchor, or the anchor is unusable."""

    code = "stale_or_invalid_root"


class AnchorUnavailable(StaleOrInvalidRoot):
    """The anchor source could not be read."""

    code = "anchor_unavailable"


class RpcError(StateProofError):
    """A JSON-RPC endpoint failed or returned an error member."""

    code = "rpc_error"


class GatewayError(StateProofError):
    """No offchain gateway returned a usable response."""

    code = "gateway_error"


# Proof failures. ConfigurationError is not one; it means the verifier
# itself is misconfigured.
VERIFICATION_ERRORS = (
    MalformedProof,
    HashMismatch,
    PathMismatch,
    IncompleteProof,
    RootMismatch,
    StaleOrInvalidRoot,
)
