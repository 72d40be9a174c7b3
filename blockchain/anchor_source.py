"""
StateProof L1 Anchor Source

Reads the Starknet state root and block number published by the core
contract on Ethereum L1. These two values are the only trusted inputs of
a verification call.

Author: StateProof Team
License: MIT
"""

from loguru import logger

from stateproof.core.anchor import AnchorSource, StaticAnchorSource
from stateproof.core.errors import AnchorUnavailable, RpcError, StaleOrInvalidRoot
from stateproof.core.field import is_field_element
from .rpc_client import JsonRpcClient

# 4-byte selectors of the core contract getters
STATE_ROOT_SELECTOR = "0x9588eca2"          # stateRoot()
STATE_BLOCK_NUMBER_SELECTOR = "0x35befa5d"  # stateBlockNumber()


def _decode_uint256(data: str) -> int:
    if not isinstance(data, str) or not data.startswith("0x") or len(data) != 66:
        raise AnchorUnavailable(f"eth_call returned a malformed word: {data!r}")
    try:
        return int(data, 16)
    except ValueError:
        raise AnchorUnavailable(f"eth_call returned a non-hex word: {data!r}")


def _decode_int256(data: str) -> int:
    value = _decode_uint256(data)
    if value >= 2**255:
        value -= 2**256
    return value


class CoreContractAnchorSource(AnchorSource):
    """
    Anchor backed by the L1 core contract.

    Each getter performs its own ``eth_call`` at ``block_tag``. Use pin()
    to read both values at one L1 block.
    """

    def __init__(self, rpc: JsonRpcClient, contract_address: str, block_tag: str = "latest"):
        """
        Initialize anchor source.

        Args:
            rpc: Ethereum JSON-RPC client
            contract_address: Core contract address
            block_tag: L1 block to read at ("latest", "finalized", or hex number)
        """
        self.rpc = rpc
        self.contract_address = contract_address
        self.block_tag = block_tag

    @classmethod
    def from_url(cls, rpc_url: str, contract_address: str, timeout: float = 10.0) -> "CoreContractAnchorSource":
        return cls(JsonRpcClient(rpc_url, timeout=timeout), contract_address)

    def _eth_call(self, selector: str, block_tag: str) -> str:
        try:
            return self.rpc.call("eth_call", [{"to": self.contract_address, "data": selector}, block_tag])
        except RpcError as e:
            logger.error("Failed to read core contract {}: {}", self.contract_address, e)
            raise AnchorUnavailable(str(e)) from e

    def _root_at(self, block_tag: str) -> int:
        root = _decode_uint256(self._eth_call(STATE_ROOT_SELECTOR, block_tag))
        if not is_field_element(root):
            raise StaleOrInvalidRoot(f"core contract root is outside the field: {hex(root)}")
        return root

    def _block_number_at(self, block_tag: str) -> int:
        return _decode_int256(self._eth_call(STATE_BLOCK_NUMBER_SELECTOR, block_tag))

    def current_root(self) -> int:
        return self._root_at(self.block_tag)

    def current_block_number(self) -> int:
        return self._block_number_at(self.block_tag)

    def pin(self) -> StaticAnchorSource:
        """
        Read root and block number at the same L1 block.

        Returns:
            A StaticAnchorSource holding a consistent pair
        """
        try:
            l1_block = self.rpc.call("eth_blockNumber", [])
        except RpcError as e:
            raise AnchorUnavailable(str(e)) from e

        root = self._root_at(l1_block)
        block_number = self._block_number_at(l1_block)

        logger.info(
            "📌 Pinned anchor at L1 block {}: root {}... block {}",
            l1_block, hex(root)[:18], block_number
        )
        return StaticAnchorSource(root, block_number)
