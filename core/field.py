"""
Stark prime field helpers.

All hashes, trie paths and commitments are integers strictly below
STARK_PRIME. Values coming from the wire are validated here before any
node or record is built from them.
"""

from typing import Union

from .errors import MalformedProof

STARK_PRIME = 2**251 + 17 * 2**192 + 1

# Trie keys are 251-bit; bit 250 is the most significant.
PATH_BITS = 251
TOP_BIT_INDEX = PATH_BITS - 1

# Wire width of one field element.
FELT_BYTES = 32


def is_field_element(value) -> bool:
    """True for a non-bool int in [0, STARK_PRIME)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < STARK_PRIME


def to_field_element(value, name: str = "value") -> int:
    """
    Validate that value is a field element.

    Args:
        value: Candidate integer
        name: Field name used in the error message

    Returns:
        The value unchanged

    Raises:
        MalformedProof: If value is not an int in [0, STARK_PRIME)
    """
    if not is_field_element(value):
        raise MalformedProof(f"{name} is not a field element: {value!r}")
    return value


def parse_felt(value: Union[str, int], name: str = "value") -> int:
    """Parse a 0x-prefixed hex string (or int) into a field element."""
    if isinstance(value, str):
        try:
            value = int(value, 16)
        except ValueError:
            raise MalformedProof(f"{name} is not a hex string: {value!r}")
    return to_field_element(value, name)


def to_hex(value: int) -> str:
    return hex(value)


def felt_to_bytes(value: int) -> bytes:
    """Fixed-width big-endian encoding."""
    return to_field_element(value).to_bytes(FELT_BYTES, "big")


def felt_from_bytes(data: bytes, name: str = "value") -> int:
    if not isinstance(data, (bytes, bytearray)) or len(data) != FELT_BYTES:
        raise MalformedProof(f"{name} must be {FELT_BYTES} bytes")
    return to_field_element(int.from_bytes(data, "big"), name)
