"""
Bit slicing over the 251-bit trie path space.

Bit positions count from the least significant bit: position 250 is the
top of the path, position 0 the last bit consumed by a walk.
"""

from .field import TOP_BIT_INDEX


def _check_range(start_index: int, length: int):
    if length < 1:
        raise ValueError(f"length must be positive, got {length}")
    if not 0 <= start_index <= TOP_BIT_INDEX:
        raise ValueError(f"start_index out of range: {start_index}")
    if start_index - length + 1 < 0:
        raise ValueError(
            f"{length} bits ending at {start_index} run past bit 0"
        )


def bit_at(value: int, index: int) -> int:
    """Return bit ``index`` of value (0 or 1)."""
    if not 0 <= index <= TOP_BIT_INDEX:
        raise ValueError(f"bit index out of range: {index}")
    return (value >> index) & 1


def extract_bits(value: int, start_index: int, length: int) -> int:
    """
    Extract ``length`` bits of value ending at ``start_index``.

    The slice covers positions start_index down to
    start_index - length + 1 and is returned right-aligned.

    Args:
        value: Path to slice
        start_index: Highest bit position of the slice
        length: Number of bits

    Returns:
        Integer holding the slice in its low ``length`` bits
    """
    _check_range(start_index, length)
    low = start_index - length + 1
    return (value >> low) & ((1 << length) - 1)


def bits_equal(a: int, b: int, start_index: int, length: int) -> bool:
    """
    Compare a slice of ``a`` against the low ``length`` bits of ``b``.

    Used to check an edge node's stored path fragment (``b``) against the
    matching segment of the target path (``a``).

    Bits of ``b`` above ``length`` are ignored here. The full ``path`` value
    is bound by the edge commitment hash(child, path) + length, so a proof
    cannot alter them without breaking the hash chain.
    """
    mask = (1 << length) - 1
    return extract_bits(a, start_index, length) == (b & mask)
