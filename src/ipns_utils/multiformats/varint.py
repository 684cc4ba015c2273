"""
Unsigned LEB128 varint encoding and decoding.

Varints carry every integer prefix used by the IPNS formats:

- CID version and multicodec tags: ``[version][codec][multihash]``
- Multihash function code and digest length: ``[code][length][digest]``
- Protobuf field tags, lengths and uint64 values (sequence, ttl)

Each byte holds 7 bits of the value, least significant group first. The MSB
of a byte is set when more bytes follow::

    300 = 0b10_0101100  ->  [1|0101100] [0|0000010]  ->  b"\\xac\\x02"

The decoder accepts at most 10 bytes, enough for any 64-bit value
(the protobuf limit, also sufficient for the multiformats 63-bit limit).

References:
    https://github.com/multiformats/unsigned-varint
    https://protobuf.dev/programming-guides/encoding/#varints
"""

from __future__ import annotations

from typing import Final

MAX_VARINT_BYTES: Final[int] = 10
"""Longest accepted encoding (ceil(64 / 7))."""


class VarintError(ValueError):
    """Raised when varint encoding or decoding fails."""


def encode_varint(value: int) -> bytes:
    """
    Encode an unsigned integer as LEB128 varint.

    Args:
        value: Non-negative integer to encode. Maximum: 2^64 - 1.

    Returns:
        Varint-encoded bytes, 1 to 10 bytes long.

    Raises:
        ValueError: If value is negative or exceeds 64 bits.
    """
    if value < 0:
        raise ValueError("Varint must be non-negative")
    if value >= 1 << 64:
        raise ValueError("Varint must fit in 64 bits")

    result = bytearray()

    # Emit low 7-bit groups with the continuation bit set.
    while value >= 0x80:
        result.append((value & 0x7F) | 0x80)
        value >>= 7

    # The final group has MSB = 0.
    result.append(value)

    return bytes(result)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a varint from bytes at the given offset.

    Args:
        data: Input bytes containing the varint.
        offset: Starting position in data. Defaults to 0.

    Returns:
        Tuple of (decoded_value, bytes_consumed).

    Raises:
        VarintError: If the input is truncated, longer than 10 bytes, or
            encodes a value of 2^64 or more.
    """
    result = 0
    shift = 0
    pos = offset

    while True:
        if pos >= len(data):
            raise VarintError("Truncated varint")

        byte = data[pos]
        pos += 1

        result |= (byte & 0x7F) << shift
        shift += 7

        if not (byte & 0x80):
            break

        if pos - offset >= MAX_VARINT_BYTES:
            raise VarintError("Varint too long")

    # The tenth byte may only contribute the 64th bit.
    if result >> 64:
        raise VarintError("Varint overflows 64 bits")

    return result, pos - offset
