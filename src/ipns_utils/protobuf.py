"""
Protobuf wire format helpers.

Both serialized libp2p keys and IPNS records are small, fixed proto2
messages. They are encoded by hand with these helpers instead of generated
code::

    [tag varint][value]

    tag = (field_number << 3) | wire_type

    wire_type 0 = varint            (uint64, enum)
    wire_type 2 = length-delimited  (bytes, string, embedded message)

References:
    https://protobuf.dev/programming-guides/encoding/
"""

from __future__ import annotations

from collections.abc import Iterator

from ipns_utils.multiformats.varint import VarintError, decode_varint, encode_varint

WIRE_TYPE_VARINT = 0
"""Varint wire type for uint64, bool and enum."""

WIRE_TYPE_FIXED64 = 1
"""64-bit fixed wire type."""

WIRE_TYPE_LENGTH_DELIMITED = 2
"""Length-delimited wire type for bytes, string and embedded messages."""

WIRE_TYPE_FIXED32 = 5
"""32-bit fixed wire type."""


class ProtobufError(ValueError):
    """
    Raised when a protobuf message is malformed.

    Attributes:
        offset: Byte offset of the problem.
    """

    def __init__(self, detail: str, offset: int) -> None:
        self.detail = detail
        self.offset = offset
        super().__init__(f"{detail} (at byte offset {offset})")


def encode_tag(field_number: int, wire_type: int) -> bytes:
    """Encode a protobuf field tag."""
    return encode_varint((field_number << 3) | wire_type)


def encode_bytes(field_number: int, value: bytes) -> bytes:
    """Encode a bytes field."""
    return encode_tag(field_number, WIRE_TYPE_LENGTH_DELIMITED) + encode_varint(len(value)) + value


def encode_uint64(field_number: int, value: int) -> bytes:
    """Encode a uint64 (or enum) field."""
    return encode_tag(field_number, WIRE_TYPE_VARINT) + encode_varint(value)


def iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    """
    Walk the top-level fields of a message.

    Args:
        data: Encoded message.

    Yields:
        (field_number, wire_type, value) tuples, in wire order. The value is
        an int for varints and the raw bytes for every other wire type.

    Raises:
        ProtobufError: If a tag, varint or length runs past the end of the
            message, or an unknown wire type is found.
    """
    pos = 0
    while pos < len(data):
        start = pos
        try:
            tag, consumed = decode_varint(data, pos)
        except VarintError as e:
            raise ProtobufError(f"Invalid field tag: {e}", start) from e
        pos += consumed

        field_number, wire_type = tag >> 3, tag & 0x07
        if field_number == 0:
            raise ProtobufError("Invalid field number 0", start)

        if wire_type == WIRE_TYPE_VARINT:
            try:
                value, consumed = decode_varint(data, pos)
            except VarintError as e:
                raise ProtobufError(f"Invalid varint for field {field_number}: {e}", pos) from e
            pos += consumed
            yield field_number, wire_type, value
            continue

        if wire_type == WIRE_TYPE_LENGTH_DELIMITED:
            try:
                length, consumed = decode_varint(data, pos)
            except VarintError as e:
                raise ProtobufError(f"Invalid length for field {field_number}: {e}", pos) from e
            pos += consumed
        elif wire_type == WIRE_TYPE_FIXED64:
            length = 8
        elif wire_type == WIRE_TYPE_FIXED32:
            length = 4
        else:
            raise ProtobufError(f"Unknown wire type {wire_type}", start)

        if pos + length > len(data):
            raise ProtobufError(f"Field {field_number} truncated", pos)

        yield field_number, wire_type, data[pos : pos + length]
        pos += length
