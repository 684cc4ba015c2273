"""
IPNS record wire format.

Records are proto2 ``IpnsEntry`` messages (ipns.proto)::

    message IpnsEntry {
        enum ValidityType { EOL = 0; }

        optional bytes value = 1;
        optional bytes signatureV1 = 2;
        optional ValidityType validityType = 3;
        optional bytes validity = 4;
        optional uint64 sequence = 5;
        optional uint64 ttl = 6;
        optional bytes pubKey = 7;
        optional bytes signatureV2 = 8;
        optional bytes data = 9;
    }

Every field is optional on the wire; which ones a record must carry is
decided one level up, when the entry is interpreted as a record. Unset
fields are ``None`` here so that "absent" and "empty" stay distinct.

References:
    https://specs.ipfs.tech/ipns/ipns-record/#record-serialization-format
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ipns_utils import protobuf
from ipns_utils.types import MalformedRecord

__all__ = [
    "IpnsEntry",
    "ValidityType",
]


class ValidityType(IntEnum):
    """How the validity field is interpreted."""

    EOL = 0
    """Validity is an RFC 3339 end-of-life timestamp."""


class _Field(IntEnum):
    """Field numbers of IpnsEntry."""

    VALUE = 1
    SIGNATURE_V1 = 2
    VALIDITY_TYPE = 3
    VALIDITY = 4
    SEQUENCE = 5
    TTL = 6
    PUB_KEY = 7
    SIGNATURE_V2 = 8
    DATA = 9


_VARINT_FIELDS = frozenset({_Field.VALIDITY_TYPE, _Field.SEQUENCE, _Field.TTL})


@dataclass(frozen=True, slots=True)
class IpnsEntry:
    """An IpnsEntry protobuf message."""

    value: bytes | None = None
    """Path the name points to, e.g. b"/ipfs/bafy..."."""

    signature_v1: bytes | None = None
    """Legacy signature over value || validity || "EOL"."""

    validity_type: int | None = None
    """Validity interpretation, normally ValidityType.EOL."""

    validity: bytes | None = None
    """RFC 3339 expiry timestamp."""

    sequence: int | None = None
    """Monotonic version counter."""

    ttl: int | None = None
    """Suggested cache duration in nanoseconds."""

    pub_key: bytes | None = None
    """Serialized public key, when it cannot be recovered from the name."""

    signature_v2: bytes | None = None
    """Signature over "ipns-signature:" || data."""

    data: bytes | None = None
    """DAG-CBOR document covered by signature_v2."""

    def encode(self) -> bytes:
        """Encode as protobuf, set fields only, in field-number order."""
        result = bytearray()
        if self.value is not None:
            result.extend(protobuf.encode_bytes(_Field.VALUE, self.value))
        if self.signature_v1 is not None:
            result.extend(protobuf.encode_bytes(_Field.SIGNATURE_V1, self.signature_v1))
        if self.validity_type is not None:
            result.extend(protobuf.encode_uint64(_Field.VALIDITY_TYPE, self.validity_type))
        if self.validity is not None:
            result.extend(protobuf.encode_bytes(_Field.VALIDITY, self.validity))
        if self.sequence is not None:
            result.extend(protobuf.encode_uint64(_Field.SEQUENCE, self.sequence))
        if self.ttl is not None:
            result.extend(protobuf.encode_uint64(_Field.TTL, self.ttl))
        if self.pub_key is not None:
            result.extend(protobuf.encode_bytes(_Field.PUB_KEY, self.pub_key))
        if self.signature_v2 is not None:
            result.extend(protobuf.encode_bytes(_Field.SIGNATURE_V2, self.signature_v2))
        if self.data is not None:
            result.extend(protobuf.encode_bytes(_Field.DATA, self.data))
        return bytes(result)

    @classmethod
    def decode(cls, data: bytes) -> IpnsEntry:
        """
        Decode from protobuf.

        Unknown fields are skipped. A repeated known field keeps its last
        value, as protobuf parsers do.

        Raises:
            MalformedRecord: If the bytes are not a well-formed message or a
                known field has the wrong wire type.
        """
        fields: dict[str, int | bytes] = {}

        try:
            for field_number, wire_type, value in protobuf.iter_fields(data):
                try:
                    known = _Field(field_number)
                except ValueError:
                    continue

                expected = (
                    protobuf.WIRE_TYPE_VARINT
                    if known in _VARINT_FIELDS
                    else protobuf.WIRE_TYPE_LENGTH_DELIMITED
                )
                if wire_type != expected:
                    raise MalformedRecord(
                        f"field {known.name.lower()} has wire type {wire_type}, expected {expected}"
                    )

                fields[known.name.lower()] = value
        except protobuf.ProtobufError as e:
            raise MalformedRecord(e.detail, offset=e.offset) from e

        return cls(**fields)  # type: ignore[arg-type]
