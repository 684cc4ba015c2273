"""
Creating, parsing and verifying IPNS records.

A record binds a name (a public key) to a value (a path) until an
end-of-life timestamp:

    value         "/ipfs/bafy..."                       bytes
    validityType  EOL                                   enum
    validity      "2030-01-01T00:00:00.000000000Z"      RFC 3339
    sequence      monotonically increasing version      uint64
    ttl           suggested cache time                  nanoseconds

Two signatures are written, so both older and current peers accept it:

    signatureV1 = sign(value || validity || "EOL")
    signatureV2 = sign("ipns-signature:" || data)
        data    = DAG-CBOR {TTL, Value, Sequence, Validity, ValidityType}

The public key travels in the record only when the name cannot give it
back, that is when the name is a sha2-256 hash of the key (RSA, ECDSA).

Parsing is read-only introspection and never checks signatures;
``verify_record`` is the explicit check.

References:
    - https://specs.ipfs.tech/ipns/ipns-record/
    - https://github.com/ipfs/go-ipns
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

import cbor2

from ipns_utils.crypto import (
    KeyPair,
    PublicKey,
    multihash_of,
    public_key_from_identifier,
)
from ipns_utils.multiformats import Cid
from ipns_utils.types import (
    CryptoError,
    InputError,
    MalformedRecord,
    UnsupportedValidityType,
)

from .entry import IpnsEntry, ValidityType
from .timefmt import format_validity, parse_validity

__all__ = [
    "IpnsRecord",
    "create_record",
    "parse_record",
    "verify_record",
    "signature_v1_payload",
    "signature_v2_payload",
]

logger = logging.getLogger(__name__)

SIGNATURE_V2_PREFIX: Final[bytes] = b"ipns-signature:"
"""Domain separation prefix of version 2 signatures."""

_UINT64_MAX: Final[int] = (1 << 64) - 1

_REQUIRED_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("value", "value"),
    ("signature_v1", "signature"),
    ("validity_type", "validityType"),
    ("validity", "validity"),
    ("sequence", "sequence"),
)
"""Entry attribute and wire name of each field a record must carry."""


@dataclass(frozen=True, slots=True)
class IpnsRecord:
    """
    A parsed IPNS record.

    Attributes:
        value: Path the name resolves to.
        sequence: Version counter.
        eol: Expiry time (UTC, microsecond precision).
        ttl: Suggested cache duration in nanoseconds, if set.
        signature: Version 1 signature.
        validity: Validity field exactly as serialized.
        public_key: Embedded serialized public key, if present.
        signature_v2: Version 2 signature, if present.
        data: DAG-CBOR document covered by signature_v2, if present.
    """

    value: bytes
    sequence: int
    eol: datetime
    ttl: int | None
    signature: bytes
    validity: bytes
    public_key: bytes | None = None
    signature_v2: bytes | None = None
    data: bytes | None = None

    @property
    def validity_type(self) -> ValidityType:
        """Always EOL; other types are rejected while parsing."""
        return ValidityType.EOL

    def is_expired(self, now: datetime | None = None) -> bool:
        """True if the record's EOL lies before now."""
        return self.eol < (now or datetime.now(UTC))


def signature_v1_payload(value: bytes, validity: bytes) -> bytes:
    """Bytes covered by the version 1 signature."""
    return value + validity + ValidityType.EOL.name.encode("ascii")


def signature_v2_payload(data: bytes) -> bytes:
    """Bytes covered by the version 2 signature."""
    return SIGNATURE_V2_PREFIX + data


def _signature_document(value: bytes, validity: bytes, sequence: int, ttl: int) -> bytes:
    """
    Build the DAG-CBOR document signed by version 2 signatures.

    Canonical CBOR sorts map keys by encoded length, then bytewise, which is
    the DAG-CBOR order: TTL, Value, Sequence, Validity, ValidityType.
    """
    return cbor2.dumps(
        {
            "Value": value,
            "Validity": validity,
            "ValidityType": int(ValidityType.EOL),
            "Sequence": sequence,
            "TTL": ttl,
        },
        canonical=True,
    )


def create_record(
    key_pair: KeyPair,
    value: bytes | str,
    sequence: int,
    eol: datetime,
    ttl: int | None = None,
) -> bytes:
    """
    Create and sign a serialized IPNS record.

    Args:
        key_pair: Private key of the name.
        value: Path the name should resolve to. Empty values are allowed.
        sequence: Version counter, 0 to 2^64 - 1.
        eol: Expiry time.
        ttl: Optional cache duration in nanoseconds, 0 to 2^64 - 1.

    Returns:
        The IpnsEntry protobuf bytes.

    Raises:
        InputError: If sequence or ttl is outside the uint64 range.
        CryptoError: If signing fails.
    """
    if isinstance(value, str):
        value = value.encode("utf-8")
    if not value:
        logger.warning("Creating a record with an empty value")

    if not 0 <= sequence <= _UINT64_MAX:
        raise InputError(f"Sequence number {sequence} is outside the uint64 range")
    if ttl is not None and not 0 <= ttl <= _UINT64_MAX:
        raise InputError(f"TTL {ttl}ns is outside the uint64 range")

    validity = format_validity(eol)

    # Fields go into the signatures in a fixed order:
    #   V1: value, validity, validityType
    #   V2: the canonical CBOR map also covering sequence and ttl
    signature_v1 = key_pair.sign(signature_v1_payload(value, validity))
    data = _signature_document(value, validity, sequence, ttl or 0)
    signature_v2 = key_pair.sign(signature_v2_payload(data))

    # Embed the public key only when the name hashes it.
    public_key = key_pair.public_key
    embedded: bytes | None = None
    if not multihash_of(public_key).is_identity:
        embedded = public_key.to_bytes()
        logger.debug(
            "Embedding %s public key (%d bytes): name uses sha2-256",
            public_key.key_type.display_name,
            len(embedded),
        )

    entry = IpnsEntry(
        value=value,
        signature_v1=signature_v1,
        validity_type=ValidityType.EOL,
        validity=validity,
        sequence=sequence,
        ttl=ttl,
        pub_key=embedded,
        signature_v2=signature_v2,
        data=data,
    )
    return entry.encode()


def parse_record(data: bytes) -> IpnsRecord:
    """
    Parse a serialized IPNS record without verifying it.

    Args:
        data: IpnsEntry protobuf bytes.

    Returns:
        The parsed record.

    Raises:
        MalformedRecord: If a required field is missing, the byte layout is
            inconsistent, or the validity is not a valid timestamp.
        UnsupportedValidityType: If the validity type is not EOL.
    """
    entry = IpnsEntry.decode(data)

    for attribute, wire_name in _REQUIRED_FIELDS:
        if getattr(entry, attribute) is None:
            raise MalformedRecord(f"missing required field {wire_name}")

    # Narrowed by the loop above.
    assert entry.value is not None
    assert entry.signature_v1 is not None
    assert entry.validity_type is not None
    assert entry.validity is not None
    assert entry.sequence is not None

    if entry.validity_type != ValidityType.EOL:
        raise UnsupportedValidityType(entry.validity_type)

    try:
        eol = parse_validity(entry.validity.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedRecord(f"invalid validity: {e}") from e

    return IpnsRecord(
        value=entry.value,
        sequence=entry.sequence,
        eol=eol,
        ttl=entry.ttl,
        signature=entry.signature_v1,
        validity=entry.validity,
        public_key=entry.pub_key,
        signature_v2=entry.signature_v2,
        data=entry.data,
    )


def _resolve_public_key(record: IpnsRecord, identifier: Cid) -> PublicKey:
    """
    Find the key that must have signed a record for a name.

    An embedded key is only trusted if it derives to the same name.

    Raises:
        CryptoError: If the embedded key belongs to a different name.
        KeyDecodeError: If no key is embedded and the name does not inline one.
    """
    if record.public_key is not None:
        public_key = PublicKey.from_bytes(record.public_key)
        if multihash_of(public_key) != identifier.multihash:
            raise CryptoError(f"Embedded public key does not match name {identifier}")
        return public_key

    return public_key_from_identifier(identifier)


def _check_signature_document(record: IpnsRecord) -> None:
    """
    Ensure the signed CBOR document agrees with the protobuf fields.

    Raises:
        MalformedRecord: If the document is not valid CBOR.
        CryptoError: If any signed field differs from its protobuf twin.
    """
    assert record.data is not None
    try:
        document = cbor2.loads(record.data)
    except cbor2.CBORDecodeError as e:
        raise MalformedRecord(f"invalid signature document: {e}") from e

    if not isinstance(document, dict):
        raise MalformedRecord("signature document is not a map")

    expected: dict[str, object] = {
        "Value": record.value,
        "Validity": record.validity,
        "ValidityType": int(ValidityType.EOL),
        "Sequence": record.sequence,
        "TTL": record.ttl or 0,
    }
    for key, value in expected.items():
        if document.get(key) != value:
            raise CryptoError(f"Signed field {key} does not match the record")


def verify_record(record: IpnsRecord | bytes, identifier: Cid | str) -> IpnsRecord:
    """
    Verify that a record was signed by the key of a name.

    The version 2 signature is checked when present, together with the
    agreement of its document with the record fields. Records without one
    are checked against the version 1 signature.

    Args:
        record: Parsed record or serialized IpnsEntry.
        identifier: The IPNS name the record claims to belong to.

    Returns:
        The verified record.

    Raises:
        CryptoError: If a signature or an embedded key does not verify.
        KeyDecodeError: If the public key cannot be obtained.
        MalformedRecord: If the record bytes are invalid.
        DecodeError: If the identifier string is invalid.
    """
    if isinstance(record, bytes):
        record = parse_record(record)
    if isinstance(identifier, str):
        identifier = Cid.decode(identifier)

    public_key = _resolve_public_key(record, identifier)

    if record.signature_v2 is not None:
        if record.data is None:
            raise MalformedRecord("signatureV2 present without data")
        if not public_key.verify(signature_v2_payload(record.data), record.signature_v2):
            raise CryptoError("Record signatureV2 is invalid")
        _check_signature_document(record)
        logger.debug("Verified signatureV2 with %s key", public_key.key_type.display_name)
        return record

    if not public_key.verify(signature_v1_payload(record.value, record.validity), record.signature):
        raise CryptoError("Record signature is invalid")
    logger.debug("Verified signatureV1 with %s key", public_key.key_type.display_name)
    return record
