"""IPNS record codec: creation, parsing and signature verification."""

from .codec import (
    IpnsRecord,
    create_record,
    parse_record,
    signature_v1_payload,
    signature_v2_payload,
    verify_record,
)
from .entry import IpnsEntry, ValidityType
from .timefmt import format_duration, format_validity, parse_duration, parse_validity

__all__ = [
    "IpnsRecord",
    "IpnsEntry",
    "ValidityType",
    "create_record",
    "parse_record",
    "verify_record",
    "signature_v1_payload",
    "signature_v2_payload",
    "format_validity",
    "parse_validity",
    "format_duration",
    "parse_duration",
]
