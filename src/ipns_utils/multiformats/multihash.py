"""
Multihash: self-describing digests.

Format::

    [code (varint)][length (varint)][digest]

IPNS identifiers only ever carry two functions:

- identity (0x00): the "digest" is the data itself, used to inline small
  public keys so they can be recovered from the identifier
- sha2-256 (0x12): 32-byte SHA-256 digest

Other codes are still decoded and carried through unchanged, so an
identifier using them can be translated without being understood.

References:
    https://github.com/multiformats/multihash
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum

from ipns_utils.types import DecodeError

from .varint import VarintError, decode_varint, encode_varint

__all__ = [
    "Multihash",
    "MultihashCode",
]


class MultihashCode(IntEnum):
    """
    Multihash function codes used by IPNS.

    See: https://github.com/multiformats/multicodec/blob/master/table.csv
    """

    IDENTITY = 0x00
    """Identity "hash" - no hashing, just wraps the data."""

    SHA2_256 = 0x12
    """SHA-256 hash (32-byte output)."""


SHA2_256_LENGTH = 32
"""Digest size of sha2-256."""


@dataclass(frozen=True, slots=True)
class Multihash:
    """
    A self-describing hash in multihash format.

    Attributes:
        code: Hash function identifier.
        digest: Hash output (or raw data for identity).
    """

    code: int
    """Hash function code, usually a MultihashCode."""

    digest: bytes
    """Hash output or identity data."""

    def encode(self) -> bytes:
        """
        Encode as multihash bytes.

        Returns:
            ``varint(code) || varint(len(digest)) || digest``.
        """
        return encode_varint(self.code) + encode_varint(len(self.digest)) + self.digest

    @property
    def is_identity(self) -> bool:
        """True if the digest is the raw data (no hashing)."""
        return self.code == MultihashCode.IDENTITY

    @property
    def is_sha2_256(self) -> bool:
        """True if this is a 32-byte SHA-256 digest."""
        return self.code == MultihashCode.SHA2_256 and len(self.digest) == SHA2_256_LENGTH

    @classmethod
    def identity(cls, data: bytes) -> Multihash:
        """Create an identity multihash (no hashing)."""
        return cls(code=MultihashCode.IDENTITY, digest=data)

    @classmethod
    def sha2_256(cls, data: bytes) -> Multihash:
        """Create a SHA-256 multihash of data."""
        return cls(code=MultihashCode.SHA2_256, digest=hashlib.sha256(data).digest())

    @classmethod
    def decode(cls, data: bytes) -> Multihash:
        """
        Decode multihash bytes.

        The input must contain exactly one multihash, with nothing trailing.

        Args:
            data: Multihash-encoded bytes.

        Returns:
            Decoded multihash.

        Raises:
            DecodeError: If the bytes are truncated, have trailing data, or
                declare a digest length that does not match.
        """
        multihash, consumed = cls.decode_prefix(data)
        if consumed != len(data):
            raise DecodeError(f"Trailing {len(data) - consumed} bytes after multihash")
        return multihash

    @classmethod
    def decode_prefix(cls, data: bytes, offset: int = 0) -> tuple[Multihash, int]:
        """
        Decode a multihash at the start of data.

        Args:
            data: Bytes beginning with a multihash.
            offset: Starting position in data.

        Returns:
            Tuple of (multihash, bytes_consumed).

        Raises:
            DecodeError: If the multihash is truncated or malformed.
        """
        try:
            code, consumed = decode_varint(data, offset)
            pos = offset + consumed
            length, consumed = decode_varint(data, pos)
            pos += consumed
        except VarintError as e:
            raise DecodeError(f"Invalid multihash: {e}") from e

        if pos + length > len(data):
            raise DecodeError(
                f"Multihash digest truncated: need {length} bytes, have {len(data) - pos}"
            )

        if code == MultihashCode.SHA2_256 and length != SHA2_256_LENGTH:
            raise DecodeError(f"sha2-256 multihash must be 32 bytes, got {length}")

        digest = data[pos : pos + length]
        return cls(code=code, digest=digest), pos + length - offset
