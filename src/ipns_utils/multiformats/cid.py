"""
Content identifiers (CIDs).

A CID is a versioned, self-describing content address::

    CIDv0:  <multihash>                                 (base58btc, no prefix)
    CIDv1:  <varint version=1><varint codec><multihash>  (any multibase)

CIDv0 is the legacy form: always dag-pb, always sha2-256, always displayed in
base58btc without a multibase prefix ("Qm..."). CIDv1 names its codec
explicitly; IPNS keys use "libp2p-key" and DHT rendezvous keys use "raw".

Legacy libp2p peer ids that inline their public key ("12D3KooW...",
"16Uiu2...") are base58btc identity multihashes. They are accepted as
version 0 identifiers too, the way go-libp2p's ``peer.Decode`` accepts them.

References:
    https://github.com/multiformats/cid
    https://github.com/libp2p/specs/blob/master/peer-ids/peer-ids.md#string-representation
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from ipns_utils.types import DecodeError

from . import multibase
from .multibase import BASE32, Base58, Encoding
from .multihash import Multihash, MultihashCode
from .varint import VarintError, decode_varint, encode_varint

__all__ = [
    "Cid",
    "Multicodec",
]


class Multicodec(IntEnum):
    """Content codecs used by IPNS identifiers."""

    RAW = 0x55
    """Raw binary, used for DHT rendezvous keys."""

    DAG_PB = 0x70
    """MerkleDAG protobuf, the implicit codec of CIDv0."""

    LIBP2P_KEY = 0x72
    """Serialized libp2p public key, the codec of IPNS keys."""


_V0_STRING_LENGTH = 46
_V0_STRING_PREFIX = "Qm"
_LEGACY_PEER_ID_PREFIX = "1"


@dataclass(frozen=True, slots=True)
class Cid:
    """
    A content identifier.

    Attributes:
        version: CID version (0 or 1 for anything this tool produces).
        codec: Multicodec of the addressed content.
        multihash: Digest of the addressed content.
    """

    version: int
    """CID version."""

    codec: int
    """Content multicodec, usually a Multicodec."""

    multihash: Multihash
    """The underlying multihash."""

    @classmethod
    def v0(cls, multihash: Multihash) -> Cid:
        """Create a CIDv0 (implicit dag-pb codec) around a multihash."""
        return cls(version=0, codec=Multicodec.DAG_PB, multihash=multihash)

    @classmethod
    def v1(cls, codec: int, multihash: Multihash) -> Cid:
        """Create a CIDv1 with an explicit codec."""
        return cls(version=1, codec=codec, multihash=multihash)

    def encode(self) -> bytes:
        """
        Return the binary CID.

        CIDv0 is the bare multihash; later versions are prefixed with
        the version and codec varints.
        """
        if self.version == 0:
            return self.multihash.encode()
        return encode_varint(self.version) + encode_varint(self.codec) + self.multihash.encode()

    def to_string(self, encoding: Encoding | str | None = None) -> str:
        """
        Return the textual CID.

        Args:
            encoding: Multibase encoding for CIDv1. Defaults to base32.
                Ignored for CIDv0, which is always unprefixed base58btc.

        Returns:
            String form of the CID.
        """
        if self.version == 0:
            return Base58.encode(self.multihash.encode())
        return multibase.encode(encoding or BASE32, self.encode())

    def __str__(self) -> str:
        """Return the default string form."""
        return self.to_string()

    def __repr__(self) -> str:
        """Return detailed representation."""
        return f"Cid({self!s})"

    @classmethod
    def from_bytes(cls, data: bytes) -> Cid:
        """
        Parse a binary CID.

        Args:
            data: Binary CID (bare sha2-256 multihash for v0).

        Returns:
            Parsed CID. Versions above 1 are parsed with the v1 layout and
            left for the caller to accept or reject.

        Raises:
            DecodeError: If the bytes are not a well-formed CID.
        """
        # A bare 34-byte sha2-256 multihash is a CIDv0.
        if len(data) == 34 and data[0] == MultihashCode.SHA2_256 and data[1] == 32:
            return cls.v0(Multihash.decode(data))

        try:
            version, consumed = decode_varint(data, 0)
            pos = consumed
            codec, consumed = decode_varint(data, pos)
            pos += consumed
        except VarintError as e:
            raise DecodeError(f"Invalid CID prefix: {e}") from e

        if version == 0:
            raise DecodeError("CIDv0 must be a bare sha2-256 multihash")

        return cls(version=version, codec=codec, multihash=Multihash.decode(data[pos:]))

    @classmethod
    def decode(cls, text: str) -> Cid:
        """
        Parse a textual CID.

        Accepts:
            - "Qm..." base58btc CIDv0 strings (46 characters)
            - "1..." base58btc legacy peer ids with an identity multihash
            - multibase-prefixed CIDv1 strings

        Raises:
            DecodeError: If the string is not a valid CID.
        """
        if not text:
            raise DecodeError("Empty CID string")

        if len(text) == _V0_STRING_LENGTH and text.startswith(_V0_STRING_PREFIX):
            try:
                raw = Base58.decode(text)
            except ValueError as e:
                raise DecodeError(f"Invalid CIDv0: {e}") from e
            multihash = Multihash.decode(raw)
            if not multihash.is_sha2_256:
                raise DecodeError("CIDv0 must use a sha2-256 multihash")
            return cls.v0(multihash)

        if text.startswith(_LEGACY_PEER_ID_PREFIX):
            try:
                raw = Base58.decode(text)
            except ValueError as e:
                raise DecodeError(f"Invalid peer id: {e}") from e
            return cls.v0(Multihash.decode(raw))

        _, raw = multibase.decode(text)
        return cls.from_bytes(raw)
