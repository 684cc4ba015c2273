"""
libp2p key pairs for IPNS.

IPNS names are public keys. Four key types are used on the network, each
serialized the way go-libp2p serializes it (crypto.proto)::

    message PublicKey  { required KeyType Type = 1; required bytes Data = 2; }
    message PrivateKey { required KeyType Type = 1; required bytes Data = 2; }

``Data`` holds the raw key material:

    +-----------+-----------------------------------+-------------------------+
    | KeyType   | private Data                      | public Data             |
    +===========+===================================+=========================+
    | RSA       | PKCS#1 DER                        | PKIX DER                |
    | Ed25519   | 32-byte seed || 32-byte public key| 32 bytes                |
    | Secp256k1 | 32-byte scalar                    | 33-byte compressed point|
    | ECDSA     | SEC1 DER (ECPrivateKey)           | PKIX DER                |
    +-----------+-----------------------------------+-------------------------+

Signatures:
    - Ed25519: pure Ed25519
    - Secp256k1: ECDSA over SHA-256, DER, low-S normalized
    - ECDSA: ECDSA over SHA-256, DER
    - RSA: PKCS#1 v1.5 over SHA-256

All primitives come from the ``cryptography`` package.

References:
    - https://github.com/libp2p/specs/blob/master/peer-ids/peer-ids.md#keys
    - https://github.com/libp2p/go-libp2p/blob/master/core/crypto/pb/crypto.proto
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Final

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from ipns_utils import protobuf
from ipns_utils.types import CryptoError, InputError, KeyDecodeError, UnsupportedKeyType

__all__ = [
    "KeyType",
    "KeyPair",
    "PublicKey",
    "DEFAULT_RSA_BITS",
    "MIN_RSA_BITS",
]

logger = logging.getLogger(__name__)


class KeyType(IntEnum):
    """
    libp2p-crypto key type codes (from crypto.proto KeyType enum).

    These identify the cryptographic algorithm used for the key.
    """

    RSA = 0
    """RSA key."""

    ED25519 = 1
    """Ed25519 key."""

    SECP256K1 = 2
    """secp256k1 key (Bitcoin curve)."""

    ECDSA = 3
    """ECDSA key on a NIST curve (P-256 when generated here)."""

    @property
    def display_name(self) -> str:
        """Name as printed by go-libp2p ("RSA", "Ed25519", ...)."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> KeyType:
        """
        Look up a key type by its command-line name.

        Args:
            name: One of "rsa", "ed25519", "secp256k1", "ecdsa" (any case).

        Raises:
            UnsupportedKeyType: For any other name.
        """
        try:
            return cls[name.upper()]
        except KeyError:
            raise UnsupportedKeyType(name) from None

    @classmethod
    def from_tag(cls, tag: int) -> KeyType:
        """
        Look up a key type by its protobuf enum value.

        Raises:
            UnsupportedKeyType: For an unknown value.
        """
        try:
            return cls(tag)
        except ValueError:
            raise UnsupportedKeyType(tag) from None


_DISPLAY_NAMES: Final[dict[KeyType, str]] = {
    KeyType.RSA: "RSA",
    KeyType.ED25519: "Ed25519",
    KeyType.SECP256K1: "Secp256k1",
    KeyType.ECDSA: "ECDSA",
}

DEFAULT_RSA_BITS: Final[int] = 2048
"""RSA modulus size when no size is requested."""

MIN_RSA_BITS: Final[int] = 2048
"""Smallest RSA modulus go-libp2p accepts."""

_TAG_TYPE: Final[int] = 1
_TAG_DATA: Final[int] = 2

_ED25519_SEED_LENGTH: Final[int] = 32
_SECP256K1_ORDER: Final[int] = (
    0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
)


def _encode_key_proto(key_type: KeyType, data: bytes) -> bytes:
    """Encode a PublicKey / PrivateKey protobuf message."""
    return protobuf.encode_uint64(_TAG_TYPE, key_type) + protobuf.encode_bytes(_TAG_DATA, data)


def _decode_key_proto(data: bytes) -> tuple[KeyType, bytes]:
    """
    Decode a PublicKey / PrivateKey protobuf message.

    Raises:
        KeyDecodeError: If the message is malformed or a field is missing.
        UnsupportedKeyType: If the type tag is unknown.
    """
    tag: int | None = None
    material: bytes | None = None

    try:
        for field_number, wire_type, value in protobuf.iter_fields(data):
            if field_number == _TAG_TYPE and wire_type == protobuf.WIRE_TYPE_VARINT:
                assert isinstance(value, int)
                tag = value
            elif field_number == _TAG_DATA and wire_type == protobuf.WIRE_TYPE_LENGTH_DELIMITED:
                assert isinstance(value, bytes)
                material = value
    except protobuf.ProtobufError as e:
        raise KeyDecodeError(str(e)) from e

    if tag is None:
        raise KeyDecodeError("missing key type")
    if material is None:
        raise KeyDecodeError("missing key data")

    return KeyType.from_tag(tag), material


def _low_s(signature: bytes) -> bytes:
    """Normalize a DER secp256k1 signature to the lower half of the curve order."""
    r, s = decode_dss_signature(signature)
    if s > _SECP256K1_ORDER // 2:
        s = _SECP256K1_ORDER - s
    return encode_dss_signature(r, s)


@dataclass(frozen=True, slots=True)
class PublicKey:
    """
    A typed libp2p public key.

    Attributes:
        key_type: Algorithm of the key.
        key: The underlying ``cryptography`` public key.
    """

    key_type: KeyType
    """Key algorithm type."""

    key: PublicKeyTypes
    """Public key object."""

    def raw(self) -> bytes:
        """
        Return the raw public key material (the protobuf ``Data`` field).

        Returns:
            32 bytes for Ed25519, 33 compressed bytes for secp256k1,
            PKIX DER for RSA and ECDSA.
        """
        match self.key_type:
            case KeyType.ED25519:
                return self.key.public_bytes(
                    encoding=serialization.Encoding.Raw,
                    format=serialization.PublicFormat.Raw,
                )
            case KeyType.SECP256K1:
                return self.key.public_bytes(
                    encoding=serialization.Encoding.X962,
                    format=serialization.PublicFormat.CompressedPoint,
                )
            case _:
                return self.key.public_bytes(
                    encoding=serialization.Encoding.DER,
                    format=serialization.PublicFormat.SubjectPublicKeyInfo,
                )

    def to_bytes(self) -> bytes:
        """Serialize as a libp2p PublicKey protobuf."""
        return _encode_key_proto(self.key_type, self.raw())

    def verify(self, message: bytes, signature: bytes) -> bool:
        """
        Verify a signature made by the matching private key.

        Args:
            message: Data that was signed.
            signature: Signature bytes in the key type's format.

        Returns:
            True if the signature is valid, False otherwise.
        """
        try:
            match self.key_type:
                case KeyType.ED25519:
                    self.key.verify(signature, message)
                case KeyType.SECP256K1 | KeyType.ECDSA:
                    self.key.verify(signature, message, ec.ECDSA(hashes.SHA256()))
                case KeyType.RSA:
                    self.key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
        except (InvalidSignature, ValueError):
            return False
        return True

    @classmethod
    def from_raw(cls, key_type: KeyType, data: bytes) -> PublicKey:
        """
        Load a public key from raw material.

        Raises:
            KeyDecodeError: If the material is invalid for the key type.
        """
        try:
            match key_type:
                case KeyType.ED25519:
                    key: PublicKeyTypes = ed25519.Ed25519PublicKey.from_public_bytes(data)
                case KeyType.SECP256K1:
                    key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), data)
                case KeyType.RSA | KeyType.ECDSA:
                    key = serialization.load_der_public_key(data)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise KeyDecodeError(f"invalid {key_type.display_name} public key: {e}") from e

        _check_algorithm(key_type, key)
        return cls(key_type=key_type, key=key)

    @classmethod
    def from_bytes(cls, data: bytes) -> PublicKey:
        """
        Load a public key from a libp2p PublicKey protobuf.

        Raises:
            KeyDecodeError: If the message or key material is invalid.
            UnsupportedKeyType: If the key type tag is unknown.
        """
        key_type, material = _decode_key_proto(data)
        return cls.from_raw(key_type, material)


@dataclass(frozen=True, slots=True)
class KeyPair:
    """
    A typed libp2p key pair.

    The private key is excluded from ``repr`` so it never ends up in logs.

    Attributes:
        key_type: Algorithm of the key pair.
        private_key: The underlying ``cryptography`` private key.
    """

    key_type: KeyType
    """Key algorithm type."""

    private_key: PrivateKeyTypes = field(repr=False)
    """Private key object."""

    @classmethod
    def generate(cls, key_type: KeyType, bits: int | None = None) -> KeyPair:
        """
        Generate a new random key pair.

        Args:
            key_type: Algorithm to generate.
            bits: RSA modulus size. Ignored for the other key types.

        Returns:
            A fresh key pair.

        Raises:
            InputError: If an RSA size below 2048 bits is requested.
        """
        if bits is not None and key_type != KeyType.RSA:
            logger.debug("Ignoring key size %d for %s key", bits, key_type.display_name)

        match key_type:
            case KeyType.ED25519:
                private_key: PrivateKeyTypes = ed25519.Ed25519PrivateKey.generate()
            case KeyType.SECP256K1:
                private_key = ec.generate_private_key(ec.SECP256K1())
            case KeyType.ECDSA:
                private_key = ec.generate_private_key(ec.SECP256R1())
            case KeyType.RSA:
                size = DEFAULT_RSA_BITS if bits is None or bits <= 0 else bits
                if size < MIN_RSA_BITS:
                    raise InputError(f"RSA keys must be at least {MIN_RSA_BITS} bits, got {size}")
                private_key = rsa.generate_private_key(public_exponent=65537, key_size=size)
            case _:
                raise UnsupportedKeyType(key_type)

        return cls(key_type=key_type, private_key=private_key)

    @classmethod
    def from_raw(cls, key_type: KeyType, data: bytes) -> KeyPair:
        """
        Load a key pair from raw private material.

        Raises:
            KeyDecodeError: If the material is invalid for the key type.
        """
        try:
            match key_type:
                case KeyType.ED25519:
                    private_key: PrivateKeyTypes = _ed25519_from_raw(data)
                case KeyType.SECP256K1:
                    if len(data) != 32:
                        raise ValueError(f"expected 32 bytes, got {len(data)}")
                    private_key = ec.derive_private_key(
                        int.from_bytes(data, "big"),
                        ec.SECP256K1(),
                    )
                case KeyType.RSA | KeyType.ECDSA:
                    private_key = serialization.load_der_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyDecodeError(f"invalid {key_type.display_name} private key: {e}") from e

        _check_algorithm(key_type, private_key)
        return cls(key_type=key_type, private_key=private_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> KeyPair:
        """
        Load a key pair from a libp2p PrivateKey protobuf.

        Raises:
            KeyDecodeError: If the message or key material is invalid.
            UnsupportedKeyType: If the key type tag is unknown.
        """
        key_type, material = _decode_key_proto(data)
        return cls.from_raw(key_type, material)

    def raw(self) -> bytes:
        """
        Return the raw private key material (the protobuf ``Data`` field).

        This is the only accessor that exposes secret bytes.
        """
        match self.key_type:
            case KeyType.ED25519:
                seed = self.private_key.private_bytes(
                    encoding=serialization.Encoding.Raw,
                    format=serialization.PrivateFormat.Raw,
                    encryption_algorithm=serialization.NoEncryption(),
                )
                return seed + self.public_key.raw()
            case KeyType.SECP256K1:
                return self.private_key.private_numbers().private_value.to_bytes(32, "big")
            case _:
                return self.private_key.private_bytes(
                    encoding=serialization.Encoding.DER,
                    format=serialization.PrivateFormat.TraditionalOpenSSL,
                    encryption_algorithm=serialization.NoEncryption(),
                )

    def to_bytes(self) -> bytes:
        """Serialize as a libp2p PrivateKey protobuf (the key export format)."""
        return _encode_key_proto(self.key_type, self.raw())

    @property
    def public_key(self) -> PublicKey:
        """The public half of this key pair."""
        return PublicKey(key_type=self.key_type, key=self.private_key.public_key())

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message.

        Args:
            message: Data to sign.

        Returns:
            Signature in the key type's format.

        Raises:
            CryptoError: If the backend fails to sign.
        """
        try:
            match self.key_type:
                case KeyType.ED25519:
                    return self.private_key.sign(message)
                case KeyType.SECP256K1:
                    return _low_s(self.private_key.sign(message, ec.ECDSA(hashes.SHA256())))
                case KeyType.ECDSA:
                    return self.private_key.sign(message, ec.ECDSA(hashes.SHA256()))
                case KeyType.RSA:
                    return self.private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"Signing with {self.key_type.display_name} key failed: {e}") from e
        raise UnsupportedKeyType(self.key_type)


def _ed25519_from_raw(data: bytes) -> ed25519.Ed25519PrivateKey:
    """
    Load an Ed25519 private key from libp2p raw material.

    Accepts the current 64-byte form (seed || public key) and the legacy
    96-byte form, which repeats the public key.
    """
    if len(data) == 96:
        if data[64:] != data[32:64]:
            raise ValueError("redundant public key does not match")
        data = data[:64]
    if len(data) != 64:
        raise ValueError(f"expected 64 bytes, got {len(data)}")

    private_key = ed25519.Ed25519PrivateKey.from_private_bytes(data[:_ED25519_SEED_LENGTH])
    derived = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    if derived != data[_ED25519_SEED_LENGTH:]:
        raise ValueError("public key does not match seed")
    return private_key


def _check_algorithm(key_type: KeyType, key: PrivateKeyTypes | PublicKeyTypes) -> None:
    """
    Ensure a key loaded from DER matches the declared key type.

    Raises:
        KeyDecodeError: On a mismatch, e.g. an RSA key tagged as ECDSA.
    """
    match key_type:
        case KeyType.ED25519:
            ok = isinstance(key, ed25519.Ed25519PrivateKey | ed25519.Ed25519PublicKey)
        case KeyType.RSA:
            ok = isinstance(key, rsa.RSAPrivateKey | rsa.RSAPublicKey)
            if ok and key.key_size < MIN_RSA_BITS:
                raise KeyDecodeError(f"RSA key of {key.key_size} bits is below {MIN_RSA_BITS}")
        case KeyType.SECP256K1:
            ok = isinstance(key, ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey)
        case KeyType.ECDSA:
            ok = isinstance(
                key, ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey
            ) and not isinstance(key.curve, ec.SECP256K1)

    if not ok:
        raise KeyDecodeError(f"key material is not a {key_type.display_name} key")
