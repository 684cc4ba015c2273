"""
libp2p key handling for IPNS.

Provides key pair generation and loading for the four libp2p key types,
signing and verification, and derivation of the IPNS identifier that names
a public key.
"""

from .identity import (
    IDENTITY_INLINE_LIMIT,
    identifier_of,
    multihash_of,
    public_key_from_identifier,
)
from .keys import DEFAULT_RSA_BITS, MIN_RSA_BITS, KeyPair, KeyType, PublicKey

__all__ = [
    "KeyPair",
    "KeyType",
    "PublicKey",
    "DEFAULT_RSA_BITS",
    "MIN_RSA_BITS",
    "IDENTITY_INLINE_LIMIT",
    "identifier_of",
    "multihash_of",
    "public_key_from_identifier",
]
