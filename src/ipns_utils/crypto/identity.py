"""
IPNS identifier derivation from public keys.

An IPNS name is the libp2p peer id of its signing key:

    1. Serialize the public key as a libp2p PublicKey protobuf
    2. If the serialization is <= 42 bytes: multihash(identity, serialized)
    3. Otherwise: multihash(sha2-256, serialized)

With the identity rule the public key can be recovered from the name
itself. Ed25519 (36 bytes serialized) and secp256k1 (37 bytes) are inlined;
RSA and ECDSA keys are hashed, so records signed by them must carry the
public key.

Display forms:
    - CIDv1 with the libp2p-key codec ("bafz..." / "k51..."), the default here
    - legacy base58btc multihash ("Qm..." for hashed, "12D3KooW..." for inlined)

References:
    - https://github.com/libp2p/specs/blob/master/peer-ids/peer-ids.md#peer-ids
    - https://specs.ipfs.tech/ipns/ipns-record/#ipns-name
"""

from __future__ import annotations

from typing import Final

from ipns_utils.multiformats import Cid, Multicodec, Multihash
from ipns_utils.types import KeyDecodeError

from .keys import PublicKey

__all__ = [
    "IDENTITY_INLINE_LIMIT",
    "identifier_of",
    "multihash_of",
    "public_key_from_identifier",
]

IDENTITY_INLINE_LIMIT: Final[int] = 42
"""Largest serialized public key that is inlined with the identity hash."""


def multihash_of(public_key: PublicKey) -> Multihash:
    """
    Derive the multihash naming a public key.

    Args:
        public_key: The key to name.

    Returns:
        Identity multihash for small keys, sha2-256 otherwise.
    """
    encoded = public_key.to_bytes()
    if len(encoded) <= IDENTITY_INLINE_LIMIT:
        return Multihash.identity(encoded)
    return Multihash.sha2_256(encoded)


def identifier_of(public_key: PublicKey) -> Cid:
    """
    Derive the IPNS identifier of a public key.

    Returns:
        CIDv1 with the libp2p-key codec.
    """
    return Cid.v1(Multicodec.LIBP2P_KEY, multihash_of(public_key))


def public_key_from_identifier(identifier: Cid) -> PublicKey:
    """
    Recover the public key inlined in an identifier.

    Args:
        identifier: An IPNS name in any CID form.

    Returns:
        The inlined public key.

    Raises:
        KeyDecodeError: If the identifier hashes its key instead of inlining
            it, or the inlined bytes are not a valid public key.
    """
    multihash = identifier.multihash
    if not multihash.is_identity:
        raise KeyDecodeError(f"public key is not inlined in identifier {identifier}")
    return PublicKey.from_bytes(multihash.digest)
