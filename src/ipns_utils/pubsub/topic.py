"""
IPNS over PubSub identifiers.

Three names refer to the same IPNS key:

    IPNS key     Qm... / 12D3KooW... / bafz... / k51...      (CID of the key multihash)
    topic        /record/<base64url("/ipns/" + multihash)>   (pubsub channel)
    rendezvous   bafkrei...                                  (DHT key for topic peers)

key -> topic -> rendezvous is derived one way; topic -> key is the inverse of
the first step. Only the multihash of the key takes part: a CIDv0 and a
CIDv1 of the same key give the same topic.

Example::

    QmXMuMWm6k3CD3sHV824H2BT1ugcHKF6Tm13ZVM8RhGTB7
    -> /record/L2lwbnMvEiCGC1J-0c8fai1qZlZ8I5fg8BYN36Tn6tPXsodDl3PTig

References:
    - https://specs.ipfs.tech/ipns/ipns-pubsub-router/
    - https://github.com/libp2p/go-libp2p-pubsub-router
"""

from __future__ import annotations

import base64
from typing import Final

from ipns_utils.multiformats import Cid, Multicodec, Multihash
from ipns_utils.types import DecodeError, MalformedTopic, UnsupportedCIDVersion

__all__ = [
    "TOPIC_PREFIX",
    "IPNS_PREFIX",
    "RENDEZVOUS_PREFIX",
    "key_to_topic",
    "topic_to_key",
    "dht_rendezvous_key",
    "dht_rendezvous_key_from_identifier",
]

TOPIC_PREFIX: Final[str] = "/record/"
"""Prefix of every IPNS record topic."""

IPNS_PREFIX: Final[bytes] = b"/ipns/"
"""Namespace prefix of the routing key encoded in the topic."""

RENDEZVOUS_PREFIX: Final[bytes] = b"floodsub:"
"""Prefix hashed with the topic to form the DHT rendezvous key."""

_SUPPORTED_VERSIONS: Final[frozenset[int]] = frozenset({0, 1})


def _as_cid(identifier: Cid | str) -> Cid:
    return Cid.decode(identifier) if isinstance(identifier, str) else identifier


def key_to_topic(identifier: Cid | str) -> str:
    """
    Derive the PubSub topic of an IPNS key.

    Args:
        identifier: The IPNS key as a CID (v0 or v1) or its string form.

    Returns:
        ``"/record/" + base64url_nopad("/ipns/" + multihash_bytes)``.

    Raises:
        DecodeError: If the identifier string is not a valid CID.
        UnsupportedCIDVersion: If the CID version is not 0 or 1.
    """
    cid = _as_cid(identifier)
    if cid.version not in _SUPPORTED_VERSIONS:
        raise UnsupportedCIDVersion(cid.version)

    # The raw multihash bytes, not any textual rendering of them.
    routing_key = IPNS_PREFIX + cid.multihash.encode()
    encoded = base64.urlsafe_b64encode(routing_key).rstrip(b"=").decode("ascii")
    return TOPIC_PREFIX + encoded


def _decode_raw_url(text: str) -> bytes:
    """
    Decode unpadded URL-safe base64 strictly.

    Raises:
        DecodeError: On padding, characters outside the URL-safe alphabet,
            or an impossible length.
    """
    if "=" in text or "+" in text or "/" in text:
        raise DecodeError("Topic payload is not unpadded base64url")
    try:
        return base64.b64decode(text + "=" * (-len(text) % 4), altchars=b"-_", validate=True)
    except ValueError as e:
        # binascii.Error, or non-ASCII characters in the payload.
        raise DecodeError(f"Invalid base64url in topic: {e}") from e


def topic_to_key(topic: str, version: int = 0) -> Cid:
    """
    Recover the IPNS key of a PubSub topic.

    Args:
        topic: A topic produced by key_to_topic.
        version: CID version of the result. 0 gives the base58btc form
            ("Qm..." or "12D3KooW..."), 1 the libp2p-key CIDv1.

    Returns:
        The IPNS key. ``str()`` renders it in the requested form.

    Raises:
        MalformedTopic: If the "/record/" or "/ipns/" prefix is missing.
        DecodeError: If the payload is not base64url or not a multihash.
        UnsupportedCIDVersion: If version is not 0 or 1.
    """
    if not topic.startswith(TOPIC_PREFIX):
        raise MalformedTopic(topic, f"missing {TOPIC_PREFIX!r} prefix")

    routing_key = _decode_raw_url(topic[len(TOPIC_PREFIX) :])

    if not routing_key.startswith(IPNS_PREFIX):
        raise MalformedTopic(topic, f"payload lacks {IPNS_PREFIX.decode()!r} prefix")

    multihash = Multihash.decode(routing_key[len(IPNS_PREFIX) :])

    match version:
        case 0:
            return Cid.v0(multihash)
        case 1:
            return Cid.v1(Multicodec.LIBP2P_KEY, multihash)
        case _:
            raise UnsupportedCIDVersion(version)


def dht_rendezvous_key(topic: str) -> Cid:
    """
    Derive the DHT key under which peers of a topic meet.

    The topic is hashed as bytes. Undecodable bytes carried in a command-line
    argument (surrogate escapes) are hashed as the original bytes.

    Returns:
        CIDv1, raw codec, of ``sha2-256("floodsub:" + topic)``.

    Raises:
        DecodeError: If the topic holds characters with no byte encoding,
            such as lone surrogates.
    """
    try:
        raw = topic.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError as e:
        raise DecodeError(f"Topic is not encodable as bytes: {e}") from e
    return Cid.v1(Multicodec.RAW, Multihash.sha2_256(RENDEZVOUS_PREFIX + raw))


def dht_rendezvous_key_from_identifier(identifier: Cid | str) -> Cid:
    """Derive the DHT rendezvous key straight from an IPNS key."""
    return dht_rendezvous_key(key_to_topic(identifier))
