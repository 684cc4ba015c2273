"""JSON views printed by the ``parse`` and ``verify`` commands."""

from __future__ import annotations

from ipns_utils.crypto import KeyPair, PublicKey
from ipns_utils.multiformats import multibase
from ipns_utils.record import IpnsRecord, format_duration
from ipns_utils.types import StrictBaseModel


class View(StrictBaseModel):
    """Base of the printed views."""

    def to_json(self) -> str:
        """Serialize with camel-case keys."""
        return self.model_dump_json(by_alias=True, indent=4)


class RecordView(View):
    """
    Human-readable summary of an IPNS record.

    Serialized with camel-case keys::

        {"value": ..., "sequenceNumber": ..., "eol": ..., "ttl": ..., "pubKey": ...}
    """

    value: str
    """Record value, decoded as UTF-8 with undecodable bytes escaped."""

    sequence_number: int
    """Record version."""

    eol: str
    """Validity timestamp as serialized in the record."""

    ttl: str
    """Cache duration in Go duration syntax."""

    pub_key: str
    """Embedded public key as base16 multibase, or empty."""

    @classmethod
    def of(cls, record: IpnsRecord) -> RecordView:
        """Summarize a parsed record."""
        return cls(
            value=record.value.decode("utf-8", errors="backslashreplace"),
            sequence_number=record.sequence,
            eol=record.validity.decode("ascii"),
            ttl=format_duration(record.ttl or 0),
            pub_key=(
                multibase.encode(multibase.BASE16, record.public_key) if record.public_key else ""
            ),
        )


class KeyView(View):
    """Summary of a serialized libp2p key."""

    private_key: bool
    """Whether the input was a private key."""

    key_type: str
    """Algorithm name, e.g. ``Ed25519``."""

    key_material: str
    """Raw key bytes as base16 multibase."""

    @classmethod
    def of(cls, key: KeyPair | PublicKey) -> KeyView:
        """Summarize a private or public key."""
        return cls(
            private_key=isinstance(key, KeyPair),
            key_type=key.key_type.display_name,
            key_material=multibase.encode(multibase.BASE16, key.raw()),
        )
