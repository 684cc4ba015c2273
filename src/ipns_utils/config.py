"""
Per-invocation configuration for the IPNS utilities.

Each subcommand turns its parsed arguments into one frozen model before doing
any work. Nothing downstream reads argparse state or mutates its settings.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any, Final

from pydantic import Field, ValidationError, field_validator, model_validator
from typing_extensions import Self

from ipns_utils.crypto import KeyType
from ipns_utils.multiformats import encoding_by_name
from ipns_utils.types import DecodeError, InputError, StrictBaseModel

UINT64_MAX: Final[int] = (1 << 64) - 1
"""Largest sequence number or ttl a record can carry."""

DEFAULT_LIFETIME: Final[timedelta] = timedelta(hours=24)
"""Record lifetime when neither --eol nor --lifetime is given."""

DEFAULT_VALUE: Final[str] = "/ipfs/bafkqaaa"
"""Record value when --value is not given (the empty identity CID)."""

DEFAULT_KEY_TYPE: Final[str] = "ed25519"
"""Key type generated when --type is not given."""

EOL_FLAG_LAYOUT: Final[str] = "%Y-%m-%dT%H:%M:%S"
"""Layout of the --eol flag, interpreted as UTC."""


class InputType(StrEnum):
    """How a positional record or key argument is interpreted."""

    BYTES = "bytes"
    """The argument itself is the serialized data."""

    MULTIBASE = "multibase"
    """The argument is multibase text."""

    PATH = "path"
    """The argument is a file to read."""


def resolve_eol(
    eol: datetime | None,
    lifetime: timedelta | None,
    now: datetime | None = None,
) -> datetime:
    """
    Pick the record expiry from the mutually exclusive --eol / --lifetime.

    Args:
        eol: Absolute expiry, if given.
        lifetime: Expiry relative to now, if given. May be negative.
        now: Reference time. Defaults to the current time.

    Returns:
        The expiry time, defaulting to now + 24 hours.

    Raises:
        InputError: If both eol and lifetime are given, or the lifetime
            moves the expiry outside the representable dates.
    """
    if eol is not None and lifetime is not None:
        raise InputError("cannot define lifetime and eol on a record, choose one")
    if eol is not None:
        return eol

    now = now or datetime.now(UTC)
    try:
        return now + (lifetime if lifetime is not None else DEFAULT_LIFETIME)
    except OverflowError as e:
        raise InputError(f"lifetime out of range: {lifetime}") from e


class CommandConfig(StrictBaseModel):
    """Base class of all subcommand configurations."""

    @classmethod
    def build(cls, **values: Any) -> Self:
        """
        Validate and construct a configuration.

        Raises:
            InputError: With the first validation message if anything is invalid.
        """
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            detail = first["msg"].removeprefix("Value error, ")
            raise InputError(f"{location}: {detail}" if location else detail) from e


class OutputConfig(CommandConfig):
    """Settings shared by commands that write serialized bytes."""

    output_base: str | None = None
    """Multibase name or prefix for the output, raw bytes if unset."""

    @field_validator("output_base")
    @classmethod
    def _validate_output_base(cls, v: str | None) -> str | None:
        """Accept a known multibase; empty means raw output."""
        if not v:
            return None
        try:
            encoding_by_name(v)
        except DecodeError as e:
            raise ValueError(e.message) from e
        return v


class CreateIdConfig(OutputConfig):
    """Settings of ``create id``."""

    key_type: KeyType
    """Algorithm of the key to generate."""

    size: int | None = None
    """RSA modulus size; ignored for other key types."""


class CreateRecordConfig(OutputConfig):
    """Settings of ``create record``."""

    key_file: Path | None = None
    """File holding a serialized private key."""

    key_encoded: str | None = None
    """Multibase-encoded serialized private key."""

    value: str = DEFAULT_VALUE
    """Path the record points to."""

    sequence: int = Field(default=0, ge=0, le=UINT64_MAX)
    """Record sequence number."""

    ttl: int = Field(default=0, ge=0, le=UINT64_MAX)
    """Cache duration in nanoseconds."""

    eol: datetime
    """Record expiry."""

    @model_validator(mode="after")
    def _check_key_source(self) -> Self:
        """Exactly one of key_file and key_encoded must be given."""
        if self.key_file is not None and self.key_encoded:
            raise ValueError("cannot pass a key file and encoded key")
        if self.key_file is None and not self.key_encoded:
            raise ValueError("no key specified, specify a key file or encoded key")
        return self


class InputConfig(CommandConfig):
    """Settings shared by commands that read a record or key argument."""

    source: str
    """The positional argument."""

    input_type: InputType = InputType.BYTES
    """How to interpret the positional argument."""


class ParseKeyConfig(InputConfig):
    """Settings of ``parse key``."""

    private: bool = True
    """Whether the input is a private (or public) key."""


class VerifyRecordConfig(InputConfig):
    """Settings of ``verify record``."""

    key: str = Field(min_length=1)
    """IPNS name the record must be signed for."""


class TopicConfig(CommandConfig):
    """Settings of the ``pubsub`` conversions."""

    key: str | None = None
    """IPNS key (CID string)."""

    topic: str | None = None
    """PubSub topic."""

    version: int = 0
    """CID version of converted keys."""
