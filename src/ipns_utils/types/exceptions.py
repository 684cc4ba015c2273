"""Exception hierarchy for the IPNS utilities."""

from __future__ import annotations

from typing import ClassVar


class IpnsUtilsError(Exception):
    """
    Base exception for all errors surfaced to the command line.

    Every subclass carries the process exit code the CLI uses when the
    error aborts an invocation.

    Attributes:
        message: Human-readable error description.
    """

    exit_code: ClassVar[int] = 1
    """Process exit status for this error kind."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class InputError(IpnsUtilsError):
    """Missing, conflicting or out-of-range command arguments."""

    exit_code = 2


class KeyHandlingError(IpnsUtilsError):
    """Base class for key handling errors."""

    exit_code = 3


class KeyDecodeError(KeyHandlingError):
    """
    Raised when serialized key material cannot be decoded.

    Attributes:
        detail: Description of what went wrong.
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to decode key: {detail}")


class UnsupportedKeyType(KeyHandlingError):
    """
    Raised for key types that cannot be generated, loaded or identified.

    Attributes:
        key_type: The rejected key type name or protobuf tag.
    """

    def __init__(self, key_type: str | int) -> None:
        self.key_type = key_type
        super().__init__(f"Unsupported key type: {key_type!r}")


class CryptoError(KeyHandlingError):
    """Raised when signing or signature verification fails."""


class RecordError(IpnsUtilsError):
    """Base class for record parsing errors."""

    exit_code = 4


class MalformedRecord(RecordError):
    """
    Raised when record bytes do not form a valid IPNS entry.

    Attributes:
        detail: Description of what went wrong.
        offset: The byte offset where the error occurred (if known).
    """

    def __init__(self, detail: str, *, offset: int | None = None) -> None:
        self.detail = detail
        self.offset = offset

        msg = f"Malformed IPNS record: {detail}"
        if offset is not None:
            msg = f"{msg} (at byte offset {offset})"

        super().__init__(msg)


class UnsupportedValidityType(RecordError):
    """
    Raised when a record uses a validity type other than EOL.

    Attributes:
        validity_type: The numeric validity type found in the record.
    """

    def __init__(self, validity_type: int) -> None:
        self.validity_type = validity_type
        super().__init__(f"Unsupported validity type: {validity_type}")


class IdentifierError(IpnsUtilsError):
    """Base class for identifier translation errors."""

    exit_code = 5


class DecodeError(IdentifierError):
    """Raised when a multibase, CID, multihash or base64 payload is invalid."""


class MalformedTopic(IdentifierError):
    """
    Raised when a PubSub topic does not have the IPNS record shape.

    Attributes:
        topic: The rejected topic string (truncated for display).
    """

    def __init__(self, topic: str, detail: str) -> None:
        self.topic = topic
        self.detail = detail

        shown = topic if len(topic) <= 50 else topic[:47] + "..."
        super().__init__(f"Malformed topic {shown!r}: {detail}")


class UnsupportedCIDVersion(IdentifierError):
    """
    Raised for CID versions other than 0 and 1.

    Attributes:
        version: The rejected version number.
    """

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Unsupported CID version {version}")
