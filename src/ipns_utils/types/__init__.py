"""Reusable type definitions for the IPNS utilities."""

from .base import CamelModel, StrictBaseModel
from .exceptions import (
    CryptoError,
    DecodeError,
    IdentifierError,
    InputError,
    IpnsUtilsError,
    KeyDecodeError,
    KeyHandlingError,
    MalformedRecord,
    MalformedTopic,
    RecordError,
    UnsupportedCIDVersion,
    UnsupportedKeyType,
    UnsupportedValidityType,
)

__all__ = [
    "CamelModel",
    "StrictBaseModel",
    # Exceptions
    "IpnsUtilsError",
    "InputError",
    "KeyHandlingError",
    "KeyDecodeError",
    "UnsupportedKeyType",
    "CryptoError",
    "RecordError",
    "MalformedRecord",
    "UnsupportedValidityType",
    "IdentifierError",
    "DecodeError",
    "MalformedTopic",
    "UnsupportedCIDVersion",
]
