"""
Multibase: self-describing text encodings of binary data.

A multibase string is a one-character prefix naming the encoding, followed by
the encoded payload::

    "f" + "68656c6c6f"           base16
    "b" + "nbswy3dp"             base32 (lowercase, no padding)
    "z" + "Cn8eVZg"              base58btc
    "u" + "aGVsbG8"              base64url (no padding)

Encodings are looked up by name ("base32") or by prefix character ("b"),
matching what the command line accepts for ``--output-base``.

References:
    https://github.com/multiformats/multibase
    https://github.com/multiformats/multibase/blob/master/multibase.csv
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from ipns_utils.types import DecodeError

__all__ = [
    "BaseX",
    "Base36",
    "Base58",
    "Base58Flickr",
    "Encoding",
    "BASE16",
    "BASE32",
    "BASE58BTC",
    "BASE64URL",
    "encoding_by_name",
    "encode",
    "decode",
]


class BaseX:
    """
    Big-integer radix encoding over an arbitrary alphabet.

    Leading zero bytes are preserved as leading copies of the first alphabet
    character, as Bitcoin's Base58 does.

    Subclasses only set ``ALPHABET``; the radix is its length.
    """

    ALPHABET: str = ""

    @classmethod
    def encode(cls, data: bytes) -> str:
        """
        Encode bytes in this alphabet.

        Args:
            data: Bytes to encode.

        Returns:
            Encoded string.
        """
        radix = len(cls.ALPHABET)

        # Leading zero bytes vanish in the integer conversion.
        leading_zeros = len(data) - len(data.lstrip(b"\x00"))

        num = int.from_bytes(data, "big")
        result: list[str] = []
        while num > 0:
            num, remainder = divmod(num, radix)
            result.append(cls.ALPHABET[remainder])

        result.extend([cls.ALPHABET[0]] * leading_zeros)
        return "".join(reversed(result))

    @classmethod
    def decode(cls, s: str) -> bytes:
        """
        Decode a string in this alphabet.

        Args:
            s: Encoded string.

        Returns:
            Decoded bytes.

        Raises:
            ValueError: If the string contains characters outside the alphabet.
        """
        radix = len(cls.ALPHABET)
        zero = cls.ALPHABET[0]
        leading_zeros = len(s) - len(s.lstrip(zero))

        num = 0
        for char in s:
            index = cls.ALPHABET.find(char)
            if index < 0:
                raise ValueError(f"Invalid {cls.__name__} character: {char!r}")
            num = num * radix + index

        if num == 0:
            body = b""
        else:
            body = num.to_bytes((num.bit_length() + 7) // 8, "big")

        return b"\x00" * leading_zeros + body


class Base58(BaseX):
    """Base58 with the Bitcoin alphabet (no 0, O, I, l)."""

    ALPHABET: Final[str] = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class Base58Flickr(BaseX):
    """Base58 with the Flickr alphabet (lowercase before uppercase)."""

    ALPHABET: Final[str] = "123456789abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ"


class Base36(BaseX):
    """Base36, lowercase digits."""

    ALPHABET: Final[str] = "0123456789abcdefghijklmnopqrstuvwxyz"


def _pad(s: str, quantum: int) -> str:
    """Restore RFC 4648 padding stripped by the unpadded variants."""
    return s + "=" * (-len(s) % quantum)


def _b16decode(s: str, *, upper: bool) -> bytes:
    # Case is part of the encoding: "f" is lowercase only, "F" uppercase only.
    if s != (s.upper() if upper else s.lower()):
        raise ValueError("base16 case does not match prefix")
    return base64.b16decode(s.upper())


def _b32decode(s: str, *, upper: bool, hex_alphabet: bool, padded: bool) -> bytes:
    if s != (s.upper() if upper else s.lower()):
        raise ValueError("base32 case does not match prefix")
    if not padded and "=" in s:
        raise ValueError("unexpected padding")
    text = s.upper() if padded else _pad(s.upper(), 8)
    if hex_alphabet:
        return base64.b32hexdecode(text)
    return base64.b32decode(text)


def _b64decode(s: str, *, url: bool, padded: bool) -> bytes:
    if not padded and "=" in s:
        raise ValueError("unexpected padding")
    if url and ("+" in s or "/" in s):
        raise ValueError("standard alphabet character in base64url payload")
    text = s if padded else _pad(s, 4)
    altchars = b"-_" if url else b"+/"
    return base64.b64decode(text, altchars=altchars, validate=True)


def _b2encode(data: bytes) -> str:
    return "".join(f"{byte:08b}" for byte in data)


def _b2decode(s: str) -> bytes:
    if len(s) % 8 or set(s) - {"0", "1"}:
        raise ValueError("base2 payload must be whole bytes of 0/1 digits")
    return bytes(int(s[i : i + 8], 2) for i in range(0, len(s), 8))


def _basex_decode_upper(codec: type[BaseX]) -> Callable[[str], bytes]:
    def decode_upper(s: str) -> bytes:
        if s != s.upper():
            raise ValueError(f"{codec.__name__} case does not match prefix")
        return codec.decode(s.lower())

    return decode_upper


@dataclass(frozen=True, slots=True)
class Encoding:
    """
    A multibase encoding.

    Attributes:
        name: Canonical multibase name, e.g. "base32".
        prefix: The single prefix character, e.g. "b".
    """

    name: str
    """Canonical multibase name."""

    prefix: str
    """Prefix character identifying the encoding."""

    _encode: Callable[[bytes], str]
    _decode: Callable[[str], bytes]

    def encode(self, data: bytes) -> str:
        """Encode bytes, including the prefix character."""
        return self.prefix + self._encode(data)

    def decode_payload(self, payload: str) -> bytes:
        """
        Decode an encoded payload without its prefix.

        Raises:
            DecodeError: If the payload is not valid in this encoding.
        """
        try:
            return self._decode(payload)
        except (ValueError, binascii.Error) as e:
            raise DecodeError(f"Invalid {self.name} payload: {e}") from e


BASE2 = Encoding("base2", "0", _b2encode, _b2decode)
BASE16 = Encoding(
    "base16",
    "f",
    lambda b: b.hex(),
    lambda s: _b16decode(s, upper=False),
)
BASE16_UPPER = Encoding(
    "base16upper",
    "F",
    lambda b: b.hex().upper(),
    lambda s: _b16decode(s, upper=True),
)
BASE32 = Encoding(
    "base32",
    "b",
    lambda b: base64.b32encode(b).decode("ascii").rstrip("=").lower(),
    lambda s: _b32decode(s, upper=False, hex_alphabet=False, padded=False),
)
BASE32_UPPER = Encoding(
    "base32upper",
    "B",
    lambda b: base64.b32encode(b).decode("ascii").rstrip("="),
    lambda s: _b32decode(s, upper=True, hex_alphabet=False, padded=False),
)
BASE32_PAD = Encoding(
    "base32pad",
    "c",
    lambda b: base64.b32encode(b).decode("ascii").lower(),
    lambda s: _b32decode(s, upper=False, hex_alphabet=False, padded=True),
)
BASE32_PAD_UPPER = Encoding(
    "base32padupper",
    "C",
    lambda b: base64.b32encode(b).decode("ascii"),
    lambda s: _b32decode(s, upper=True, hex_alphabet=False, padded=True),
)
BASE32_HEX = Encoding(
    "base32hex",
    "v",
    lambda b: base64.b32hexencode(b).decode("ascii").rstrip("=").lower(),
    lambda s: _b32decode(s, upper=False, hex_alphabet=True, padded=False),
)
BASE32_HEX_UPPER = Encoding(
    "base32hexupper",
    "V",
    lambda b: base64.b32hexencode(b).decode("ascii").rstrip("="),
    lambda s: _b32decode(s, upper=True, hex_alphabet=True, padded=False),
)
BASE32_HEX_PAD = Encoding(
    "base32hexpad",
    "t",
    lambda b: base64.b32hexencode(b).decode("ascii").lower(),
    lambda s: _b32decode(s, upper=False, hex_alphabet=True, padded=True),
)
BASE32_HEX_PAD_UPPER = Encoding(
    "base32hexpadupper",
    "T",
    lambda b: base64.b32hexencode(b).decode("ascii"),
    lambda s: _b32decode(s, upper=True, hex_alphabet=True, padded=True),
)
BASE36 = Encoding("base36", "k", Base36.encode, Base36.decode)
BASE36_UPPER = Encoding(
    "base36upper",
    "K",
    lambda b: Base36.encode(b).upper(),
    _basex_decode_upper(Base36),
)
BASE58BTC = Encoding("base58btc", "z", Base58.encode, Base58.decode)
BASE58FLICKR = Encoding("base58flickr", "Z", Base58Flickr.encode, Base58Flickr.decode)
BASE64 = Encoding(
    "base64",
    "m",
    lambda b: base64.b64encode(b).decode("ascii").rstrip("="),
    lambda s: _b64decode(s, url=False, padded=False),
)
BASE64_PAD = Encoding(
    "base64pad",
    "M",
    lambda b: base64.b64encode(b).decode("ascii"),
    lambda s: _b64decode(s, url=False, padded=True),
)
BASE64URL = Encoding(
    "base64url",
    "u",
    lambda b: base64.urlsafe_b64encode(b).decode("ascii").rstrip("="),
    lambda s: _b64decode(s, url=True, padded=False),
)
BASE64URL_PAD = Encoding(
    "base64urlpad",
    "U",
    lambda b: base64.urlsafe_b64encode(b).decode("ascii"),
    lambda s: _b64decode(s, url=True, padded=True),
)

_ENCODINGS: Final[tuple[Encoding, ...]] = (
    BASE2,
    BASE16,
    BASE16_UPPER,
    BASE32,
    BASE32_UPPER,
    BASE32_PAD,
    BASE32_PAD_UPPER,
    BASE32_HEX,
    BASE32_HEX_UPPER,
    BASE32_HEX_PAD,
    BASE32_HEX_PAD_UPPER,
    BASE36,
    BASE36_UPPER,
    BASE58BTC,
    BASE58FLICKR,
    BASE64,
    BASE64_PAD,
    BASE64URL,
    BASE64URL_PAD,
)

_BY_NAME: Final[dict[str, Encoding]] = {enc.name: enc for enc in _ENCODINGS}
_BY_PREFIX: Final[dict[str, Encoding]] = {enc.prefix: enc for enc in _ENCODINGS}


def encoding_by_name(name: str) -> Encoding:
    """
    Look up an encoding by multibase name or prefix character.

    Args:
        name: A name such as "base58btc" or a prefix such as "z".

    Returns:
        The matching encoding.

    Raises:
        DecodeError: If no encoding has that name or prefix.
    """
    encoding = _BY_NAME.get(name) or _BY_PREFIX.get(name)
    if encoding is None:
        raise DecodeError(f"Unknown multibase encoding: {name!r}")
    return encoding


def encode(encoding: Encoding | str, data: bytes) -> str:
    """Encode bytes as a multibase string."""
    if isinstance(encoding, str):
        encoding = encoding_by_name(encoding)
    return encoding.encode(data)


def decode(text: str) -> tuple[Encoding, bytes]:
    """
    Decode a multibase string.

    Args:
        text: Prefix character followed by the encoded payload.

    Returns:
        Tuple of (encoding, decoded_bytes).

    Raises:
        DecodeError: If the prefix is unknown or the payload is invalid.
    """
    if not text:
        raise DecodeError("Empty multibase string")

    encoding = _BY_PREFIX.get(text[0])
    if encoding is None:
        raise DecodeError(f"Unknown multibase prefix: {text[0]!r}")

    return encoding, encoding.decode_payload(text[1:])
