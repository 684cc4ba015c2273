"""
Multiformats primitives: varints, multibase, multihash and CIDs.

Only the parts IPNS identifiers need are implemented. Everything here is a
pure function of its input.
"""

from . import multibase
from .cid import Cid, Multicodec
from .multibase import Base58, Encoding, encoding_by_name
from .multihash import Multihash, MultihashCode
from .varint import VarintError, decode_varint, encode_varint

__all__ = [
    "multibase",
    "Base58",
    "Encoding",
    "encoding_by_name",
    "Cid",
    "Multicodec",
    "Multihash",
    "MultihashCode",
    "VarintError",
    "decode_varint",
    "encode_varint",
]
