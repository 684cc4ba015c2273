"""Tests for the IpnsEntry protobuf message."""

import pytest

from ipns_utils.record import IpnsEntry, ValidityType
from ipns_utils.types import MalformedRecord


class TestEncode:
    """Tests for entry encoding."""

    def test_field_order_and_tags(self) -> None:
        """Set fields are written in field-number order with their tags."""
        entry = IpnsEntry(
            value=b"v",
            signature_v1=b"s",
            validity_type=ValidityType.EOL,
            validity=b"t",
            sequence=300,
            ttl=1,
        )
        assert entry.encode() == (
            b"\x0a\x01v"  # 1: value
            b"\x12\x01s"  # 2: signatureV1
            b"\x18\x00"  # 3: validityType
            b"\x22\x01t"  # 4: validity
            b"\x28\xac\x02"  # 5: sequence
            b"\x30\x01"  # 6: ttl
        )

    def test_unset_fields_omitted(self) -> None:
        """An empty entry encodes to nothing."""
        assert IpnsEntry().encode() == b""

    def test_empty_is_not_absent(self) -> None:
        """An empty value is still written."""
        encoded = IpnsEntry(value=b"").encode()
        assert encoded == b"\x0a\x00"
        assert IpnsEntry.decode(encoded).value == b""

    def test_optional_fields(self) -> None:
        """pubKey, signatureV2 and data use fields 7, 8 and 9."""
        encoded = IpnsEntry(pub_key=b"k", signature_v2=b"s", data=b"d").encode()
        assert encoded == b"\x3a\x01k\x42\x01s\x4a\x01d"


class TestDecode:
    """Tests for entry decoding."""

    def test_round_trip(self) -> None:
        """All fields survive encoding and decoding."""
        entry = IpnsEntry(
            value=b"/ipfs/bafkqaaa",
            signature_v1=b"sig1",
            validity_type=0,
            validity=b"2030-01-01T00:00:00.000000000Z",
            sequence=(1 << 64) - 1,
            ttl=10**9,
            pub_key=b"key",
            signature_v2=b"sig2",
            data=b"doc",
        )
        assert IpnsEntry.decode(entry.encode()) == entry

    def test_unknown_fields_skipped(self) -> None:
        """Fields outside the schema are ignored."""
        data = b"\x78\x05" + b"\x0a\x01v" + b"\x82\x01\x02ab"
        assert IpnsEntry.decode(data) == IpnsEntry(value=b"v")

    def test_last_value_wins(self) -> None:
        """A repeated field keeps its last occurrence."""
        assert IpnsEntry.decode(b"\x28\x01\x28\x02").sequence == 2

    def test_wrong_wire_type(self) -> None:
        """A bytes field sent as a varint is malformed."""
        with pytest.raises(MalformedRecord, match="wire type"):
            IpnsEntry.decode(b"\x08\x01")

    def test_length_past_end(self) -> None:
        """A length running past the end is malformed, with its offset."""
        with pytest.raises(MalformedRecord) as exc_info:
            IpnsEntry.decode(b"\x0a\x05ab")
        assert exc_info.value.offset == 2

    def test_truncated_varint(self) -> None:
        """A truncated sequence varint is malformed."""
        with pytest.raises(MalformedRecord):
            IpnsEntry.decode(b"\x28\x80")

    def test_field_zero(self) -> None:
        """Field number 0 does not exist."""
        with pytest.raises(MalformedRecord):
            IpnsEntry.decode(b"\x00\x00")

    @pytest.mark.parametrize("tag", [b"\x28", b"\x30"])
    def test_uint64_overflow(self, tag: bytes) -> None:
        """A sequence or ttl beyond 2^64 - 1 is malformed."""
        with pytest.raises(MalformedRecord, match="overflows 64 bits") as exc_info:
            IpnsEntry.decode(tag + b"\xff" * 9 + b"\x7f")
        assert exc_info.value.offset == 1
