"""Tests for creating, parsing and verifying IPNS records."""

import logging
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import cbor2
import pytest

from ipns_utils.crypto import KeyPair, KeyType, identifier_of
from ipns_utils.record import (
    IpnsEntry,
    ValidityType,
    create_record,
    parse_record,
    signature_v1_payload,
    signature_v2_payload,
    verify_record,
)
from ipns_utils.types import (
    CryptoError,
    InputError,
    KeyDecodeError,
    MalformedRecord,
    UnsupportedValidityType,
)

EOL = datetime(2030, 1, 1, 12, 30, 15, 250000, tzinfo=UTC)
VALUE = "/ipfs/bafkqaaa"


def _entry(record: bytes) -> IpnsEntry:
    return IpnsEntry.decode(record)


class TestCreate:
    """Tests for record creation."""

    def test_round_trip(self, key_pair: KeyPair) -> None:
        """Parsed fields equal the created ones."""
        record = parse_record(create_record(key_pair, VALUE, 7, EOL, ttl=30 * 10**9))

        assert record.value == VALUE.encode()
        assert record.sequence == 7
        assert record.eol == EOL
        assert record.ttl == 30 * 10**9
        assert record.validity_type == ValidityType.EOL

    def test_validity_layout(self, ed25519_key: KeyPair) -> None:
        """The validity field is the nanosecond RFC 3339 form of the EOL."""
        entry = _entry(create_record(ed25519_key, VALUE, 0, EOL))
        assert entry.validity == b"2030-01-01T12:30:15.250000000Z"
        assert entry.validity_type == ValidityType.EOL

    def test_ttl_optional(self, ed25519_key: KeyPair) -> None:
        """Without a ttl the field is absent."""
        assert parse_record(create_record(ed25519_key, VALUE, 0, EOL)).ttl is None

    def test_ttl_zero_written(self, ed25519_key: KeyPair) -> None:
        """A zero ttl is present on the wire."""
        assert _entry(create_record(ed25519_key, VALUE, 0, EOL, ttl=0)).ttl == 0

    def test_sequence_extremes(self, ed25519_key: KeyPair) -> None:
        """Sequence numbers span the full uint64 range."""
        for sequence in (0, (1 << 64) - 1):
            record = parse_record(create_record(ed25519_key, VALUE, sequence, EOL))
            assert record.sequence == sequence

    @pytest.mark.parametrize(
        ("sequence", "ttl"),
        [(-1, None), (1 << 64, None), (0, -1), (0, 1 << 64)],
    )
    def test_out_of_range(self, ed25519_key: KeyPair, sequence: int, ttl: int | None) -> None:
        """Values outside uint64 are input errors."""
        with pytest.raises(InputError, match="uint64"):
            create_record(ed25519_key, VALUE, sequence, EOL, ttl)

    def test_empty_value_warns(
        self, ed25519_key: KeyPair, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Empty values are allowed but logged."""
        with caplog.at_level(logging.WARNING, logger="ipns_utils"):
            record = create_record(ed25519_key, "", 0, EOL)

        assert parse_record(record).value == b""
        assert "empty value" in caplog.text

    def test_bytes_value(self, ed25519_key: KeyPair) -> None:
        """Values may be given as bytes."""
        assert parse_record(create_record(ed25519_key, b"/ipns/x", 0, EOL)).value == b"/ipns/x"

    @pytest.mark.parametrize(
        ("key_type", "embedded"),
        [
            (KeyType.ED25519, False),
            (KeyType.SECP256K1, False),
            (KeyType.ECDSA, True),
            (KeyType.RSA, True),
        ],
    )
    def test_public_key_embedding(
        self, key_pairs: dict[KeyType, KeyPair], key_type: KeyType, embedded: bool
    ) -> None:
        """The public key is embedded exactly when the name hashes it."""
        key = key_pairs[key_type]
        record = parse_record(create_record(key, VALUE, 0, EOL))

        if embedded:
            assert record.public_key == key.public_key.to_bytes()
        else:
            assert record.public_key is None

    def test_signatures(self, key_pair: KeyPair) -> None:
        """Both signatures verify over their payloads."""
        record = parse_record(create_record(key_pair, VALUE, 3, EOL, ttl=5))
        public = key_pair.public_key

        assert record.data is not None
        assert record.signature_v2 is not None
        assert public.verify(signature_v1_payload(record.value, record.validity), record.signature)
        assert public.verify(signature_v2_payload(record.data), record.signature_v2)

    def test_signature_document(self, ed25519_key: KeyPair) -> None:
        """The signed document carries every field, sequence included."""
        record = parse_record(create_record(ed25519_key, VALUE, 9, EOL, ttl=5))
        assert record.data is not None
        assert cbor2.loads(record.data) == {
            "TTL": 5,
            "Value": VALUE.encode(),
            "Sequence": 9,
            "Validity": b"2030-01-01T12:30:15.250000000Z",
            "ValidityType": 0,
        }

    def test_signature_document_key_order(self, ed25519_key: KeyPair) -> None:
        """Document keys are in DAG-CBOR order: shorter keys first, then bytewise."""
        record = parse_record(create_record(ed25519_key, VALUE, 9, EOL, ttl=5))
        assert record.data is not None

        # Map of five entries, first key the 3-character text "TTL".
        assert record.data[:5] == b"\xa5\x63TTL"
        assert list(cbor2.loads(record.data)) == [
            "TTL",
            "Value",
            "Sequence",
            "Validity",
            "ValidityType",
        ]

    def test_signature_document_shortest_integers(self, ed25519_key: KeyPair) -> None:
        """Integers use their shortest header."""
        record = parse_record(create_record(ed25519_key, VALUE, 500, EOL, ttl=0))
        assert record.data is not None
        assert record.data.startswith(b"\xa5\x63TTL\x00")
        assert b"\x68Sequence\x19\x01\xf4" in record.data

    def test_payloads(self) -> None:
        """Signature payloads follow the IPNS record layout."""
        assert signature_v1_payload(b"/ipfs/x", b"2030") == b"/ipfs/x2030EOL"
        assert signature_v2_payload(b"doc") == b"ipns-signature:doc"


class TestParse:
    """Tests for record parsing."""

    @pytest.fixture
    def entry(self, ed25519_key: KeyPair) -> IpnsEntry:
        """A complete, valid entry."""
        return _entry(create_record(ed25519_key, VALUE, 1, EOL))

    @pytest.mark.parametrize(
        ("attribute", "wire_name"),
        [
            ("value", "value"),
            ("signature_v1", "signature"),
            ("validity_type", "validityType"),
            ("validity", "validity"),
            ("sequence", "sequence"),
        ],
    )
    def test_missing_required_field(
        self, entry: IpnsEntry, attribute: str, wire_name: str
    ) -> None:
        """Each required field is checked by name."""
        broken = replace(entry, **{attribute: None})
        with pytest.raises(MalformedRecord, match=f"missing required field {wire_name}$"):
            parse_record(broken.encode())

    def test_unsupported_validity_type(self, entry: IpnsEntry) -> None:
        """Validity types other than EOL are rejected."""
        with pytest.raises(UnsupportedValidityType) as exc_info:
            parse_record(replace(entry, validity_type=1).encode())
        assert exc_info.value.validity_type == 1

    def test_invalid_validity(self, entry: IpnsEntry) -> None:
        """An unparsable validity timestamp is malformed."""
        with pytest.raises(MalformedRecord, match="invalid validity"):
            parse_record(replace(entry, validity=b"tomorrow").encode())

    def test_non_ascii_validity(self, entry: IpnsEntry) -> None:
        """A validity that is not ASCII is malformed."""
        with pytest.raises(MalformedRecord, match="invalid validity"):
            parse_record(replace(entry, validity=b"\xff").encode())

    def test_garbage(self) -> None:
        """Bytes that are not a protobuf are malformed."""
        with pytest.raises(MalformedRecord):
            parse_record(b"\xff\xff\xff")

    def test_parsing_does_not_verify(self, entry: IpnsEntry) -> None:
        """Parsing succeeds even with a bogus signature."""
        record = parse_record(replace(entry, signature_v1=b"bogus").encode())
        assert record.signature == b"bogus"

    def test_expiry(self, ed25519_key: KeyPair) -> None:
        """is_expired compares the EOL with the given time."""
        record = parse_record(create_record(ed25519_key, VALUE, 0, EOL))
        assert not record.is_expired(EOL - timedelta(seconds=1))
        assert record.is_expired(EOL + timedelta(seconds=1))


class TestVerify:
    """Tests for record verification."""

    def test_valid(self, key_pair: KeyPair) -> None:
        """Records verify against their own name."""
        record = create_record(key_pair, VALUE, 4, EOL)
        verified = verify_record(record, identifier_of(key_pair.public_key))
        assert verified.sequence == 4

    def test_name_as_string(self, key_pair: KeyPair) -> None:
        """The name may be given in any textual form."""
        record = create_record(key_pair, VALUE, 0, EOL)
        name = identifier_of(key_pair.public_key).to_string("base36")
        assert verify_record(record, name).value == VALUE.encode()

    def test_parsed_record(self, ed25519_key: KeyPair) -> None:
        """Already parsed records are accepted."""
        record = parse_record(create_record(ed25519_key, VALUE, 0, EOL))
        assert verify_record(record, identifier_of(ed25519_key.public_key)) is record

    def test_wrong_name_inlined(self, key_pairs: dict[KeyType, KeyPair]) -> None:
        """A record does not verify against another inlined key."""
        record = create_record(key_pairs[KeyType.ED25519], VALUE, 0, EOL)
        other = identifier_of(key_pairs[KeyType.SECP256K1].public_key)
        with pytest.raises(CryptoError):
            verify_record(record, other)

    def test_wrong_name_embedded(self, key_pairs: dict[KeyType, KeyPair]) -> None:
        """An embedded key must derive to the claimed name."""
        record = create_record(key_pairs[KeyType.RSA], VALUE, 0, EOL)
        other = identifier_of(key_pairs[KeyType.ECDSA].public_key)
        with pytest.raises(CryptoError, match="does not match"):
            verify_record(record, other)

    def test_hashed_name_without_key(self, rsa_key: KeyPair) -> None:
        """A hashed name needs the embedded key."""
        entry = replace(_entry(create_record(rsa_key, VALUE, 0, EOL)), pub_key=None)
        with pytest.raises(KeyDecodeError):
            verify_record(entry.encode(), identifier_of(rsa_key.public_key))

    def test_tampered_field(self, key_pair: KeyPair) -> None:
        """Changing a signed field after signing is detected."""
        entry = _entry(create_record(key_pair, VALUE, 1, EOL))
        name = identifier_of(key_pair.public_key)
        for tampered in (
            replace(entry, value=b"/ipfs/other"),
            replace(entry, sequence=2),
            replace(entry, ttl=99),
        ):
            with pytest.raises(CryptoError):
                verify_record(tampered.encode(), name)

    def test_tampered_document(self, ed25519_key: KeyPair) -> None:
        """Changing the signed document breaks signatureV2."""
        entry = _entry(create_record(ed25519_key, VALUE, 1, EOL))
        assert entry.data is not None
        tampered = replace(entry, data=entry.data[:-1] + b"\x02")
        with pytest.raises(CryptoError, match="signatureV2"):
            verify_record(tampered.encode(), identifier_of(ed25519_key.public_key))

    def test_v1_only(self, key_pair: KeyPair) -> None:
        """Records without signatureV2 are checked with signatureV1."""
        entry = replace(
            _entry(create_record(key_pair, VALUE, 1, EOL)), signature_v2=None, data=None
        )
        name = identifier_of(key_pair.public_key)
        assert verify_record(entry.encode(), name).sequence == 1

        with pytest.raises(CryptoError, match="signature is invalid"):
            verify_record(replace(entry, value=b"/ipfs/other").encode(), name)

    @pytest.mark.parametrize(
        ("document", "message"),
        [
            (b"\xa1", "invalid signature document"),
            (b"\x00", "not a map"),
        ],
    )
    def test_undecodable_document(
        self, ed25519_key: KeyPair, document: bytes, message: str
    ) -> None:
        """A validly signed document that is not a CBOR map is malformed."""
        entry = replace(
            _entry(create_record(ed25519_key, VALUE, 1, EOL)),
            data=document,
            signature_v2=ed25519_key.sign(signature_v2_payload(document)),
        )
        with pytest.raises(MalformedRecord, match=message):
            verify_record(entry.encode(), identifier_of(ed25519_key.public_key))

    def test_v2_without_data(self, ed25519_key: KeyPair) -> None:
        """signatureV2 without its document is malformed."""
        entry = replace(_entry(create_record(ed25519_key, VALUE, 1, EOL)), data=None)
        with pytest.raises(MalformedRecord):
            verify_record(entry.encode(), identifier_of(ed25519_key.public_key))
