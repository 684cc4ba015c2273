"""Tests for libp2p key pairs."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from ipns_utils.crypto import KeyPair, KeyType, PublicKey
from ipns_utils.crypto.keys import MIN_RSA_BITS
from ipns_utils.types import InputError, KeyDecodeError, UnsupportedKeyType

# RFC 8032, section 7.1, test 1.
RFC8032_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PUBLIC = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC8032_SIGNATURE = bytes.fromhex(
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065224901555"
    "fb8821590a33bacc61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)

SECP256K1_HALF_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141 // 2


class TestKeyType:
    """Tests for key type lookup."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("rsa", KeyType.RSA),
            ("ed25519", KeyType.ED25519),
            ("secp256k1", KeyType.SECP256K1),
            ("ECDSA", KeyType.ECDSA),
        ],
    )
    def test_from_name(self, name: str, expected: KeyType) -> None:
        """Command-line names resolve case-insensitively."""
        assert KeyType.from_name(name) == expected

    def test_unknown_name(self) -> None:
        """Unknown names raise UnsupportedKeyType."""
        with pytest.raises(UnsupportedKeyType):
            KeyType.from_name("dsa")

    def test_unknown_tag(self) -> None:
        """Unknown protobuf tags raise UnsupportedKeyType."""
        with pytest.raises(UnsupportedKeyType):
            KeyType.from_tag(7)

    def test_display_names(self) -> None:
        """Display names follow go-libp2p."""
        assert [t.display_name for t in KeyType] == ["RSA", "Ed25519", "Secp256k1", "ECDSA"]


class TestSerialization:
    """Tests for the libp2p key protobufs."""

    def test_private_key_round_trip(self, key_pair: KeyPair) -> None:
        """Exported private keys load back to the same key."""
        loaded = KeyPair.from_bytes(key_pair.to_bytes())
        assert loaded.key_type == key_pair.key_type
        assert loaded.raw() == key_pair.raw()

    def test_public_key_round_trip(self, key_pair: KeyPair) -> None:
        """Serialized public keys load back to the same key."""
        public = key_pair.public_key
        assert PublicKey.from_bytes(public.to_bytes()).raw() == public.raw()

    def test_protobuf_layout(self, ed25519_key: KeyPair) -> None:
        """Type is field 1 (varint), Data is field 2 (bytes)."""
        encoded = ed25519_key.public_key.to_bytes()
        assert encoded[:4] == b"\x08\x01\x12\x20"
        assert len(encoded) == 36

    @pytest.mark.parametrize(
        ("key_type", "size"),
        [(KeyType.ED25519, 32), (KeyType.SECP256K1, 33)],
    )
    def test_raw_public_sizes(
        self, key_pairs: dict[KeyType, KeyPair], key_type: KeyType, size: int
    ) -> None:
        """Curve keys use fixed-size raw public material."""
        assert len(key_pairs[key_type].public_key.raw()) == size

    def test_ed25519_raw_private_layout(self, ed25519_key: KeyPair) -> None:
        """Ed25519 private material is seed followed by public key."""
        raw = ed25519_key.raw()
        assert len(raw) == 64
        assert raw[32:] == ed25519_key.public_key.raw()

    def test_ed25519_legacy_96_bytes(self) -> None:
        """The legacy form with a repeated public key is accepted."""
        key = KeyPair.from_raw(KeyType.ED25519, RFC8032_SEED + RFC8032_PUBLIC + RFC8032_PUBLIC)
        assert key.public_key.raw() == RFC8032_PUBLIC

    def test_ed25519_mismatched_public_part(self) -> None:
        """A public part that does not match the seed is rejected."""
        with pytest.raises(KeyDecodeError):
            KeyPair.from_raw(KeyType.ED25519, RFC8032_SEED + bytes(32))

    def test_missing_type(self) -> None:
        """A message without field 1 is rejected."""
        with pytest.raises(KeyDecodeError, match="missing key type"):
            PublicKey.from_bytes(b"\x12\x01\x00")

    def test_missing_data(self) -> None:
        """A message without field 2 is rejected."""
        with pytest.raises(KeyDecodeError, match="missing key data"):
            PublicKey.from_bytes(b"\x08\x01")

    def test_unknown_type_tag(self) -> None:
        """Unknown key types in a message are rejected."""
        with pytest.raises(UnsupportedKeyType):
            KeyPair.from_bytes(b"\x08\x09\x12\x01\x00")

    def test_truncated_message(self) -> None:
        """A length running past the end is a decode error."""
        with pytest.raises(KeyDecodeError):
            KeyPair.from_bytes(b"\x08\x01\x12\x40" + bytes(10))

    def test_bad_secp256k1_length(self) -> None:
        """secp256k1 private keys are exactly 32 bytes."""
        with pytest.raises(KeyDecodeError):
            KeyPair.from_raw(KeyType.SECP256K1, bytes(31))

    def test_type_mismatch(self, key_pairs: dict[KeyType, KeyPair]) -> None:
        """RSA material tagged as ECDSA is rejected."""
        with pytest.raises(KeyDecodeError, match="not a ECDSA key"):
            KeyPair.from_raw(KeyType.ECDSA, key_pairs[KeyType.RSA].raw())

    def test_garbage_public_key(self) -> None:
        """Invalid point encodings are rejected."""
        with pytest.raises(KeyDecodeError):
            PublicKey.from_raw(KeyType.SECP256K1, b"\x05" + bytes(32))


class TestGeneration:
    """Tests for key generation."""

    def test_ecdsa_uses_p256(self, key_pairs: dict[KeyType, KeyPair]) -> None:
        """Generated ECDSA keys are on P-256."""
        private_key = key_pairs[KeyType.ECDSA].private_key
        assert isinstance(private_key, ec.EllipticCurvePrivateKey)
        assert isinstance(private_key.curve, ec.SECP256R1)

    def test_rsa_default_size(self, rsa_key: KeyPair) -> None:
        """RSA keys default to 2048 bits."""
        assert isinstance(rsa_key.private_key, rsa.RSAPrivateKey)
        assert rsa_key.private_key.key_size == 2048

    def test_rsa_too_small(self) -> None:
        """RSA sizes below the minimum are rejected before generating."""
        with pytest.raises(InputError, match=str(MIN_RSA_BITS)):
            KeyPair.generate(KeyType.RSA, 1024)

    def test_size_ignored_for_curves(self) -> None:
        """A size hint does not affect curve keys."""
        key = KeyPair.generate(KeyType.ED25519, 4096)
        assert len(key.public_key.raw()) == 32

    def test_private_key_hidden_from_repr(self, ed25519_key: KeyPair) -> None:
        """repr never shows private material."""
        assert "private_key" not in repr(ed25519_key)


class TestSigning:
    """Tests for signing and verification."""

    def test_sign_verify(self, key_pair: KeyPair) -> None:
        """Signatures verify with the matching public key."""
        signature = key_pair.sign(b"message")
        assert key_pair.public_key.verify(b"message", signature)

    def test_wrong_message(self, key_pair: KeyPair) -> None:
        """Signatures do not verify for a different message."""
        signature = key_pair.sign(b"message")
        assert not key_pair.public_key.verify(b"other", signature)

    def test_garbage_signature(self, key_pair: KeyPair) -> None:
        """Malformed signatures verify as False instead of raising."""
        assert not key_pair.public_key.verify(b"message", b"\x00\x01")

    def test_ed25519_rfc8032_vector(self) -> None:
        """Ed25519 signing matches RFC 8032."""
        key = KeyPair.from_raw(KeyType.ED25519, RFC8032_SEED + RFC8032_PUBLIC)
        assert key.sign(b"") == RFC8032_SIGNATURE
        assert key.public_key.verify(b"", RFC8032_SIGNATURE)

    def test_secp256k1_low_s(self, key_pairs: dict[KeyType, KeyPair]) -> None:
        """secp256k1 signatures are normalized to low S."""
        key = key_pairs[KeyType.SECP256K1]
        for i in range(8):
            _, s = decode_dss_signature(key.sign(bytes([i])))
            assert s <= SECP256K1_HALF_ORDER
