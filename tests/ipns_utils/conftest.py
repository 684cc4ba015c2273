"""Shared fixtures for the IPNS utilities tests."""

from __future__ import annotations

import pytest

from ipns_utils.crypto import KeyPair, KeyType


@pytest.fixture(scope="session")
def key_pairs() -> dict[KeyType, KeyPair]:
    """One key pair per key type, generated once (RSA generation is slow)."""
    return {key_type: KeyPair.generate(key_type) for key_type in KeyType}


@pytest.fixture(params=list(KeyType), ids=lambda key_type: key_type.display_name)
def key_pair(request: pytest.FixtureRequest, key_pairs: dict[KeyType, KeyPair]) -> KeyPair:
    """Each key type in turn."""
    return key_pairs[request.param]


@pytest.fixture
def ed25519_key(key_pairs: dict[KeyType, KeyPair]) -> KeyPair:
    """A key whose identifier inlines the public key."""
    return key_pairs[KeyType.ED25519]


@pytest.fixture
def rsa_key(key_pairs: dict[KeyType, KeyPair]) -> KeyPair:
    """A key whose identifier hashes the public key."""
    return key_pairs[KeyType.RSA]
