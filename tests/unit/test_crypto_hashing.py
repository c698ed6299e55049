"""
Tests for SNR crypto helpers.

Tests cover:
1. Keccak-256 against known vectors
2. Name and commitment hashing
3. Key and address derivation
"""

import pytest

from snr.crypto import (
    ZERO_ADDRESS,
    address_from_label,
    address_from_public_key,
    bytes_to_hex,
    generate_keypair,
    hex_to_bytes,
    is_valid_address,
    keccak256,
    make_commitment,
    name_hash,
)


class TestKeccak:
    """Known-answer tests."""

    def test_empty_input(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_hello(self):
        assert keccak256(b"hello").hex() == (
            "1c8aff950685c2ed4bc3174f3472287b56d9517b9c948127319a09a7a36deac8"
        )


class TestCommitment:
    """Tests for name and commitment hashes."""

    def test_name_hash_is_keccak_of_utf8(self):
        assert name_hash("test") == keccak256(b"test")

    def test_commitment_packs_salt_as_uint256(self):
        expected = keccak256(b"test" + (123).to_bytes(32, "big"))
        assert make_commitment("test", 123) == expected

    def test_commitment_deterministic(self):
        assert make_commitment("test", 123) == make_commitment("test", 123)

    def test_commitment_depends_on_salt_and_name(self):
        assert make_commitment("test", 1) != make_commitment("test", 2)
        assert make_commitment("test", 1) != make_commitment("tset", 1)

    def test_commitment_hides_name_hash(self):
        assert make_commitment("test", 0) != name_hash("test")

    @pytest.mark.parametrize("salt", [-1, 2**256])
    def test_salt_out_of_range(self, salt):
        with pytest.raises(ValueError):
            make_commitment("test", salt)


class TestAddresses:
    """Tests for key and address helpers."""

    def test_keypair_address(self):
        kp = generate_keypair()

        assert len(kp.private_key) == 32
        assert len(kp.public_key) == 64
        assert kp.address == keccak256(kp.public_key)[-20:]
        assert kp.address == address_from_public_key(kp.public_key)

    def test_keypairs_differ(self):
        assert generate_keypair().address != generate_keypair().address

    def test_bad_public_key(self):
        with pytest.raises(ValueError):
            address_from_public_key(b"short")

    def test_label_address_stable(self):
        assert address_from_label("alice") == address_from_label("alice")
        assert address_from_label("alice") != ZERO_ADDRESS
        assert len(address_from_label("alice")) == 20

    def test_hex_round_trip(self):
        address = address_from_label("alice")
        text = bytes_to_hex(address)

        assert is_valid_address(text)
        assert hex_to_bytes(text) == address
        assert not is_valid_address(text[2:])

    @pytest.mark.parametrize("text", [
        "0x" + "g" * 40,
        "0x" + "1_" * 20,
        "0x" + "aa " * 13 + "a",
    ])
    def test_malformed_address_text(self, text):
        assert not is_valid_address(text)
