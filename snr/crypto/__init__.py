"""
Cryptographic primitives for SNR.

Everything the registry hashes goes through Keccak-256:

- Name hashes: keys of the name ledger
- Commitments: keys of the reservation ledger, keccak256(name || salt)
- Addresses: last 20 bytes of keccak256(public key), Ethereum style

Wallet keys are secp256k1 keypairs. The registry never signs anything; a
keypair only gives a wallet its address.
"""

import secrets
import string
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order; private keys lie in [1, order-1]
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20
HASH_SIZE = 32

# The "nobody" address: vacant records and absent reservations carry it
ZERO_ADDRESS = bytes(ADDRESS_SIZE)


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """Keccak-256 (the pre-standard SHA-3 padding, as Ethereum uses)."""
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    return digest.digest()


# =============================================================================
# Wallet Keys and Addresses
# =============================================================================


@dataclass
class KeyPair:
    """
    A wallet key.

    Attributes:
        private_key: 32-byte big-endian scalar
        public_key: 64-byte x || y of the public point
    """
    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> bytes:
        return address_from_public_key(self.public_key)


def generate_keypair() -> KeyPair:
    """Create a wallet key from the OS random source."""
    scalar = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = scalar.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")
    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, byteorder="big") + y.to_bytes(32, byteorder="big")


def address_from_public_key(public_key: bytes) -> bytes:
    """address = keccak256(public_key)[-20:]"""
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-ADDRESS_SIZE:]


def address_from_label(label: str) -> bytes:
    """
    Deterministic address for an account with no key.

    Used for the registry's own account and for named test accounts.
    """
    return keccak256(label.encode("utf-8"))[-ADDRESS_SIZE:]


# =============================================================================
# Hex Encoding
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Decode hex with or without a 0x prefix."""
    if hex_str[:2] in ("0x", "0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(text: str) -> bool:
    """Whether `text` is a 0x-prefixed 40-digit hex address."""
    if not text.startswith("0x") or len(text) != 2 + 2 * ADDRESS_SIZE:
        return False
    return all(c in string.hexdigits for c in text[2:])


# =============================================================================
# Registry Hashing
# =============================================================================

from snr.crypto.commitment import (
    SALT_BITS,
    encode_name,
    name_hash,
    make_commitment,
)

__all__ = [
    "SECP256K1_ORDER",
    "ADDRESS_SIZE",
    "HASH_SIZE",
    "ZERO_ADDRESS",
    "keccak256",
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "address_from_label",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "SALT_BITS",
    "encode_name",
    "name_hash",
    "make_commitment",
]
