"""
Name and commitment hashing.

A commitment binds a name to a secret salt without revealing the name:

    commitment = keccak256(utf8(name) || uint256_be(salt))

The name ledger is keyed by the hash of the name alone:

    name_hash = keccak256(utf8(name))

Both use the packed encoding of an Ethereum registrar, so commitments can be
computed off-line by any client that knows the name and salt.
"""

from snr.crypto import keccak256

SALT_BITS = 256


def encode_name(name: str) -> bytes:
    """UTF-8 encoding of a name; its length is the name length used for pricing."""
    return name.encode("utf-8")


def name_hash(name: str) -> bytes:
    """Canonical 32-byte key of a name in the name ledger."""
    return keccak256(encode_name(name))


def make_commitment(name: str, salt: int) -> bytes:
    """
    Compute the commitment hash for (name, salt).
    
    Args:
        name: Name being reserved
        salt: Secret blinding factor in [0, 2**256)
        
    Returns:
        32-byte commitment hash
    """
    if not 0 <= salt < 2 ** SALT_BITS:
        raise ValueError(f"salt must be in [0, 2**{SALT_BITS}), got {salt}")
    return keccak256(encode_name(name) + salt.to_bytes(SALT_BITS // 8, "big"))
