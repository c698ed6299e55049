"""
Input Validation - Sanitization of raw registry inputs.

Provides validation for all external inputs to catch:
- Wrongly sized hashes and addresses
- Out-of-range integers (salts, values, timestamps)
- Non-text names
"""

from typing import Any, Optional, Tuple

from snr.crypto import ADDRESS_SIZE, HASH_SIZE, SALT_BITS, ZERO_ADDRESS

# =============================================================================
# Constants
# =============================================================================

MAX_SALT = 2 ** SALT_BITS - 1
MAX_AMOUNT = 2 ** 256 - 1
MAX_NAME_TEXT = 1024


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_hash(hash_value: Any, name: str = "hash") -> Tuple[bool, str]:
    """Validate a 32-byte hash value."""
    return validate_bytes(hash_value, name, expected_length=HASH_SIZE)


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 20-byte address."""
    return validate_bytes(address, name, expected_length=ADDRESS_SIZE)


def validate_caller(caller: Any) -> Tuple[bool, str]:
    """Validate a calling address: well-formed and not the zero address."""
    ok, err = validate_address(caller, "caller")
    if not ok:
        return ok, err
    if bytes(caller) == ZERO_ADDRESS:
        return False, "caller must not be the zero address"
    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int = 0,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass; reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_salt(salt: Any) -> Tuple[bool, str]:
    """Validate a commitment salt (uint256)."""
    return validate_integer(salt, "salt", 0, MAX_SALT)


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a non-negative value amount."""
    return validate_integer(amount, name, 0, MAX_AMOUNT)


def validate_name_text(name: Any) -> Tuple[bool, str]:
    """
    Validate that a name is text.

    Length policy (MIN_LEN/MAX_LEN) is a protocol rule, not an input rule,
    and is enforced by the registry with InvalidLength.
    """
    if not isinstance(name, str):
        return False, f"name must be str, got {type(name).__name__}"
    if len(name) > MAX_NAME_TEXT:
        return False, f"name exceeds max text length {MAX_NAME_TEXT}"
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False, "name is not valid UTF-8"
    return True, ""


def require(result: Tuple[bool, str]) -> None:
    """Raise ValueError for a failed validation result."""
    ok, err = result
    if not ok:
        raise ValueError(err)


__all__ = [
    "validate_bytes",
    "validate_hash",
    "validate_address",
    "validate_caller",
    "validate_integer",
    "validate_salt",
    "validate_amount",
    "validate_name_text",
    "require",
    "MAX_SALT",
    "MAX_AMOUNT",
]
