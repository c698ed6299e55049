"""
Registry errors - typed failures of the registration protocol.

Every error is terminal for the call that raised it; the registry rolls
back all state touched by that call before the error reaches the caller.
"""

from snr.crypto import bytes_to_hex


class RegistryError(Exception):
    """Base class for registry errors."""


# -----------------------------------------------------------------------------
# Input validation
# -----------------------------------------------------------------------------


class InvalidLength(RegistryError):
    """Name length outside [MIN_LEN, MAX_LEN]."""

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Invalid name length: {length}")


class InvalidValue(RegistryError):
    """Attached value differs from the registration fee."""

    def __init__(self, required: int, supplied: int):
        self.required = required
        self.supplied = supplied
        super().__init__(f"Invalid value: required {required}, supplied {supplied}")


class InvalidHash(RegistryError):
    """Commitment recomputed from (name, salt) does not match."""

    def __init__(self, expected: bytes, actual: bytes):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid hash: expected {bytes_to_hex(expected)}, got {bytes_to_hex(actual)}"
        )


# -----------------------------------------------------------------------------
# State / authorization conflicts
# -----------------------------------------------------------------------------


class HashAlreadyReserved(RegistryError):
    """An unexpired reservation occupies the commitment hash."""

    def __init__(self, commitment: bytes):
        self.commitment = commitment
        super().__init__(f"Hash already reserved: {bytes_to_hex(commitment)}")


class InvalidReservation(RegistryError):
    """
    Reservation missing, not owned by the caller, too early or too late.

    The cause is deliberately not reported.
    """

    def __init__(self):
        super().__init__("Invalid reservation")


class NameAlreadyRegistered(RegistryError):
    """The name is held by a live (unexpired) registration."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Name already registered: {name!r}")


class NotNameOwner(RegistryError):
    """Caller is not the owner on record."""

    def __init__(self, owner: bytes, caller: bytes):
        self.owner = owner
        self.caller = caller
        super().__init__(
            f"Not name owner: owner is {bytes_to_hex(owner)}, caller is {bytes_to_hex(caller)}"
        )


class ReentrantCall(RegistryError):
    """A registry operation was invoked while another one is in progress."""

    def __init__(self, operation: str = ""):
        self.operation = operation
        super().__init__(f"Reentrant call: {operation}" if operation else "Reentrant call")


# -----------------------------------------------------------------------------
# External transfer failure
# -----------------------------------------------------------------------------


class TransferFailed(RegistryError):
    """An outbound value transfer did not go through."""

    def __init__(self, recipient: bytes, amount: int):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {bytes_to_hex(recipient)} failed")


__all__ = [
    "RegistryError",
    "InvalidLength",
    "InvalidValue",
    "InvalidHash",
    "HashAlreadyReserved",
    "InvalidReservation",
    "NameAlreadyRegistered",
    "NotNameOwner",
    "ReentrantCall",
    "TransferFailed",
]
