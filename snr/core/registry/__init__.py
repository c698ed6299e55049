"""
SNR Name Registry Module.

Commit/reveal name registration with expiry, takeover and credits.
"""

from snr.core.registry.name_registry import (
    NameRegistry,
    AuditReport,
    REGISTRY_ADDRESS,
)
from snr.core.registry.ledgers import (
    Reservation,
    NameRecord,
    ReservationLedger,
    NameLedger,
    CreditLedger,
)
from snr.core.registry.errors import (
    RegistryError,
    InvalidLength,
    InvalidValue,
    InvalidHash,
    HashAlreadyReserved,
    InvalidReservation,
    NameAlreadyRegistered,
    NotNameOwner,
    ReentrantCall,
    TransferFailed,
)
from snr.core.registry.events import (
    EventBus,
    ReservationMade,
    NameRegistered,
    RegistrationDisplaced,
    RegistrationRenewed,
    RegistrationDeleted,
)
from snr.core.registry.guard import ReentrancyGuard
from snr.core.registry.rules import (
    MIN_LEN,
    MAX_LEN,
    PRICE_PER_CHAR,
    LOCK_DURATION,
    RESERVATION_WINDOW,
    MIN_REVEAL_DELAY,
    cost,
)

__all__ = [
    # Registry
    "NameRegistry",
    "AuditReport",
    "REGISTRY_ADDRESS",
    # Ledgers
    "Reservation",
    "NameRecord",
    "ReservationLedger",
    "NameLedger",
    "CreditLedger",
    # Errors
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
    # Events
    "EventBus",
    "ReservationMade",
    "NameRegistered",
    "RegistrationDisplaced",
    "RegistrationRenewed",
    "RegistrationDeleted",
    # Guard
    "ReentrancyGuard",
    # Policy
    "MIN_LEN",
    "MAX_LEN",
    "PRICE_PER_CHAR",
    "LOCK_DURATION",
    "RESERVATION_WINDOW",
    "MIN_REVEAL_DELAY",
    "cost",
]
