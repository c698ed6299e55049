"""
Registry policy: pricing, name length bounds and timing windows.

These are fixed protocol parameters, not configuration. Timestamps and
durations are integer seconds; prices are in base units.
"""

from snr.core.state.balances import VALUE_UNIT
from snr.core.state.clock import MINUTES, WEEKS
from snr.crypto import encode_name


# =============================================================================
# Constants
# =============================================================================

# Accepted name length, in UTF-8 bytes (inclusive)
MIN_LEN = 3
MAX_LEN = 10

# 0.001 value-units per character
PRICE_PER_CHAR = VALUE_UNIT // 1000

# A registration stays live (non-reclaimable) for this long
LOCK_DURATION = 10 * WEEKS

# A reservation can be finalized until commit_time + RESERVATION_WINDOW ...
RESERVATION_WINDOW = 10 * MINUTES

# ... but not before commit_time + MIN_REVEAL_DELAY
MIN_REVEAL_DELAY = 5 * MINUTES


# =============================================================================
# Rules
# =============================================================================


def name_length(name: str) -> int:
    return len(encode_name(name))


def is_valid_length(name: str) -> bool:
    return MIN_LEN <= name_length(name) <= MAX_LEN


def cost(name: str) -> int:
    """Registration fee of a name: length * PRICE_PER_CHAR."""
    return name_length(name) * PRICE_PER_CHAR


def reservation_deadline(commit_time: int) -> int:
    """Last timestamp at which a reservation can be finalized."""
    return commit_time + RESERVATION_WINDOW


def reservation_active(commit_time: int, now: int) -> bool:
    """Whether a reservation still occupies its slot (deadline inclusive)."""
    return now <= reservation_deadline(commit_time)


def reveal_open(commit_time: int, now: int) -> bool:
    """Whether a reservation can be finalized at `now`."""
    return commit_time + MIN_REVEAL_DELAY <= now <= reservation_deadline(commit_time)


def lock_until(now: int) -> int:
    """Expiration of a registration made or renewed at `now`."""
    return now + LOCK_DURATION


def is_live(expiration: int, now: int) -> bool:
    """A record blocks new registrations while its expiration is in the future."""
    return expiration > now


__all__ = [
    "MIN_LEN",
    "MAX_LEN",
    "PRICE_PER_CHAR",
    "LOCK_DURATION",
    "RESERVATION_WINDOW",
    "MIN_REVEAL_DELAY",
    "name_length",
    "is_valid_length",
    "cost",
    "reservation_deadline",
    "reservation_active",
    "reveal_open",
    "lock_until",
    "is_live",
]
