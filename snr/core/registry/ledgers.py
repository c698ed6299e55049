"""
Registry ledgers - the three keyed records the protocol reads and writes.

- ReservationLedger: commitment hash -> Reservation(committer, commit_time)
- NameLedger:        name hash       -> NameRecord(owner, expiration)
- CreditLedger:      address         -> recoverable credit

All three live in one shared store and have no other writers than the
registry. Absent keys read as zeroed records, never as None.
"""

from dataclasses import dataclass
from typing import List, Tuple

from snr.core.storage import SQLiteAdapter
from snr.crypto import ZERO_ADDRESS, name_hash


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Reservation:
    """
    A stored commitment.

    Attributes:
        committer: Address that reserved the commitment hash
        commit_time: Timestamp of the reservation
    """
    committer: bytes = ZERO_ADDRESS
    commit_time: int = 0

    @property
    def exists(self) -> bool:
        return self.committer != ZERO_ADDRESS


@dataclass(frozen=True)
class NameRecord:
    """
    Ownership record of a name.

    A zeroed record (zero owner, zero expiration) is vacant. A record with
    an owner and a past expiration is expired but still present: its owner
    keeps renew/delete rights until someone registers over it.
    """
    owner: bytes = ZERO_ADDRESS
    expiration: int = 0

    @property
    def is_vacant(self) -> bool:
        return self.owner == ZERO_ADDRESS


# =============================================================================
# Ledgers
# =============================================================================


class ReservationLedger:
    """Commitment hash -> Reservation."""

    def __init__(self, store: SQLiteAdapter):
        self.store = store

    def get(self, commitment: bytes) -> Reservation:
        row = self.store.get_reservation(commitment)
        if row is None:
            return Reservation()
        committer, commit_time = row
        return Reservation(committer=committer, commit_time=commit_time)

    def put(self, commitment: bytes, committer: bytes, commit_time: int) -> Reservation:
        """Store a reservation, replacing whatever occupied the hash."""
        self.store.save_reservation(commitment, committer, commit_time)
        return Reservation(committer=committer, commit_time=commit_time)

    def __len__(self) -> int:
        return self.store.count_reservations()


class NameLedger:
    """Name hash -> NameRecord."""

    def __init__(self, store: SQLiteAdapter):
        self.store = store

    def get(self, key: bytes) -> NameRecord:
        row = self.store.get_name(key)
        if row is None:
            return NameRecord()
        _, owner, expiration = row
        return NameRecord(owner=owner, expiration=expiration)

    def get_by_name(self, name: str) -> NameRecord:
        return self.get(name_hash(name))

    def put(self, name: str, owner: bytes, expiration: int) -> NameRecord:
        """Create or overwrite the record of `name`."""
        self.store.save_name(name_hash(name), name, owner, expiration)
        return NameRecord(owner=owner, expiration=expiration)

    def set_expiration(self, name: str, expiration: int) -> None:
        self.store.update_expiration(name_hash(name), expiration)

    def clear(self, name: str) -> None:
        """Zero the record of `name`."""
        self.store.delete_name(name_hash(name))

    def entries(self) -> List[Tuple[str, NameRecord]]:
        """All present records as (name, record), ordered by name."""
        return [
            (name, NameRecord(owner=owner, expiration=expiration))
            for _, name, owner, expiration in self.store.get_all_names()
        ]


class CreditLedger:
    """Address -> recoverable credit."""

    def __init__(self, store: SQLiteAdapter):
        self.store = store

    def get(self, address: bytes) -> int:
        return self.store.get_amount("credits", address)

    def add(self, address: bytes, amount: int) -> int:
        """Increase a credit; returns the new balance."""
        balance = self.get(address) + amount
        self.store.set_amount("credits", address, balance)
        return balance

    def take(self, address: bytes) -> int:
        """Zero a credit; returns the amount it held."""
        amount = self.get(address)
        if amount:
            self.store.set_amount("credits", address, 0)
        return amount

    def total(self) -> int:
        return sum(amount for _, amount in self.store.get_all_amounts("credits"))

    def holders(self) -> int:
        return len(self.store.get_all_amounts("credits"))


__all__ = [
    "Reservation",
    "NameRecord",
    "ReservationLedger",
    "NameLedger",
    "CreditLedger",
]
