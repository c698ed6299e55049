"""
Name Registry - commit/reveal name registration with expiry and credits.

Registration Protocol:
---------------------
1. **Reserve**: the caller stores a commitment hash
   keccak256(name || salt) without revealing the name.
2. **Wait**: at least MIN_REVEAL_DELAY must pass.
3. **Register**: before RESERVATION_WINDOW runs out, the caller reveals
   (name, salt) and pays length(name) * PRICE_PER_CHAR.
4. **Expire**: after LOCK_DURATION the name can be registered by anyone
   else. The fee the previous owner paid stays in the registry and is
   credited to them; they withdraw it with recover_balance().

Front-running: an observer who sees a pending register call learns the
name, but must make their own reservation and wait out the reveal delay
before they could register it, by which time the original call has landed.

Accounting:
----------
The registry account holds exactly the sum of all credits plus the fee of
every present name record. audit() checks this.

Atomicity:
---------
Every public operation holds the reentrancy guard and one store
transaction for its whole duration. A failure anywhere rolls back every
ledger write, balance move and notification made by that call.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from snr.core.registry.errors import (
    RegistryError,
    HashAlreadyReserved,
    InvalidHash,
    InvalidLength,
    InvalidReservation,
    InvalidValue,
    NameAlreadyRegistered,
    NotNameOwner,
    TransferFailed,
)
from snr.core.registry.events import (
    EventBus,
    NameRegistered,
    RegistrationDeleted,
    RegistrationDisplaced,
    RegistrationRenewed,
    RegistryEvent,
    ReservationMade,
)
from snr.core.registry.guard import ReentrancyGuard
from snr.core.registry.ledgers import (
    CreditLedger,
    NameLedger,
    NameRecord,
    Reservation,
    ReservationLedger,
)
from snr.core.registry import rules
from snr.core.state.balances import BalanceLedger, ValueTransferError, format_value
from snr.core.state.clock import SystemClock
from snr.core.storage import SQLiteAdapter
from snr.crypto import address_from_label, bytes_to_hex, make_commitment, name_hash
from snr.utils.logger import get_logger
from snr.utils.validation import (
    require,
    validate_address,
    validate_amount,
    validate_caller,
    validate_hash,
    validate_name_text,
    validate_salt,
)

logger = get_logger("registry")


# Account that holds registration fees and unclaimed credits
REGISTRY_ADDRESS = address_from_label("snr.registry")


@dataclass(frozen=True)
class AuditReport:
    """
    Solvency check of the registry account.

    Attributes:
        held_value: Balance of the registry account
        total_credits: Sum of unclaimed credits
        locked_fees: Sum of fees of all present name records
    """
    held_value: int
    total_credits: int
    locked_fees: int

    @property
    def expected_value(self) -> int:
        return self.total_credits + self.locked_fees

    @property
    def balanced(self) -> bool:
        return self.held_value == self.expected_value


class NameRegistry:
    """
    The registry service: reservation, name and credit ledgers plus the
    five operations that mutate them.

    Callers are identified by 20-byte addresses passed to each operation.
    """

    def __init__(
        self,
        store: Optional[SQLiteAdapter] = None,
        balances: Optional[BalanceLedger] = None,
        clock=None,
        address: bytes = REGISTRY_ADDRESS,
        bus: Optional[EventBus] = None,
    ):
        """
        Initialize the registry.

        Args:
            store: Shared persistent store. None = fresh in-memory store.
            balances: Value layer; must use the same store.
            clock: Object with now() -> int. None = wall clock.
            address: Account holding fees and credits
            bus: Notification bus. None = new bus with history.
        """
        require(validate_address(address))
        self.store = store if store is not None else SQLiteAdapter()
        self.balances = balances if balances is not None else BalanceLedger(self.store)
        if self.balances.store is not self.store:
            raise ValueError("Balance ledger must share the registry store")

        self.clock = clock if clock is not None else SystemClock()
        self.address = address
        self.bus = bus if bus is not None else EventBus()

        self.reservations = ReservationLedger(self.store)
        self.names = NameLedger(self.store)
        self.credits = CreditLedger(self.store)

        self._guard = ReentrancyGuard()
        self._pending: List[RegistryEvent] = []

        self._bind_address()
        self.balances.protect(address)
        logger.info(f"NameRegistry initialized at {bytes_to_hex(address)}")

    def _bind_address(self) -> None:
        """A store belongs to one registry account for its whole life."""
        stored = self.store.get_meta("registry_address")
        if stored is None:
            self.store.set_meta("registry_address", bytes_to_hex(self.address))
        elif stored != bytes_to_hex(self.address):
            raise ValueError(f"Store belongs to registry {stored}")

    # =========================================================================
    # Call Scope
    # =========================================================================

    @contextmanager
    def _call(self, operation: str) -> Iterator[int]:
        """
        Run one operation: guard held, one transaction, buffered events.

        Yields the call's timestamp.
        """
        with self._guard.hold(operation):
            self._pending = []
            try:
                with self.store.atomic():
                    yield self.clock.now()
            except RegistryError as exc:
                self._pending = []
                logger.warning(f"{operation} rejected: {exc}")
                raise
            except BaseException:
                self._pending = []
                raise
            events, self._pending = self._pending, []
        self.bus.publish(events)

    def _check_caller(self, caller: bytes) -> None:
        require(validate_caller(caller))
        # The registry account only moves value through _send()
        if caller == self.address:
            raise ValueError("caller must not be the registry account")

    def _emit(self, event: RegistryEvent) -> None:
        self._pending.append(event)

    def _send(self, recipient: bytes, amount: int) -> None:
        """Transfer out of the registry account."""
        try:
            self.balances.send(self.address, recipient, amount)
        except ValueTransferError as exc:
            raise TransferFailed(recipient, amount) from exc
        logger.debug(f"Sent {format_value(amount)} to {bytes_to_hex(recipient)}")

    # =========================================================================
    # Reservation
    # =========================================================================

    def reserve_name(self, caller: bytes, commitment: bytes) -> Reservation:
        """
        Reserve a commitment hash.

        Args:
            caller: Reserving address
            commitment: keccak256(name || salt), see make_commitment()

        Returns:
            The stored reservation

        Raises:
            HashAlreadyReserved: an unexpired reservation holds the hash
        """
        self._check_caller(caller)
        require(validate_hash(commitment, "commitment"))

        with self._call("reserve_name") as now:
            current = self.reservations.get(commitment)
            # An expired reservation frees the slot for anyone
            if current.exists and rules.reservation_active(current.commit_time, now):
                raise HashAlreadyReserved(commitment)

            reservation = self.reservations.put(commitment, caller, now)
            deadline = rules.reservation_deadline(now)
            self._emit(ReservationMade(commitment=commitment, reserver=caller, deadline=deadline))

        logger.info(f"Reserved {bytes_to_hex(commitment)[:18]}... for "
                    f"{bytes_to_hex(caller)} until {deadline}")
        return reservation

    # =========================================================================
    # Registration
    # =========================================================================

    def register_name(
        self,
        caller: bytes,
        commitment: bytes,
        name: str,
        salt: int,
        value: int = 0,
    ) -> NameRecord:
        """
        Finalize a reservation and register `name` to the caller.

        `value` is paid from the caller's account when the call starts and
        is returned by rollback if the call fails.

        Args:
            caller: Registering address (must be the reserver)
            commitment: Reserved commitment hash
            name: Name to register
            salt: Salt used in the commitment
            value: Attached payment in base units

        Returns:
            The new name record

        Raises:
            InsufficientBalance: caller cannot pay `value`
            InvalidLength: name length outside [MIN_LEN, MAX_LEN]
            InvalidReservation: not the reserver, too early or too late
            InvalidHash: (name, salt) does not match the commitment
            NameAlreadyRegistered: name is held by a live registration
            InvalidValue: value differs from cost(name)
        """
        self._check_caller(caller)
        require(validate_hash(commitment, "commitment"))
        require(validate_name_text(name))
        require(validate_salt(salt))
        require(validate_amount(value, "value"))

        with self._call("register_name") as now:
            self.balances.transfer(caller, self.address, value)

            length = rules.name_length(name)
            if not rules.MIN_LEN <= length <= rules.MAX_LEN:
                raise InvalidLength(length)

            reservation = self.reservations.get(commitment)
            if reservation.committer != caller or not rules.reveal_open(reservation.commit_time, now):
                raise InvalidReservation()

            computed = make_commitment(name, salt)
            if computed != commitment:
                raise InvalidHash(expected=commitment, actual=computed)

            record = self.names.get_by_name(name)
            if rules.is_live(record.expiration, now):
                raise NameAlreadyRegistered(name)

            fee = rules.cost(name)
            # Credit the expired owner before the payment check; a wrong
            # payment rolls the credit back with everything else.
            if not record.is_vacant:
                self.credits.add(record.owner, fee)
                self._emit(RegistrationDisplaced(name=name, displaced_owner=record.owner))

            if value != fee:
                raise InvalidValue(required=fee, supplied=value)

            new_record = self.names.put(name, caller, rules.lock_until(now))
            self._emit(NameRegistered(name=name, owner=caller, expiration=new_record.expiration))

        if not record.is_vacant:
            logger.info(f"Name {name!r} taken over from {bytes_to_hex(record.owner)}, "
                        f"credited {format_value(fee)}")
        logger.info(f"Registered {name!r} to {bytes_to_hex(caller)} until {new_record.expiration}")
        return new_record

    # =========================================================================
    # Renewal / Deletion
    # =========================================================================

    def renew_registration(self, caller: bytes, name: str) -> int:
        """
        Extend a registration to now + LOCK_DURATION.

        The owner on record may renew even after expiry, as long as nobody
        has registered over the name.

        Returns:
            New expiration

        Raises:
            NotNameOwner: caller is not the owner on record
        """
        self._check_caller(caller)
        require(validate_name_text(name))

        with self._call("renew_registration") as now:
            record = self.names.get_by_name(name)
            if record.owner != caller:
                raise NotNameOwner(record.owner, caller)

            expiration = rules.lock_until(now)
            self.names.set_expiration(name, expiration)
            self._emit(RegistrationRenewed(name=name, owner=caller, expiration=expiration))

        logger.info(f"Renewed {name!r} until {expiration}")
        return expiration

    def delete_registration(self, caller: bytes, name: str) -> int:
        """
        Give up a name and take its fee back.

        The owner on record may delete even after expiry, as long as nobody
        has registered over the name.

        Returns:
            Refunded amount (cost(name))

        Raises:
            NotNameOwner: caller is not the owner on record
            TransferFailed: the refund could not be delivered
        """
        self._check_caller(caller)
        require(validate_name_text(name))

        with self._call("delete_registration"):
            record = self.names.get_by_name(name)
            if record.owner != caller:
                raise NotNameOwner(record.owner, caller)

            self.names.clear(name)
            refund = rules.cost(name)
            self._send(caller, refund)
            self._emit(RegistrationDeleted(name=name))

        logger.info(f"Deleted {name!r}, refunded {format_value(refund)} to {bytes_to_hex(caller)}")
        return refund

    # =========================================================================
    # Credit
    # =========================================================================

    def recover_balance(self, caller: bytes) -> int:
        """
        Withdraw the caller's whole credit.

        Returns:
            Withdrawn amount (0 if there was nothing to withdraw)

        Raises:
            TransferFailed: the withdrawal could not be delivered
        """
        self._check_caller(caller)

        with self._call("recover_balance"):
            amount = self.credits.take(caller)
            if amount:
                self._send(caller, amount)

        if amount:
            logger.info(f"Recovered {format_value(amount)} credit for {bytes_to_hex(caller)}")
        return amount

    # =========================================================================
    # Queries
    # =========================================================================

    def get_reservation(self, commitment: bytes) -> Reservation:
        """Stored reservation for a commitment hash (zeroed if none)."""
        return self.reservations.get(commitment)

    def get_record(self, key: bytes) -> NameRecord:
        """Stored record for a name hash (zeroed if none)."""
        return self.names.get(key)

    def get_record_by_name(self, name: str) -> NameRecord:
        return self.names.get_by_name(name)

    def credit_of(self, address: bytes) -> int:
        """Pending credit of an address."""
        return self.credits.get(address)

    def is_available(self, name: str) -> bool:
        """Whether `name` could be registered now (valid length, no live record)."""
        require(validate_name_text(name))
        if not rules.is_valid_length(name):
            return False
        return not rules.is_live(self.names.get_by_name(name).expiration, self.clock.now())

    @property
    def held_value(self) -> int:
        """Balance of the registry account."""
        return self.balances.balance_of(self.address)

    @property
    def events(self) -> List[RegistryEvent]:
        """Published notifications, oldest first."""
        return self.bus.history

    cost = staticmethod(rules.cost)
    name_hash = staticmethod(name_hash)
    make_commitment = staticmethod(make_commitment)

    # =========================================================================
    # Accounting
    # =========================================================================

    def audit(self) -> AuditReport:
        """Compare the registry account with what it owes."""
        # One scope so a call on another thread cannot commit between reads
        with self.store.atomic():
            locked = sum(
                rules.cost(name)
                for name, record in self.names.entries()
                if not record.is_vacant
            )
            report = AuditReport(
                held_value=self.held_value,
                total_credits=self.credits.total(),
                locked_fees=locked,
            )
        if not report.balanced:
            logger.error(f"Registry unbalanced: holds {report.held_value}, "
                         f"owes {report.expected_value}")
        return report

    def stats(self) -> dict:
        """Get registry statistics."""
        now = self.clock.now()
        with self.store.atomic():
            entries = self.names.entries()
            live = sum(1 for _, record in entries if rules.is_live(record.expiration, now))

            return {
                "reservations": len(self.reservations),
                "names": len(entries),
                "live_names": live,
                "expired_names": len(entries) - live,
                "credit_holders": self.credits.holders(),
                "total_credits": self.credits.total(),
                "held_value": self.held_value,
            }


__all__ = [
    "NameRegistry",
    "AuditReport",
    "REGISTRY_ADDRESS",
]
