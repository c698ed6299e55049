"""
Balance Ledger - the value layer the registry is paid through.

Conceptual Background:
---------------------
The registry does not mint or burn value. It holds value in its own account:

1. **Payment**: a payable call moves the attached value from the caller's
   account into the registry account before the call body runs.
2. **Transfers out**: refunds and credit withdrawals move value from the
   registry account to a recipient.
3. **Receivers**: a recipient may be "code" (a receiver hook). The hook runs
   after the balance moves, while the sending call is still in progress, and
   may reject the transfer or call back into the registry.

All balance writes go through the shared store, so they commit or roll back
together with the registry ledgers.
"""

from typing import Callable, Dict, Optional, Set

from snr.core.storage import SQLiteAdapter
from snr.crypto import bytes_to_hex
from snr.utils.logger import get_logger
from snr.utils.validation import require, validate_address, validate_amount

logger = get_logger("balances")

# One value-unit in base units (the smallest indivisible amount)
VALUE_UNIT = 10**18

# hook(sender, amount) -> False to reject; None/True to accept
ReceiverHook = Callable[[bytes, int], Optional[bool]]


# =============================================================================
# Errors
# =============================================================================


class ValueTransferError(Exception):
    """Base class for value-layer failures."""


class InsufficientBalance(ValueTransferError):
    """Sender's balance does not cover the amount."""

    def __init__(self, address: bytes, balance: int, amount: int):
        self.address = address
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance for {bytes_to_hex(address)}: {balance} < {amount}"
        )


class TransferRejected(ValueTransferError):
    """The recipient's receiver hook refused (or failed on) the transfer."""

    def __init__(self, recipient: bytes, amount: int, reason: str = ""):
        self.recipient = recipient
        self.amount = amount
        self.reason = reason
        message = f"Transfer of {amount} to {bytes_to_hex(recipient)} rejected"
        super().__init__(f"{message}: {reason}" if reason else message)


# =============================================================================
# Balance Ledger
# =============================================================================


class BalanceLedger:
    """
    Account balances keyed by 20-byte address.

    Attributes:
        store: Shared persistent store
        receivers: address -> receiver hook (in-memory, not persisted)
        protected: Accounts mint() refuses (the registry account)
    """

    def __init__(self, store: SQLiteAdapter):
        self.store = store
        self.receivers: Dict[bytes, ReceiverHook] = {}
        self.protected: Set[bytes] = set()

    # =========================================================================
    # State Access
    # =========================================================================

    def balance_of(self, address: bytes) -> int:
        """Get the balance of an address (0 if unknown)."""
        return self.store.get_amount("balances", address)

    def total_supply(self) -> int:
        """Sum of all balances."""
        return sum(amount for _, amount in self.store.get_all_amounts("balances"))

    # =========================================================================
    # Mutations
    # =========================================================================

    def mint(self, address: bytes, amount: int) -> int:
        """
        Create value in an account (devnet funding / genesis).

        Returns:
            New balance
        """
        require(validate_address(address))
        require(validate_amount(amount))
        if address in self.protected:
            raise ValueError(f"Cannot mint into protected account {bytes_to_hex(address)}")
        with self.store.atomic():
            balance = self.balance_of(address) + amount
            self.store.set_amount("balances", address, balance)
        logger.debug(f"Minted {amount} to {bytes_to_hex(address)}")
        return balance

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        """
        Move value between accounts (no receiver hook).

        Raises:
            InsufficientBalance: sender cannot cover amount
        """
        require(validate_address(sender, "sender"))
        require(validate_address(recipient, "recipient"))
        require(validate_amount(amount))
        if amount == 0 or sender == recipient:
            return

        with self.store.atomic():
            sender_balance = self.balance_of(sender)
            if sender_balance < amount:
                raise InsufficientBalance(sender, sender_balance, amount)
            self.store.set_amount("balances", sender, sender_balance - amount)
            self.store.set_amount("balances", recipient, self.balance_of(recipient) + amount)

    def send(self, sender: bytes, recipient: bytes, amount: int) -> None:
        """
        Transfer value and notify the recipient's receiver hook.

        The hook runs after the balances move. Callers that need the move
        undone on rejection must run send() inside their own atomic() scope.

        Raises:
            InsufficientBalance: sender cannot cover amount
            TransferRejected: hook returned False or raised
        """
        self.transfer(sender, recipient, amount)

        hook = self.receivers.get(recipient)
        if hook is None:
            return

        try:
            accepted = hook(sender, amount)
        except Exception as exc:
            raise TransferRejected(recipient, amount, f"{type(exc).__name__}: {exc}") from exc
        if accepted is False:
            raise TransferRejected(recipient, amount, "receiver refused")

    # =========================================================================
    # Receivers
    # =========================================================================

    def set_receiver(self, address: bytes, hook: ReceiverHook) -> None:
        """Attach a receiver hook to an address."""
        require(validate_address(address))
        self.receivers[address] = hook

    def clear_receiver(self, address: bytes) -> None:
        self.receivers.pop(address, None)

    def protect(self, address: bytes) -> None:
        """Refuse to mint into `address` from now on."""
        require(validate_address(address))
        self.protected.add(address)


def format_value(amount: int) -> str:
    """Render base units as value-units, e.g. 4000000000000000 -> '0.004'."""
    whole, frac = divmod(amount, VALUE_UNIT)
    if frac == 0:
        return str(whole)
    return f"{whole}.{str(frac).rjust(18, '0').rstrip('0')}"


def parse_value(text: str) -> int:
    """Parse value-units text into base units, e.g. '0.004' -> 4 * 10**15."""
    text = text.strip()
    if text.startswith("-"):
        raise ValueError(f"Negative value: {text}")
    whole, _, frac = text.partition(".")
    if len(frac) > 18:
        raise ValueError(f"Too many decimals: {text}")
    if not (whole or frac) or not (whole or "0").isdigit() or (frac and not frac.isdigit()):
        raise ValueError(f"Invalid value: {text}")
    return int(whole or "0") * VALUE_UNIT + int(frac.ljust(18, "0") or "0")


__all__ = [
    "BalanceLedger",
    "ValueTransferError",
    "InsufficientBalance",
    "TransferRejected",
    "ReceiverHook",
    "VALUE_UNIT",
    "format_value",
    "parse_value",
]
