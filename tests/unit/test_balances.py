"""
Tests for the Balance Ledger.

Tests cover:
1. Minting and transfers
2. Receiver hooks (accept, refuse, raise)
3. Value formatting
"""

import pytest

from snr.core.state import (
    BalanceLedger,
    InsufficientBalance,
    TransferRejected,
    VALUE_UNIT,
    format_value,
    parse_value,
)
from snr.core.storage import SQLiteAdapter
from snr.crypto import address_from_label


ALICE = address_from_label("alice")
BOB = address_from_label("bob")


@pytest.fixture
def ledger():
    ledger = BalanceLedger(SQLiteAdapter())
    ledger.mint(ALICE, 1000)
    return ledger


class TestTransfers:

    def test_mint(self, ledger):
        assert ledger.balance_of(ALICE) == 1000
        assert ledger.balance_of(BOB) == 0
        assert ledger.total_supply() == 1000

    def test_transfer(self, ledger):
        ledger.transfer(ALICE, BOB, 300)

        assert ledger.balance_of(ALICE) == 700
        assert ledger.balance_of(BOB) == 300
        assert ledger.total_supply() == 1000

    def test_insufficient_balance(self, ledger):
        with pytest.raises(InsufficientBalance) as exc_info:
            ledger.transfer(ALICE, BOB, 1001)

        assert exc_info.value.balance == 1000
        assert exc_info.value.amount == 1001
        assert ledger.balance_of(ALICE) == 1000

    def test_zero_transfer_is_noop(self, ledger):
        ledger.transfer(BOB, ALICE, 0)
        assert ledger.balance_of(BOB) == 0

    def test_negative_amount_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.transfer(ALICE, BOB, -1)

    def test_malformed_address_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.mint(b"\x01", 1)


class TestReceivers:

    def test_hook_sees_transfer(self, ledger):
        seen = []
        ledger.set_receiver(BOB, lambda sender, amount: seen.append((sender, amount)))

        ledger.send(ALICE, BOB, 10)

        assert seen == [(ALICE, 10)]
        assert ledger.balance_of(BOB) == 10

    def test_hook_refuses(self, ledger):
        ledger.set_receiver(BOB, lambda sender, amount: False)

        with pytest.raises(TransferRejected) as exc_info:
            ledger.send(ALICE, BOB, 10)

        assert exc_info.value.recipient == BOB
        assert "refused" in str(exc_info.value)

    def test_hook_raises(self, ledger):
        def explode(sender, amount):
            raise RuntimeError("no thanks")

        ledger.set_receiver(BOB, explode)

        with pytest.raises(TransferRejected) as exc_info:
            ledger.send(ALICE, BOB, 10)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_rejected_send_rolls_back_in_scope(self, ledger):
        """Inside an atomic scope the balance move is undone."""
        ledger.set_receiver(BOB, lambda sender, amount: False)

        with pytest.raises(TransferRejected):
            with ledger.store.atomic():
                ledger.send(ALICE, BOB, 10)

        assert ledger.balance_of(ALICE) == 1000
        assert ledger.balance_of(BOB) == 0

    def test_clear_receiver(self, ledger):
        ledger.set_receiver(BOB, lambda sender, amount: False)
        ledger.clear_receiver(BOB)

        ledger.send(ALICE, BOB, 10)
        assert ledger.balance_of(BOB) == 10


class TestFormatting:

    @pytest.mark.parametrize("amount,text", [
        (0, "0"),
        (VALUE_UNIT, "1"),
        (4 * 10**15, "0.004"),
        (VALUE_UNIT + VALUE_UNIT // 2, "1.5"),
        (1, "0.000000000000000001"),
    ])
    def test_format(self, amount, text):
        assert format_value(amount) == text

    @pytest.mark.parametrize("text,amount", [
        ("0.004", 4 * 10**15),
        ("1", VALUE_UNIT),
        ("1.5", VALUE_UNIT + VALUE_UNIT // 2),
        (".5", VALUE_UNIT // 2),
    ])
    def test_parse(self, text, amount):
        assert parse_value(text) == amount

    @pytest.mark.parametrize("text", ["", "-1", "abc", "1.2.3", "0.0000000000000000001"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            parse_value(text)
