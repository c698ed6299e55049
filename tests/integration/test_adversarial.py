"""
Adversarial Tests - ordering, reentrancy and transfer failure.

Tests verify:
1. Front-running a revealed registration does not pay off
2. Receivers cannot re-enter the registry during a transfer
3. A refusing receiver rolls the whole call back
4. Readers on other threads never see a call's uncommitted writes
5. Value is conserved across every scenario
"""

import threading

import pytest

from snr.core.registry import (
    NameRegistry,
    InvalidReservation,
    NameAlreadyRegistered,
    ReentrantCall,
    TransferFailed,
    MIN_REVEAL_DELAY,
)
from snr.core.state import ManualClock, VALUE_UNIT
from snr.crypto import address_from_label, make_commitment


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return ManualClock(1_700_000_000)


@pytest.fixture
def registry(clock):
    return NameRegistry(clock=clock)


@pytest.fixture
def accounts(registry):
    names = ("alice", "mallory")
    addresses = {name: address_from_label(name) for name in names}
    for address in addresses.values():
        registry.balances.mint(address, VALUE_UNIT)
    return addresses


def register(registry, clock, caller, name, salt):
    commitment = make_commitment(name, salt)
    registry.reserve_name(caller, commitment)
    clock.advance(MIN_REVEAL_DELAY)
    return registry.register_name(caller, commitment, name, salt, value=registry.cost(name))


# =============================================================================
# Front-running
# =============================================================================


class TestFrontRunning:
    """An observer learns (name, salt) from a pending register call."""

    def test_copying_reveal_fails(self, registry, clock, accounts):
        """Replaying the victim's reveal is rejected: the reservation is not theirs."""
        alice, mallory = accounts["alice"], accounts["mallory"]
        commitment = make_commitment("test", 123)
        registry.reserve_name(alice, commitment)
        clock.advance(MIN_REVEAL_DELAY)

        with pytest.raises(InvalidReservation):
            registry.register_name(mallory, commitment, "test", 123, value=registry.cost("test"))

        registry.register_name(alice, commitment, "test", 123, value=registry.cost("test"))
        assert registry.get_record_by_name("test").owner == alice

    def test_fresh_reservation_cannot_finalize_in_time(self, registry, clock, accounts):
        """Mallory's own reservation is still inside its reveal delay."""
        alice, mallory = accounts["alice"], accounts["mallory"]
        commitment = make_commitment("test", 123)
        registry.reserve_name(alice, commitment)
        clock.advance(MIN_REVEAL_DELAY)

        own = make_commitment("test", 999)
        registry.reserve_name(mallory, own)
        with pytest.raises(InvalidReservation):
            registry.register_name(mallory, own, "test", 999, value=registry.cost("test"))

        registry.register_name(alice, commitment, "test", 123, value=registry.cost("test"))

        clock.advance(MIN_REVEAL_DELAY)
        with pytest.raises(NameAlreadyRegistered):
            registry.register_name(mallory, own, "test", 999, value=registry.cost("test"))

        assert registry.balances.balance_of(mallory) == VALUE_UNIT
        assert registry.audit().balanced

    def test_squatting_victims_hash(self, registry, clock, accounts):
        """Reserving the victim's hash first only blocks, it never wins the name."""
        alice, mallory = accounts["alice"], accounts["mallory"]
        commitment = make_commitment("test", 123)
        registry.reserve_name(mallory, commitment)

        # Mallory cannot reveal without the preimage; alice waits the window out
        clock.advance(11 * 60)
        registry.reserve_name(alice, commitment)
        clock.advance(MIN_REVEAL_DELAY)
        registry.register_name(alice, commitment, "test", 123, value=registry.cost("test"))

        assert registry.get_record_by_name("test").owner == alice


# =============================================================================
# Reentrancy
# =============================================================================


class TestReentrancy:
    """Receivers that call back into the registry during a transfer."""

    def test_reentrant_delete_fails_and_rolls_back(self, registry, clock, accounts):
        """Propagating the guard error fails the refund and undoes the delete."""
        mallory = accounts["mallory"]
        register(registry, clock, mallory, "test", 1)
        register(registry, clock, mallory, "more", 2)
        held = registry.held_value

        def attack(sender, amount):
            registry.delete_registration(mallory, "more")

        registry.balances.set_receiver(mallory, attack)

        with pytest.raises(TransferFailed) as exc_info:
            registry.delete_registration(mallory, "test")

        assert isinstance(exc_info.value.__cause__.__cause__, ReentrantCall)
        assert registry.get_record_by_name("test").owner == mallory
        assert registry.get_record_by_name("more").owner == mallory
        assert registry.held_value == held
        assert registry.audit().balanced

    def test_swallowed_reentry_has_no_effect(self, registry, clock, accounts):
        """A receiver that ignores the guard error gets exactly one refund."""
        mallory = accounts["mallory"]
        register(registry, clock, mallory, "test", 1)
        before = registry.balances.balance_of(mallory)
        attempts = []

        def attack(sender, amount):
            try:
                registry.delete_registration(mallory, "test")
            except ReentrantCall as exc:
                attempts.append(exc)

        registry.balances.set_receiver(mallory, attack)
        refund = registry.delete_registration(mallory, "test")

        assert len(attempts) == 1
        assert registry.balances.balance_of(mallory) - before == refund == registry.cost("test")
        assert registry.held_value == 0

    def test_reentrant_recover(self, registry, clock, accounts):
        """Double-withdrawing a credit through the receiver is impossible."""
        alice, mallory = accounts["alice"], accounts["mallory"]
        record = register(registry, clock, mallory, "test", 1)
        clock.set(record.expiration)
        register(registry, clock, alice, "test", 2)
        credit = registry.credit_of(mallory)
        attempts = []

        def attack(sender, amount):
            try:
                registry.recover_balance(mallory)
            except ReentrantCall:
                attempts.append(amount)

        registry.balances.set_receiver(mallory, attack)
        before = registry.balances.balance_of(mallory)

        assert registry.recover_balance(mallory) == credit
        assert attempts == [credit]
        assert registry.balances.balance_of(mallory) - before == credit
        assert registry.credit_of(mallory) == 0
        assert registry.audit().balanced

    def test_guard_released_after_failure(self, registry, clock, accounts):
        mallory = accounts["mallory"]
        register(registry, clock, mallory, "test", 1)
        registry.balances.set_receiver(mallory, lambda sender, amount: False)

        with pytest.raises(TransferFailed):
            registry.delete_registration(mallory, "test")

        registry.balances.clear_receiver(mallory)
        assert registry.delete_registration(mallory, "test") == registry.cost("test")


# =============================================================================
# Transfer Failure
# =============================================================================


class TestTransferFailure:

    def test_refusing_receiver_keeps_credit(self, registry, clock, accounts):
        alice, mallory = accounts["alice"], accounts["mallory"]
        record = register(registry, clock, alice, "test", 1)
        clock.set(record.expiration)
        register(registry, clock, mallory, "test", 2)
        registry.balances.set_receiver(alice, lambda sender, amount: False)

        with pytest.raises(TransferFailed) as exc_info:
            registry.recover_balance(alice)

        assert exc_info.value.recipient == alice
        assert exc_info.value.amount == registry.cost("test")
        assert registry.credit_of(alice) == registry.cost("test")
        assert registry.audit().balanced

    def test_refusing_receiver_keeps_record(self, registry, clock, accounts):
        alice = accounts["alice"]
        register(registry, clock, alice, "test", 1)
        events = len(registry.events)
        registry.balances.set_receiver(alice, lambda sender, amount: False)

        with pytest.raises(TransferFailed):
            registry.delete_registration(alice, "test")

        assert registry.get_record_by_name("test").owner == alice
        assert len(registry.events) == events


# =============================================================================
# Concurrent Readers
# =============================================================================


class TestConcurrentReaders:
    """A query on another thread while a call is suspended in a receiver hook."""

    def test_reader_waits_for_call_to_finish(self, registry, clock, accounts):
        alice = accounts["alice"]
        register(registry, clock, alice, "test", 1)
        balance = registry.balances.balance_of(alice)

        in_hook = threading.Event()
        release = threading.Event()

        def slow_refusal(sender, amount):
            in_hook.set()
            release.wait(timeout=5)
            return False

        registry.balances.set_receiver(alice, slow_refusal)
        errors = []
        observed = []

        def delete():
            try:
                registry.delete_registration(alice, "test")
            except TransferFailed as exc:
                errors.append(exc)

        def read():
            observed.append((
                registry.get_record_by_name("test"),
                registry.balances.balance_of(alice),
            ))

        caller = threading.Thread(target=delete)
        caller.start()
        assert in_hook.wait(timeout=5)

        reader = threading.Thread(target=read)
        reader.start()
        reader.join(timeout=0.2)
        # Blocked behind the running call
        assert reader.is_alive()
        assert observed == []

        release.set()
        caller.join(timeout=5)
        reader.join(timeout=5)

        assert len(errors) == 1
        record, seen_balance = observed[0]
        assert record.owner == alice
        assert seen_balance == balance
        assert registry.audit().balanced


# =============================================================================
# Conservation
# =============================================================================


class TestConservation:

    def test_total_supply_constant(self, registry, clock, accounts):
        """Registry operations only move value, never create or destroy it."""
        alice, mallory = accounts["alice"], accounts["mallory"]
        supply = registry.balances.total_supply()

        record = register(registry, clock, alice, "test", 1)
        register(registry, clock, mallory, "mine", 2)
        clock.set(record.expiration)
        register(registry, clock, mallory, "test", 3)
        registry.recover_balance(alice)
        registry.renew_registration(mallory, "mine")
        registry.delete_registration(mallory, "test")

        assert registry.balances.total_supply() == supply
        assert registry.audit().balanced
        assert registry.held_value == registry.cost("mine")
