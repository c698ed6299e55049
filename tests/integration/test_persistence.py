"""
Persistence Tests - registry state across restarts.
"""

import pytest

from snr.core.registry import NameRegistry, NameRecord, MIN_REVEAL_DELAY
from snr.core.state import ManualClock, VALUE_UNIT
from snr.core.storage import SQLiteAdapter
from snr.crypto import address_from_label, make_commitment


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "node_data" / "registry.db"


def test_registry_state_survives_restart(db_path):
    """Ledgers and balances are read back from the same file."""
    clock = ManualClock(1_700_000_000)
    alice = address_from_label("alice")
    bob = address_from_label("bob")

    # 1. Start node A
    store_a = SQLiteAdapter(db_path)
    registry_a = NameRegistry(store=store_a, clock=clock)
    registry_a.balances.mint(alice, VALUE_UNIT)
    registry_a.balances.mint(bob, VALUE_UNIT)

    commitment = make_commitment("test", 1)
    registry_a.reserve_name(alice, commitment)
    clock.advance(MIN_REVEAL_DELAY)
    record = registry_a.register_name(alice, commitment, "test", 1, value=registry_a.cost("test"))

    clock.set(record.expiration)
    takeover = make_commitment("test", 2)
    registry_a.reserve_name(bob, takeover)

    # 2. Stop node A
    store_a.close()

    # 3. Start node B on the same file, finish bob's registration
    store_b = SQLiteAdapter(db_path)
    registry_b = NameRegistry(store=store_b, clock=clock)

    assert registry_b.get_record_by_name("test") == record
    assert registry_b.get_reservation(takeover).committer == bob
    assert registry_b.held_value == registry_b.cost("test")

    clock.advance(MIN_REVEAL_DELAY)
    registry_b.register_name(bob, takeover, "test", 2, value=registry_b.cost("test"))
    store_b.close()

    # 4. Node C sees the credit
    store_c = SQLiteAdapter(db_path)
    registry_c = NameRegistry(store=store_c, clock=clock)

    assert registry_c.credit_of(alice) == registry_c.cost("test")
    assert registry_c.get_record_by_name("test").owner == bob
    assert registry_c.audit().balanced
    store_c.close()


def test_failed_call_not_persisted(db_path):
    clock = ManualClock(1_700_000_000)
    alice = address_from_label("alice")

    store = SQLiteAdapter(db_path)
    registry = NameRegistry(store=store, clock=clock)
    registry.balances.mint(alice, VALUE_UNIT)
    commitment = make_commitment("test", 1)
    registry.reserve_name(alice, commitment)
    clock.advance(MIN_REVEAL_DELAY)
    with pytest.raises(Exception):
        registry.register_name(alice, commitment, "test", 1, value=1)
    store.close()

    reopened = SQLiteAdapter(db_path)
    registry = NameRegistry(store=reopened, clock=clock)
    assert registry.get_record_by_name("test") == NameRecord()
    assert registry.balances.balance_of(alice) == VALUE_UNIT
    reopened.close()


def test_store_bound_to_registry_address(db_path):
    store = SQLiteAdapter(db_path)
    NameRegistry(store=store)

    with pytest.raises(ValueError):
        NameRegistry(store=store, address=address_from_label("someone else"))
    store.close()
