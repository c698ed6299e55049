"""
SNR CLI - Command Line Interface for the Sealed Name Registry

Main entry point for all CLI commands.
"""

import json
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click

from snr.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


def _format_time(timestamp: int) -> str:
    if timestamp == 0:
        return "-"
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return f"{moment.strftime('%Y-%m-%d %H:%M:%S')} UTC ({timestamp})"


def _registry(ctx):
    """Open (once per invocation) the registry backed by the node's store."""
    from snr.core.registry import NameRegistry
    from snr.core.storage import SQLiteAdapter

    if "registry" not in ctx.obj:
        config = ctx.obj["config"]
        store = SQLiteAdapter(config.db_path)
        ctx.obj["registry"] = NameRegistry(store=store)
        ctx.call_on_close(store.close)
    return ctx.obj["registry"]


def _wallet_path(ctx, name: str) -> Path:
    return ctx.obj["config"].data_dir / "wallets" / f"{name}.json"


def _wallet_address(ctx, name: str) -> bytes:
    """Resolve a wallet name (or a 0x address) to an address."""
    from snr.crypto import hex_to_bytes, is_valid_address

    if is_valid_address(name):
        return hex_to_bytes(name)

    wallet_path = _wallet_path(ctx, name)
    if not wallet_path.exists():
        raise click.ClickException(
            f"Wallet '{name}' not found. Create with: snr wallet create --name {name}"
        )
    wallet_data = json.loads(wallet_path.read_text())
    return hex_to_bytes(wallet_data["address"])


def _parse_hash(text: str) -> bytes:
    from snr.crypto import hex_to_bytes

    try:
        value = hex_to_bytes(text)
    except ValueError:
        raise click.BadParameter(f"not a hex string: {text}")
    if len(value) != 32:
        raise click.BadParameter(f"expected 32 bytes, got {len(value)}")
    return value


class _Failures:
    """Turn protocol and value-layer errors into CLI errors."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        from snr.core.registry import RegistryError
        from snr.core.state import ValueTransferError

        if exc_type is not None and issubclass(exc_type, (RegistryError, ValueTransferError, ValueError)):
            raise click.ClickException(f"{exc_type.__name__}: {exc}") from exc
        return False


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default ~/.snr)")
@click.option("--env-file", default=None, help="Path to a .env file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, env_file):
    """Sealed Name Registry - commit/reveal name registration"""
    from snr.core.config import load_config

    try:
        config = load_config(
            env_file,
            data_dir=data_dir,
            log_level="DEBUG" if debug else None,
        )
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}")

    config.ensure_dirs()
    setup_logging(
        level=config.level,
        log_dir=str(config.resolved_log_dir),
        log_to_file=config.log_to_file,
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Wallet Commands
# =============================================================================

@cli.group()
def wallet():
    """Wallet management commands"""
    pass


@wallet.command("create")
@click.option("--name", default="default", help="Wallet name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Encryption password")
@click.pass_context
def wallet_create(ctx, name, password):
    """Create a new encrypted wallet"""
    import base64
    import hashlib
    from cryptography.fernet import Fernet
    from snr.crypto import generate_keypair, bytes_to_hex

    wallet_path = _wallet_path(ctx, name)
    if wallet_path.exists():
        raise click.ClickException(f"Wallet '{name}' already exists")

    kp = generate_keypair()

    # Derive encryption key from password using PBKDF2
    salt = name.encode()  # Use wallet name as salt (deterministic per wallet)
    key = base64.urlsafe_b64encode(
        hashlib.pbkdf2_hmac('sha256', password.encode(), salt, 100000)
    )
    fernet = Fernet(key)

    encrypted_private_key = fernet.encrypt(kp.private_key).decode('utf-8')

    wallet_path.parent.mkdir(parents=True, exist_ok=True)

    wallet_data = {
        "name": name,
        "address": bytes_to_hex(kp.address),
        "encrypted_private_key": encrypted_private_key,
        "public_key": bytes_to_hex(kp.public_key),
    }

    wallet_path.write_text(json.dumps(wallet_data, indent=2))

    click.echo(f"✓ Wallet created: {name}")
    click.echo(f"  Address: {bytes_to_hex(kp.address)}")
    click.echo(f"  Saved to: {wallet_path}")
    click.echo(f"  ⚠️  Remember your password - it cannot be recovered!")


@wallet.command("list")
@click.pass_context
def wallet_list(ctx):
    """List all wallets"""
    wallet_dir = ctx.obj["config"].data_dir / "wallets"
    wallet_files = sorted(wallet_dir.glob("*.json")) if wallet_dir.exists() else []
    if not wallet_files:
        click.echo("No wallets found.")
        return

    for wallet_file in wallet_files:
        data = json.loads(wallet_file.read_text())
        click.echo(f"  {data['name']}: {data['address']}")


@wallet.command("balance")
@click.argument("wallet_name")
@click.pass_context
def wallet_balance(ctx, wallet_name):
    """Show the balance of a wallet (name or 0x address)"""
    from snr.core.state import format_value
    from snr.crypto import bytes_to_hex

    address = _wallet_address(ctx, wallet_name)
    registry = _registry(ctx)
    click.echo(f"Address: {bytes_to_hex(address)}")
    click.echo(f"Balance: {format_value(registry.balances.balance_of(address))}")


@wallet.command("fund")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.option("--amount", required=True, help="Amount in value-units, e.g. 1.5")
@click.pass_context
def wallet_fund(ctx, wallet_name, amount):
    """Credit a wallet from the local devnet faucet"""
    from snr.core.state import format_value, parse_value

    try:
        base_units = parse_value(amount)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--amount")

    limit = ctx.obj["config"].faucet_limit
    if base_units > limit:
        raise click.ClickException(f"Faucet limit is {format_value(limit)}")

    address = _wallet_address(ctx, wallet_name)
    with _Failures():
        balance = _registry(ctx).balances.mint(address, base_units)
    click.echo(f"✓ Funded {format_value(base_units)}, balance now {format_value(balance)}")


# =============================================================================
# Name Commands
# =============================================================================

@cli.group()
def name():
    """Name registration commands"""
    pass


@name.command("cost")
@click.argument("name_text")
def name_cost(name_text):
    """Show the registration fee of a name"""
    from snr.core.registry import rules
    from snr.core.state import format_value

    click.echo(f"Name: {name_text} ({rules.name_length(name_text)} chars)")
    if not rules.is_valid_length(name_text):
        click.echo(f"  ⚠️  Length must be {rules.MIN_LEN}-{rules.MAX_LEN}")
    click.echo(f"Cost: {format_value(rules.cost(name_text))}")


@name.command("commit")
@click.argument("name_text")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.option("--salt", type=int, default=None, help="Secret salt (random if omitted)")
@click.pass_context
def name_commit(ctx, name_text, wallet_name, salt):
    """Reserve a commitment to NAME"""
    from snr.core.registry import rules
    from snr.crypto import bytes_to_hex, make_commitment

    caller = _wallet_address(ctx, wallet_name)
    if salt is None:
        salt = secrets.randbits(256)

    with _Failures():
        commitment = make_commitment(name_text, salt)
        reservation = _registry(ctx).reserve_name(caller, commitment)

    click.echo(f"✓ Reserved commitment {bytes_to_hex(commitment)}")
    click.echo(f"  Salt: {salt}")
    click.echo(f"  Register after: {_format_time(reservation.commit_time + rules.MIN_REVEAL_DELAY)}")
    click.echo(f"  Register before: {_format_time(rules.reservation_deadline(reservation.commit_time))}")
    click.echo(f"  ⚠️  Keep the salt secret until you register!")


@name.command("register")
@click.argument("name_text")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.option("--salt", type=int, required=True, help="Salt used in `name commit`")
@click.option("--value", "value_text", default=None, help="Payment in value-units (default: exact cost)")
@click.pass_context
def name_register(ctx, name_text, wallet_name, salt, value_text):
    """Reveal NAME and register it"""
    from snr.core.registry import rules
    from snr.core.state import format_value, parse_value
    from snr.crypto import make_commitment

    caller = _wallet_address(ctx, wallet_name)

    with _Failures():
        value = parse_value(value_text) if value_text is not None else rules.cost(name_text)
        commitment = make_commitment(name_text, salt)
        record = _registry(ctx).register_name(caller, commitment, name_text, salt, value=value)

    click.echo(f"✓ Registered {name_text} for {format_value(value)}")
    click.echo(f"  Expires: {_format_time(record.expiration)}")


@name.command("renew")
@click.argument("name_text")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.pass_context
def name_renew(ctx, name_text, wallet_name):
    """Extend a registration you own"""
    caller = _wallet_address(ctx, wallet_name)
    with _Failures():
        expiration = _registry(ctx).renew_registration(caller, name_text)
    click.echo(f"✓ Renewed {name_text}, expires {_format_time(expiration)}")


@name.command("delete")
@click.argument("name_text")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.pass_context
def name_delete(ctx, name_text, wallet_name):
    """Release a registration you own and take its fee back"""
    from snr.core.state import format_value

    caller = _wallet_address(ctx, wallet_name)
    with _Failures():
        refund = _registry(ctx).delete_registration(caller, name_text)
    click.echo(f"✓ Deleted {name_text}, refunded {format_value(refund)}")


@name.command("show")
@click.argument("name_text")
@click.pass_context
def name_show(ctx, name_text):
    """Show the record of NAME"""
    from snr.core.registry import rules
    from snr.crypto import bytes_to_hex, name_hash

    registry = _registry(ctx)
    record = registry.get_record_by_name(name_text)
    now = registry.clock.now()

    click.echo(f"Name: {name_text}")
    click.echo(f"  Hash: {bytes_to_hex(name_hash(name_text))}")
    if record.is_vacant:
        click.echo("  Status: vacant")
        return
    status = "live" if rules.is_live(record.expiration, now) else "expired"
    click.echo(f"  Status: {status}")
    click.echo(f"  Owner: {bytes_to_hex(record.owner)}")
    click.echo(f"  Expires: {_format_time(record.expiration)}")


@name.command("list")
@click.pass_context
def name_list(ctx):
    """List all present name records"""
    from snr.core.registry import rules
    from snr.crypto import bytes_to_hex

    registry = _registry(ctx)
    entries = registry.names.entries()
    if not entries:
        click.echo("No names registered.")
        return

    now = registry.clock.now()
    for name_text, record in entries:
        status = "live" if rules.is_live(record.expiration, now) else "expired"
        click.echo(f"  {name_text:<10} {status:<8} {bytes_to_hex(record.owner)}")


# =============================================================================
# Reservation / Credit Commands
# =============================================================================

@cli.group()
def reservation():
    """Reservation inspection commands"""
    pass


@reservation.command("show")
@click.argument("commitment_hex")
@click.pass_context
def reservation_show(ctx, commitment_hex):
    """Show the reservation stored under a commitment hash"""
    from snr.core.registry import rules
    from snr.crypto import bytes_to_hex

    commitment = _parse_hash(commitment_hex)
    stored = _registry(ctx).get_reservation(commitment)
    if not stored.exists:
        click.echo("No reservation.")
        return
    click.echo(f"Committer: {bytes_to_hex(stored.committer)}")
    click.echo(f"Committed: {_format_time(stored.commit_time)}")
    click.echo(f"Deadline: {_format_time(rules.reservation_deadline(stored.commit_time))}")


@cli.group()
def credit():
    """Displacement credit commands"""
    pass


@credit.command("show")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.pass_context
def credit_show(ctx, wallet_name):
    """Show the recoverable credit of a wallet"""
    from snr.core.state import format_value

    address = _wallet_address(ctx, wallet_name)
    click.echo(f"Credit: {format_value(_registry(ctx).credit_of(address))}")


@credit.command("recover")
@click.option("--wallet", "wallet_name", required=True, help="Wallet name or 0x address")
@click.pass_context
def credit_recover(ctx, wallet_name):
    """Withdraw the recoverable credit of a wallet"""
    from snr.core.state import format_value

    caller = _wallet_address(ctx, wallet_name)
    with _Failures():
        amount = _registry(ctx).recover_balance(caller)
    if amount:
        click.echo(f"✓ Recovered {format_value(amount)}")
    else:
        click.echo("Nothing to recover.")


# =============================================================================
# Accounting Commands
# =============================================================================

@cli.command("audit")
@click.pass_context
def audit(ctx):
    """Check that the registry holds exactly what it owes"""
    from snr.core.state import format_value

    report = _registry(ctx).audit()
    click.echo(f"Held value:   {format_value(report.held_value)}")
    click.echo(f"Credits:      {format_value(report.total_credits)}")
    click.echo(f"Locked fees:  {format_value(report.locked_fees)}")
    if report.balanced:
        click.echo("✅ Balanced")
    else:
        raise click.ClickException("Registry is unbalanced")


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show registry statistics"""
    from snr.core.state import format_value

    click.echo("SNR Registry Statistics")
    click.echo("-" * 40)
    for key, value in _registry(ctx).stats().items():
        if key in ("total_credits", "held_value"):
            value = format_value(value)
        click.echo(f"  {key}: {value}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run a full registration lifecycle on a simulated clock"""
    from snr.core.registry import NameRegistry, rules
    from snr.core.state import ManualClock, format_value, VALUE_UNIT
    from snr.crypto import generate_keypair, bytes_to_hex, make_commitment

    click.echo("=" * 60)
    click.echo("  SEALED NAME REGISTRY - DEMO")
    click.echo("=" * 60)
    click.echo()

    clock = ManualClock()
    registry = NameRegistry(clock=clock)
    alice = generate_keypair().address
    bob = generate_keypair().address
    registry.balances.mint(alice, VALUE_UNIT)
    registry.balances.mint(bob, VALUE_UNIT)
    click.echo("📦 In-memory registry, Alice and Bob funded with 1 unit each")
    click.echo()

    # Commit / reveal
    click.echo("🔒 Alice commits to 'test' ...")
    commitment = make_commitment("test", 123)
    registry.reserve_name(alice, commitment)
    click.echo(f"  ✓ Commitment {bytes_to_hex(commitment)[:18]}...")
    clock.advance(rules.MIN_REVEAL_DELAY)
    record = registry.register_name(alice, commitment, "test", 123, value=rules.cost("test"))
    click.echo(f"  ✓ Registered 'test' for {format_value(rules.cost('test'))}")
    click.echo()

    # Expiry and takeover
    click.echo("⏳ Ten weeks later, the name expires; Bob takes it over ...")
    clock.set(record.expiration)
    commitment = make_commitment("test", 456)
    registry.reserve_name(bob, commitment)
    clock.advance(rules.MIN_REVEAL_DELAY)
    registry.register_name(bob, commitment, "test", 456, value=rules.cost("test"))
    click.echo(f"  ✓ Bob owns 'test'; Alice's credit: {format_value(registry.credit_of(alice))}")
    click.echo()

    click.echo("💸 Alice recovers her credit ...")
    amount = registry.recover_balance(alice)
    click.echo(f"  ✓ Recovered {format_value(amount)}; "
               f"balance {format_value(registry.balances.balance_of(alice))}")
    click.echo()

    click.echo("🗑️  Bob deletes 'test' ...")
    refund = registry.delete_registration(bob, "test")
    click.echo(f"  ✓ Refunded {format_value(refund)}")
    click.echo()

    report = registry.audit()
    click.echo("📊 Final Statistics:")
    click.echo(f"  Events: {len(registry.events)}")
    click.echo(f"  Held value: {format_value(report.held_value)} "
               f"({'balanced' if report.balanced else 'UNBALANCED'})")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
