import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from snr.utils.logger import get_logger

logger = get_logger("storage.sqlite")

MEMORY = ":memory:"


class SQLiteAdapter:
    """
    SQLite backend for the registry's persistent store.

    Provides:
    1. Registry ledgers: reservations, name records, credits.
    2. Account balances of the value layer.
    3. Metadata (schema version, registry address).

    Amounts are stored as decimal TEXT: value units in base units overflow
    SQLite's 64-bit INTEGER.

    Writes made inside atomic() are committed or rolled back together.
    Writes outside any atomic() scope commit immediately. Every statement
    takes the connection lock, so a reader on another thread waits for a
    running atomic() scope instead of seeing its uncommitted writes.
    """

    SCHEMA_VERSION = "1"

    def __init__(self, db_path: Union[Path, str] = MEMORY):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._depth = 0

        if db_path != MEMORY:
            db_path = Path(db_path)
            self.db_path = db_path
            # Ensure directory exists
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)

        # isolation_level=None: transactions are opened explicitly by atomic()
        self._conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        if self.db_path != MEMORY:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")

        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        with self.atomic():
            # 1. Reservation ledger: commitment hash -> (committer, commit time)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS reservations (
                    commitment BLOB PRIMARY KEY,
                    committer BLOB NOT NULL,
                    commit_time INTEGER NOT NULL
                )
            """)

            # 2. Name ledger: name hash -> (owner, expiration)
            # The name text is kept for accounting (locked fee) and listings.
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS names (
                    name_hash BLOB PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner BLOB NOT NULL,
                    expiration INTEGER NOT NULL
                )
            """)
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_names_owner ON names(owner);")

            # 3. Credit ledger: address -> recoverable amount
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS credits (
                    address BLOB PRIMARY KEY,
                    amount TEXT NOT NULL
                )
            """)

            # 4. Value layer: address -> balance
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS balances (
                    address BLOB PRIMARY KEY,
                    amount TEXT NOT NULL
                )
            """)

            # 5. Metadata
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS registry_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)
            self._conn.execute(
                "INSERT OR IGNORE INTO registry_meta (key, value) VALUES ('schema_version', ?)",
                (self.SCHEMA_VERSION,),
            )

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run the enclosed block as one transaction.

        Nested scopes join the outermost one; only the outermost scope
        commits or rolls back.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._conn.execute("BEGIN")
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._conn.execute("ROLLBACK")
                    logger.debug("Transaction rolled back")
                raise
            else:
                self._depth -= 1
                if outermost:
                    self._conn.execute("COMMIT")

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def close(self):
        with self._lock:
            self._conn.close()

    # =========================================================================
    # Reservations
    # =========================================================================

    def get_reservation(self, commitment: bytes) -> Optional[Tuple[bytes, int]]:
        """Get (committer, commit_time) for a commitment hash."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT committer, commit_time FROM reservations WHERE commitment = ?",
                (commitment,),
            )
            row = cursor.fetchone()
        return (bytes(row["committer"]), row["commit_time"]) if row else None

    def save_reservation(self, commitment: bytes, committer: bytes, commit_time: int):
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO reservations (commitment, committer, commit_time) VALUES (?, ?, ?)",
                (commitment, committer, commit_time),
            )

    def count_reservations(self) -> int:
        with self._lock:
            cursor = self._conn.execute("SELECT COUNT(*) AS cnt FROM reservations")
            return cursor.fetchone()["cnt"]

    # =========================================================================
    # Name Records
    # =========================================================================

    def get_name(self, name_hash: bytes) -> Optional[Tuple[str, bytes, int]]:
        """Get (name, owner, expiration) for a name hash."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT name, owner, expiration FROM names WHERE name_hash = ?",
                (name_hash,),
            )
            row = cursor.fetchone()
        return (row["name"], bytes(row["owner"]), row["expiration"]) if row else None

    def save_name(self, name_hash: bytes, name: str, owner: bytes, expiration: int):
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO names (name_hash, name, owner, expiration) VALUES (?, ?, ?, ?)",
                (name_hash, name, owner, expiration),
            )

    def update_expiration(self, name_hash: bytes, expiration: int):
        with self._lock:
            self._conn.execute(
                "UPDATE names SET expiration = ? WHERE name_hash = ?",
                (expiration, name_hash),
            )

    def delete_name(self, name_hash: bytes):
        with self._lock:
            self._conn.execute("DELETE FROM names WHERE name_hash = ?", (name_hash,))

    def get_all_names(self) -> List[Tuple[bytes, str, bytes, int]]:
        """Get all (name_hash, name, owner, expiration) ordered by name."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT name_hash, name, owner, expiration FROM names ORDER BY name ASC"
            )
            return [
                (bytes(row["name_hash"]), row["name"], bytes(row["owner"]), row["expiration"])
                for row in cursor
            ]

    # =========================================================================
    # Amount Tables (credits, balances)
    # =========================================================================

    def get_amount(self, table: str, address: bytes) -> int:
        table = self._amount_table(table)
        with self._lock:
            cursor = self._conn.execute(
                f"SELECT amount FROM {table} WHERE address = ?",
                (address,),
            )
            row = cursor.fetchone()
        return int(row["amount"]) if row else 0

    def set_amount(self, table: str, address: bytes, amount: int):
        """Store an amount; zero removes the row."""
        table = self._amount_table(table)
        with self._lock:
            if amount == 0:
                self._conn.execute(f"DELETE FROM {table} WHERE address = ?", (address,))
            else:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO {table} (address, amount) VALUES (?, ?)",
                    (address, str(amount)),
                )

    def get_all_amounts(self, table: str) -> List[Tuple[bytes, int]]:
        table = self._amount_table(table)
        with self._lock:
            cursor = self._conn.execute(f"SELECT address, amount FROM {table}")
            return [(bytes(row["address"]), int(row["amount"])) for row in cursor]

    @staticmethod
    def _amount_table(table: str) -> str:
        if table not in ("credits", "balances"):
            raise ValueError(f"Unknown amount table: {table}")
        return table

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO registry_meta (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_meta(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._conn.execute("SELECT value FROM registry_meta WHERE key = ?", (key,))
            row = cursor.fetchone()
        return row["value"] if row else None
