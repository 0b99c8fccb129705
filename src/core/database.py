"""
SQLite-backed key-value store.

Two durability tiers share one database file:

- ``sync``: small, frequently read state (config, counters, rollover anchor,
  daily history, scheduled-hours snapshots)
- ``local``: larger device-local data (per-action activity log)

Values are stored as JSON text.
"""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from core.config import DB_PATH
from core.errors import StoreError

TIERS = {"sync": "kv_sync", "local": "kv_local"}



def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Get a database connection in autocommit mode (transactions are explicit)."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create key-value tiers and API request log tables if they don't exist."""
    for table in TIERS.values():
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS api_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            endpoint TEXT NOT NULL,
            method TEXT NOT NULL,
            client_ip TEXT,
            status_code INTEGER NOT NULL,
            error_code TEXT,
            error_message TEXT,
            processing_time_ms INTEGER NOT NULL,
            archived_day TEXT,
            active_day_utc TEXT
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS api_request_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT NOT NULL,
            detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'rollover', 'warning')),
            message TEXT NOT NULL,
            FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)"
    )


class KeyValueStore:
    """
    JSON key-value store over SQLite.

    All failures surface as StoreError with the operation and key attached.
    """

    def __init__(self, db_path: Path | str = DB_PATH):
        self.db_path = db_path
        try:
            self._conn = get_connection(db_path)
            create_schema(self._conn)
        except (sqlite3.Error, OSError) as e:
            raise StoreError(str(e), operation="open", key=str(db_path)) from e
        self._in_transaction = False

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    def _table(self, tier: str) -> str:
        try:
            return TIERS[tier]
        except KeyError:
            raise StoreError(f"Unknown tier '{tier}'", operation="tier", key=tier) from None

    def get(self, key: str, default: Any = None, tier: str = "sync") -> Any:
        table = self._table(tier)
        try:
            row = self._conn.execute(f"SELECT value FROM {table} WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(str(e), operation="get", key=key) from e
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt value: {e}", operation="get", key=key) from e

    def set(self, key: str, value: Any, tier: str = "sync") -> None:
        self.set_many({key: value}, tier=tier)

    def set_many(self, values: dict[str, Any], tier: str = "sync") -> None:
        """Write several keys atomically."""
        table = self._table(tier)
        with self.transaction():
            for key, value in values.items():
                try:
                    encoded = json.dumps(value)
                except (TypeError, ValueError) as e:
                    raise StoreError(f"Unserializable value: {e}", operation="set", key=key) from e
                try:
                    self._conn.execute(
                        f"""
                        INSERT INTO {table} (key, value, updated_at)
                        VALUES (?, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value, updated_at = excluded.updated_at
                        """,
                        (key, encoded),
                    )
                except sqlite3.Error as e:
                    raise StoreError(str(e), operation="set", key=key) from e

    def delete(self, key: str, tier: str = "sync") -> None:
        table = self._table(tier)
        try:
            with self.transaction():
                self._conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StoreError(str(e), operation="delete", key=key) from e

    def items(self, tier: str = "sync") -> dict[str, Any]:
        """Bulk-read every key in a tier."""
        table = self._table(tier)
        try:
            rows = self._conn.execute(f"SELECT key, value FROM {table}").fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e), operation="items", key=tier) from e
        result = {}
        for key, raw in rows:
            try:
                result[key] = json.loads(raw)
            except json.JSONDecodeError as e:
                raise StoreError(f"Corrupt value: {e}", operation="items", key=key) from e
        return result

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """
        Run a block inside ``BEGIN IMMEDIATE`` (a write lock across processes).

        Nested use joins the outer transaction.
        """
        if self._in_transaction:
            yield self
            return

        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StoreError(str(e), operation="begin", key=str(self.db_path)) from e
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._in_transaction = False
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error:
                pass
            raise
        else:
            self._in_transaction = False
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                raise StoreError(str(e), operation="commit", key=str(self.db_path)) from e

    def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            self._conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False
