"""
SQLite-backed ordered key/value store.

A single SQLite file holds every keyspace:

    keyspaces:
        - name TEXT PRIMARY KEY

    entries:
        - keyspace TEXT
        - key BLOB
        - value BLOB
        - PRIMARY KEY (keyspace, key)   (WITHOUT ROWID, so rows are clustered
          by key and BLOB comparison is memcmp, i.e. ascending byte order)

Invariants:
    - One SQLite file per store
    - Every write transaction runs under BEGIN IMMEDIATE and the in-process
      writer lock, so writers are serialized
    - Keys and values are always bound as bytes
    - Any sqlite3.Error leaves the store as StorageError with the cause attached

How to change safely:
    - Never bind str keys directly (TEXT sorts differently from BLOB)
    - Keep WAL mode on when readers and writers share the file
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..errors import StorageError
from .base import Cursor, Item, Key, KVStore, Namespace, Transaction, to_key

logger = logging.getLogger(__name__)

SYNCHRONOUS_MODES = ("OFF", "NORMAL", "FULL", "EXTRA")


class SqliteCursor(Cursor):
    """Cursor over one keyspace. Each step is an indexed range query."""

    def __init__(self, namespace: SqliteNamespace) -> None:
        self._ns = namespace
        self._key: Optional[bytes] = None

    def first(self) -> Optional[Item]:
        return self._fetch(
            "SELECT key, value FROM entries WHERE keyspace = ? ORDER BY key LIMIT 1",
            (self._ns.name,),
        )

    def seek(self, key: Key) -> Optional[Item]:
        return self._fetch(
            "SELECT key, value FROM entries WHERE keyspace = ? AND key >= ? ORDER BY key LIMIT 1",
            (self._ns.name, to_key(key)),
        )

    def next(self) -> Optional[Item]:
        if self._key is None:
            return None
        return self._fetch(
            "SELECT key, value FROM entries WHERE keyspace = ? AND key > ? ORDER BY key LIMIT 1",
            (self._ns.name, self._key),
        )

    def _fetch(self, sql: str, params: tuple) -> Optional[Item]:
        row = self._ns.tx.conn.execute(sql, params).fetchone()
        if row is None:
            self._key = None
            return None
        self._key = bytes(row[0])
        return self._key, bytes(row[1])


class SqliteNamespace(Namespace):
    """A keyspace bound to an open transaction."""

    def __init__(self, tx: SqliteTransaction, name: str) -> None:
        self.tx = tx
        self.name = name

    def get(self, key: Key) -> Optional[bytes]:
        self.tx.check_open()
        row = self.tx.conn.execute(
            "SELECT value FROM entries WHERE keyspace = ? AND key = ?",
            (self.name, to_key(key)),
        ).fetchone()
        return bytes(row[0]) if row is not None else None

    def put(self, key: Key, value: bytes) -> None:
        self.tx.check_writable()
        self.tx.conn.execute(
            "INSERT OR REPLACE INTO entries (keyspace, key, value) VALUES (?, ?, ?)",
            (self.name, to_key(key), bytes(value)),
        )

    def delete(self, key: Key) -> None:
        self.tx.check_writable()
        self.tx.conn.execute(
            "DELETE FROM entries WHERE keyspace = ? AND key = ?",
            (self.name, to_key(key)),
        )

    def cursor(self) -> SqliteCursor:
        self.tx.check_open()
        return SqliteCursor(self)

    def __repr__(self) -> str:
        return f"SqliteNamespace({self.name!r})"


class SqliteTransaction(Transaction):
    """Read-only or writable transaction on one connection."""

    def __init__(self, conn: sqlite3.Connection, writable: bool) -> None:
        self.conn = conn
        self.writable = writable
        self._closed = False

    def check_open(self) -> None:
        if self._closed:
            raise StorageError("Transaction is closed")

    def check_writable(self) -> None:
        self.check_open()
        if not self.writable:
            raise StorageError("Cannot write in a read-only transaction")

    def close(self) -> None:
        self._closed = True

    def namespace(self, name: str) -> Optional[SqliteNamespace]:
        self.check_open()
        row = self.conn.execute("SELECT 1 FROM keyspaces WHERE name = ?", (name,)).fetchone()
        if row is None:
            return None
        return SqliteNamespace(self, name)

    def create_namespace_if_absent(self, name: str) -> SqliteNamespace:
        self.check_writable()
        self.conn.execute("INSERT OR IGNORE INTO keyspaces (name) VALUES (?)", (name,))
        return SqliteNamespace(self, name)


class SqliteKVStore(KVStore):
    """Transactional ordered key/value store in a single SQLite file.

    Thread safety:
        Each transaction opens its own connection, so one store can be
        shared between threads. Writers additionally take an in-process
        lock; SQLite WAL mode lets readers proceed during a write.

    Example:
        >>> store = SqliteKVStore("/tmp/cmdb.db")
        >>> store.open(namespaces=["cis"])
        >>> store.update(lambda tx: tx.namespace("cis").put(b"k", b"v"))
        >>> store.view(lambda tx: tx.namespace("cis").get(b"k"))
        b'v'
    """

    def __init__(
        self,
        path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
        synchronous: str = "NORMAL",
    ) -> None:
        """Initialize the store.

        Args:
            path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
            synchronous: SQLite synchronous pragma value
        """
        if synchronous.upper() not in SYNCHRONOUS_MODES:
            raise ValueError(f"Invalid synchronous mode '{synchronous}'")

        self.path = Path(path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages
        self.synchronous = synchronous.upper()
        self._write_lock = threading.Lock()
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self, namespaces: Iterable[str] = ()) -> SqliteKVStore:
        """Create the file and schema if needed and ensure namespaces exist.

        Args:
            namespaces: Keyspaces that must exist after opening

        Returns:
            self, for chaining
        """
        if self._closed:
            raise StorageError(f"Store is closed: {self.path}")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._opened = True
        try:
            with self._get_connection() as conn:
                if self.wal_mode:
                    conn.execute("PRAGMA journal_mode = WAL")
                self._create_schema(conn)
        except sqlite3.Error as e:
            self._opened = False
            raise StorageError(f"Cannot initialize database: {self.path}", cause=e) from e

        with self.write() as tx:
            for name in namespaces:
                tx.create_namespace_if_absent(name)

        logger.info(f"Opened key/value store: {self.path}")
        return self

    def close(self) -> None:
        """Close the store. Later transactions raise StorageError."""
        if self._closed:
            return
        # Wait for an in-flight writer to finish.
        with self._write_lock:
            self._closed = True
        logger.info(f"Closed key/value store: {self.path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a configured connection for one transaction.

        Raises:
            StorageError: If the store is closed or was never opened
        """
        if self._closed:
            raise StorageError(f"Store is closed: {self.path}")
        if not self._opened:
            raise StorageError(f"Store is not open: {self.path}")

        try:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,  # Autocommit by default, explicit transactions
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database file: {self.path}", cause=e) from e

        try:
            conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
            conn.execute(f"PRAGMA cache_size = {int(self.cache_size_pages)}")
            conn.execute(f"PRAGMA synchronous = {self.synchronous}")

            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS keyspaces (
                name TEXT PRIMARY KEY
            );

            CREATE TABLE IF NOT EXISTS entries (
                keyspace TEXT NOT NULL,
                key BLOB NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (keyspace, key)
            ) WITHOUT ROWID;
        """)

    @contextmanager
    def read(self) -> Iterator[SqliteTransaction]:
        """Open a read-only snapshot."""
        try:
            with self._get_connection() as conn:
                conn.execute("BEGIN")
                tx = SqliteTransaction(conn, writable=False)
                try:
                    yield tx
                finally:
                    tx.close()
                    conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise StorageError(f"Read transaction failed: {e}", cause=e) from e

    @contextmanager
    def write(self) -> Iterator[SqliteTransaction]:
        """Open a writable transaction; commit on success, roll back on error."""
        with self._write_lock:
            try:
                with self._get_connection() as conn:
                    conn.execute("BEGIN IMMEDIATE")
                    tx = SqliteTransaction(conn, writable=True)
                    try:
                        yield tx
                        conn.execute("COMMIT")
                    except BaseException:
                        conn.execute("ROLLBACK")
                        raise
                    finally:
                        tx.close()
            except sqlite3.Error as e:
                raise StorageError(f"Write transaction failed: {e}", cause=e) from e


def open_store(
    path: str,
    namespaces: Iterable[str] = (),
    **options,
) -> SqliteKVStore:
    """Open (creating if needed) a store and ensure the given namespaces."""
    return SqliteKVStore(path, **options).open(namespaces)
