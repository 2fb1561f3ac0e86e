"""
Unit tests for the SQLite key/value store.

Tests cover:
- Namespace creation and lookup
- Point reads, writes and deletes
- Ordered cursors and prefix scans over binary keys
- Commit and rollback
- Read-only and closed handles
"""

import os
import tempfile

import pytest

from cmdb.errors import StorageError
from cmdb.kv import KVStore, SqliteKVStore, open_store


class TestSqliteKVStore:
    """Tests for SqliteKVStore."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def store(self, data_dir):
        """Create an open store with one namespace."""
        store = open_store(os.path.join(data_dir, "kv.db"), namespaces=["things"])
        yield store
        store.close()

    def test_implements_protocol(self, store):
        """SqliteKVStore satisfies the KVStore protocol."""
        assert isinstance(store, KVStore)

    def test_open_creates_file_and_namespaces(self, data_dir):
        """Opening creates the file and every requested namespace."""
        path = os.path.join(data_dir, "nested", "kv.db")
        store = SqliteKVStore(path).open(namespaces=["a", "b"])

        assert os.path.exists(path)
        assert store.view(lambda tx: tx.has_namespace("a"))
        assert store.view(lambda tx: tx.has_namespace("b"))
        assert store.view(lambda tx: tx.namespace("c")) is None
        store.close()

    def test_reopen_keeps_data(self, data_dir):
        """Data survives closing and reopening the file."""
        path = os.path.join(data_dir, "kv.db")
        store = open_store(path, namespaces=["things"])
        store.update(lambda tx: tx.namespace("things").put(b"k", b"v"))
        store.close()

        reopened = open_store(path, namespaces=["things"])
        assert reopened.view(lambda tx: tx.namespace("things").get(b"k")) == b"v"
        reopened.close()

    def test_put_get_delete(self, store):
        """Basic point operations."""
        store.update(lambda tx: tx.namespace("things").put("alpha", b"1"))
        assert store.view(lambda tx: tx.namespace("things").get("alpha")) == b"1"
        assert store.view(lambda tx: tx.namespace("things").get(b"alpha")) == b"1"

        store.update(lambda tx: tx.namespace("things").delete("alpha"))
        assert store.view(lambda tx: tx.namespace("things").get("alpha")) is None

    def test_delete_missing_key_is_noop(self, store):
        """Deleting an absent key does not raise."""
        store.update(lambda tx: tx.namespace("things").delete("nope"))

    def test_empty_value(self, store):
        """Empty values are stored and distinguishable from missing keys."""
        store.update(lambda tx: tx.namespace("things").put("k", b""))
        assert store.view(lambda tx: tx.namespace("things").get("k")) == b""

    def test_namespaces_are_isolated(self, store):
        """The same key in two namespaces holds two values."""
        with store.write() as tx:
            other = tx.create_namespace_if_absent("other")
            other.put("k", b"other")
            tx.namespace("things").put("k", b"things")

        with store.read() as tx:
            assert tx.namespace("things").get("k") == b"things"
            assert tx.namespace("other").get("k") == b"other"

    def test_items_in_byte_order(self, store):
        """Iteration returns keys in ascending byte order."""
        keys = [b"b", b"a", b"\xff", b"\x00", b"ab", b"B"]
        with store.write() as tx:
            ns = tx.namespace("things")
            for key in keys:
                ns.put(key, b"")

        with store.read() as tx:
            found = [k for k, _ in tx.namespace("things").items()]

        assert found == sorted(keys)

    def test_scan_prefix(self, store):
        """Prefix scans stop at the first key without the prefix."""
        with store.write() as tx:
            ns = tx.namespace("things")
            for key in ["a:1", "a:2", "a:3", "ab:1", "b:1", "a"]:
                ns.put(key, key.encode())

        with store.read() as tx:
            found = [k for k, _ in tx.namespace("things").scan_prefix("a:")]

        assert found == [b"a:1", b"a:2", b"a:3"]

    def test_scan_prefix_binary(self, store):
        """Prefix scans work on raw bytes that are not valid UTF-8."""
        prefix = b"\xfe\x3a\x00"
        with store.write() as tx:
            ns = tx.namespace("things")
            ns.put(prefix + b"x", b"1")
            ns.put(prefix + b"y", b"2")
            ns.put(b"\xfe\x3b", b"3")

        with store.read() as tx:
            found = list(tx.namespace("things").scan_prefix(prefix))

        assert found == [(prefix + b"x", b"1"), (prefix + b"y", b"2")]

    def test_cursor_seek_and_next(self, store):
        """Cursor seeks to the first key >= target and walks forward."""
        with store.write() as tx:
            ns = tx.namespace("things")
            for key in ["a", "c", "e"]:
                ns.put(key, key.encode())

        with store.read() as tx:
            cur = tx.namespace("things").cursor()
            assert cur.seek("b") == (b"c", b"c")
            assert cur.next() == (b"e", b"e")
            assert cur.next() is None
            assert cur.next() is None
            assert cur.first() == (b"a", b"a")

    def test_for_each(self, store):
        """for_each visits every entry in order."""
        with store.write() as tx:
            ns = tx.namespace("things")
            ns.put("2", b"two")
            ns.put("1", b"one")

        seen = []
        store.view(lambda tx: tx.namespace("things").for_each(lambda k, v: seen.append((k, v))))
        assert seen == [(b"1", b"one"), (b"2", b"two")]

    def test_rollback_on_error(self, store):
        """An exception inside update() discards every write."""

        def _fail(tx):
            tx.namespace("things").put("k", b"v")
            tx.create_namespace_if_absent("created")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            store.update(_fail)

        assert store.view(lambda tx: tx.namespace("things").get("k")) is None
        assert store.view(lambda tx: tx.has_namespace("created")) is False

    def test_update_returns_result(self, store):
        """update() and view() return the callback's result."""
        assert store.update(lambda tx: 42) == 42
        assert store.view(lambda tx: "ok") == "ok"

    def test_read_only_transaction_rejects_writes(self, store):
        """Writes inside view() raise StorageError."""
        with pytest.raises(StorageError, match="read-only"):
            store.view(lambda tx: tx.namespace("things").put("k", b"v"))

        with pytest.raises(StorageError, match="read-only"):
            store.view(lambda tx: tx.create_namespace_if_absent("x"))

    def test_transaction_unusable_after_exit(self, store):
        """A transaction object cannot be used once its block ends."""
        with store.read() as tx:
            ns = tx.namespace("things")

        with pytest.raises(StorageError, match="closed"):
            ns.get("k")

    def test_closed_store_rejects_transactions(self, data_dir):
        """Transactions on a closed store raise StorageError."""
        store = open_store(os.path.join(data_dir, "kv.db"), namespaces=["things"])
        store.close()

        assert store.closed
        with pytest.raises(StorageError, match="closed"):
            store.view(lambda tx: None)
        with pytest.raises(StorageError, match="closed"):
            store.update(lambda tx: None)

    def test_unopened_store_rejects_transactions(self, data_dir):
        """A store must be opened before use."""
        store = SqliteKVStore(os.path.join(data_dir, "kv.db"))
        with pytest.raises(StorageError, match="not open"):
            store.view(lambda tx: None)

    def test_invalid_synchronous_mode(self, data_dir):
        """Unknown synchronous modes are rejected."""
        with pytest.raises(ValueError, match="synchronous"):
            SqliteKVStore(os.path.join(data_dir, "kv.db"), synchronous="SOMETIMES")

    def test_reader_sees_snapshot(self, store):
        """A read transaction does not see writes committed after it started."""
        store.update(lambda tx: tx.namespace("things").put("k", b"old"))

        with store.read() as tx:
            assert tx.namespace("things").get("k") == b"old"
            store.update(lambda wtx: wtx.namespace("things").put("k", b"new"))
            assert tx.namespace("things").get("k") == b"old"

        assert store.view(lambda tx: tx.namespace("things").get("k")) == b"new"
