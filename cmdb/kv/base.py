"""
Base protocols for the ordered key/value store abstraction.

The CMDB core only needs a small contract from its storage engine:
named keyspaces, point reads and writes, ordered prefix cursors, and
atomic multi-keyspace transactions. This module defines that contract.

Invariants:
    - Keys are bytes; str keys are UTF-8 encoded before use
    - Cursors return keys in ascending byte order
    - Everything written inside one update() commits atomically or not at all
    - view() transactions never write

How to change safely:
    - Protocol changes require updating every engine
    - Keep key handling byte-oriented (type ids are raw digests)
"""

from __future__ import annotations

from abc import abstractmethod
from typing import (
    Any,
    Callable,
    ContextManager,
    Iterator,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
    runtime_checkable,
)

Key = Union[bytes, str]
Item = Tuple[bytes, bytes]

T = TypeVar("T")


def to_key(key: Key) -> bytes:
    """Coerce a key to bytes."""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


@runtime_checkable
class Cursor(Protocol):
    """Ordered cursor over one keyspace.

    Example:
        >>> cur = ns.cursor()
        >>> item = cur.seek(b"01H:")
        >>> while item is not None and item[0].startswith(b"01H:"):
        ...     item = cur.next()
    """

    @abstractmethod
    def first(self) -> Optional[Item]:
        """Position on the smallest key."""
        ...

    @abstractmethod
    def seek(self, key: Key) -> Optional[Item]:
        """Position on the smallest key >= key."""
        ...

    @abstractmethod
    def next(self) -> Optional[Item]:
        """Advance to the following key, or None when exhausted."""
        ...


@runtime_checkable
class Namespace(Protocol):
    """A named, ordered key/value partition bound to a transaction."""

    name: str

    @abstractmethod
    def get(self, key: Key) -> Optional[bytes]:
        ...

    @abstractmethod
    def put(self, key: Key, value: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, key: Key) -> None:
        """Delete key. Deleting a missing key is a no-op."""
        ...

    @abstractmethod
    def cursor(self) -> Cursor:
        ...

    def for_each(self, fn: Callable[[bytes, bytes], Any]) -> None:
        """Call fn(key, value) for every entry in key order."""
        for key, value in self.items():
            fn(key, value)

    def items(self) -> Iterator[Item]:
        """Iterate all entries in key order."""
        cur = self.cursor()
        item = cur.first()
        while item is not None:
            yield item
            item = cur.next()

    def scan_prefix(self, prefix: Key) -> Iterator[Item]:
        """Iterate entries whose key starts with prefix, in key order."""
        prefix = to_key(prefix)
        cur = self.cursor()
        item = cur.seek(prefix)
        while item is not None and item[0].startswith(prefix):
            yield item
            item = cur.next()


@runtime_checkable
class Transaction(Protocol):
    """A read-only snapshot or a writable transaction."""

    writable: bool

    @abstractmethod
    def namespace(self, name: str) -> Optional[Namespace]:
        """Return the keyspace, or None if it does not exist."""
        ...

    @abstractmethod
    def create_namespace_if_absent(self, name: str) -> Namespace:
        ...

    def has_namespace(self, name: str) -> bool:
        return self.namespace(name) is not None


@runtime_checkable
class KVStore(Protocol):
    """Protocol for transactional ordered key/value engines.

    Durability contract:
        - update() returns only after the transaction is committed
        - an exception raised inside update() rolls everything back

    Isolation contract:
        - writers are serialized
        - view() sees a consistent snapshot and does not block writers
    """

    @abstractmethod
    def read(self) -> ContextManager[Transaction]:
        """Open a read-only transaction as a context manager."""
        ...

    @abstractmethod
    def write(self) -> ContextManager[Transaction]:
        """Open a writable transaction as a context manager."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def view(self, fn: Callable[[Transaction], T]) -> T:
        """Run fn inside a read-only transaction and return its result."""
        with self.read() as tx:
            return fn(tx)

    def update(self, fn: Callable[[Transaction], T]) -> T:
        """Run fn inside a writable transaction and return its result.

        The transaction commits when fn returns and rolls back if it raises.
        """
        with self.write() as tx:
            return fn(tx)
