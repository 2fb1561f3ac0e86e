"""
CMDB library surface.

CMDB ties the key/value engine, the CI store, the relationship store and the
cascade coordinator together behind one handle.

Invariants:
    - Opening a database ensures every reserved keyspace exists
    - Every operation is a single transaction, including the CI-delete cascade
    - One handle per file; close() releases it

Example:
    >>> with CMDB.open("cmdb.db") as db:
    ...     web = db.add_ci({"hostname": "web01", "ip": "192.168.0.100"})
    ...     pg = db.add_ci({"hostname": "db01", "ip": "192.168.0.200"})
    ...     db.add_relationship(web.id, pg.id, "connected-to", {"port": "5432"})
    ...     db.rename_ci_type(web.type.id, "server")
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Union

from .config import StorageConfig
from .kv.sqlite import SqliteKVStore
from .store import (
    RESERVED_KEYSPACES,
    CascadeCoordinator,
    CIStore,
    ConfigurationItem,
    ConfigurationItemType,
    Relationship,
    RelationshipStore,
)

logger = logging.getLogger(__name__)


class CMDB:
    """Handle on one CMDB database file.

    Thread safety:
        All methods may be called from several threads at once. Writes
        are serialized; reads run on snapshots.

    Attributes:
        path: Database file
        kv: Underlying key/value store
    """

    def __init__(self, kv: SqliteKVStore) -> None:
        self.kv = kv
        self.path = str(kv.path)
        self._relationships = RelationshipStore(kv)
        self._cis = CIStore(kv, CascadeCoordinator(self._relationships))

    @classmethod
    def open(
        cls,
        path: Optional[str] = None,
        config: Optional[StorageConfig] = None,
    ) -> CMDB:
        """Open or create a database file.

        Args:
            path: Database file (overrides config.path)
            config: Storage settings; defaults are used when omitted

        Returns:
            An open CMDB handle

        Raises:
            StorageError: If the file cannot be opened or initialized
        """
        config = config or StorageConfig()
        kv = SqliteKVStore(
            path or config.path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
            cache_size_pages=config.cache_size_pages,
            synchronous=config.synchronous,
        )
        kv.open(namespaces=RESERVED_KEYSPACES)
        logger.info(f"Opened CMDB: {kv.path}")
        return cls(kv)

    def close(self) -> None:
        self.kv.close()

    @property
    def closed(self) -> bool:
        return self.kv.closed

    def __enter__(self) -> CMDB:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Configuration items

    def add_ci(self, data: Mapping[str, str]) -> ConfigurationItem:
        return self._cis.add_ci(data)

    def get_ci(self, ci_id: str) -> ConfigurationItem:
        return self._cis.get_ci(ci_id)

    def get_all_cis(self) -> List[ConfigurationItem]:
        return self._cis.get_all_cis()

    def get_cis_by_type(self, type_id: Union[str, bytes]) -> List[ConfigurationItem]:
        return self._cis.get_cis_by_type(type_id)

    def update_ci(self, ci_id: str, data: Mapping[str, str]) -> ConfigurationItem:
        return self._cis.update_ci(ci_id, data)

    def delete_ci(self, ci_id: str) -> List[str]:
        return self._cis.delete_ci(ci_id)

    def get_ci_types(self) -> List[ConfigurationItemType]:
        return self._cis.get_ci_types()

    def rename_ci_type(self, type_id: Union[str, bytes], name: str) -> ConfigurationItemType:
        return self._cis.rename_ci_type(type_id, name)

    # Relationships

    def add_relationship(
        self,
        from_id: str,
        to_id: str,
        relationship: str,
        data: Optional[Mapping[str, str]] = None,
    ) -> Relationship:
        return self._relationships.add_relationship(from_id, to_id, relationship, data)

    def get_relationship(self, rel_id: str) -> Relationship:
        return self._relationships.get_relationship(rel_id)

    def get_relationships(self) -> List[Relationship]:
        return self._relationships.get_relationships()

    def get_relationship_types(self) -> List[str]:
        return self._relationships.get_relationship_types()

    def get_relationships_by_type(self, relationship: str) -> List[Relationship]:
        return self._relationships.get_relationships_by_type(relationship)

    def get_relationships_by_ci(self, ci_id: str) -> List[Relationship]:
        return self._relationships.get_relationships_by_ci(ci_id)

    def update_relationship(self, rel_id: str, data: Mapping[str, str]) -> Relationship:
        return self._relationships.update_relationship(rel_id, data)

    def delete_relationship(self, rel_id: str) -> None:
        self._relationships.delete_relationship(rel_id)
