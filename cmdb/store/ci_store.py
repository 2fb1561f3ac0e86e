"""
Configuration item store.

This module manages CIs and their types:
- cis holds the CI records
- citypes maps each derived type id to its user-assigned name
- cisbytype indexes CIs by type ("<typeId>:<ciId>" -> empty)

Invariants:
    - Every CI in cis has exactly one cisbytype entry, for its current type
    - A CI's type id is always derived from its current label keys
    - Types are created on first use and never deleted
    - All writes of one operation happen in a single transaction

How to change safely:
    - Type ids are raw digests; never decode cisbytype keys as text
    - Deleting a CI must go through the cascade so no edge is orphaned
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Union

from ulid import ULID

from ..errors import NotFoundError, StorageError
from ..kv.base import KVStore, Transaction
from .cascade import CascadeCoordinator
from .derivation import derive_type_id, parse_type_id, type_id_to_str
from .layout import (
    CI_TYPES,
    CIS,
    CIS_BY_TYPE,
    EMPTY,
    ci_type_key,
    ci_type_prefix,
    require,
    split_ci_type_key,
)
from .models import ConfigurationItem, ConfigurationItemType

logger = logging.getLogger(__name__)


class CIStore:
    """CRUD for configuration items, with type bookkeeping.

    Example:
        >>> cis = CIStore(kv, CascadeCoordinator(RelationshipStore(kv)))
        >>> ci = cis.add_ci({"hostname": "web01", "ip": "192.168.0.100"})
        >>> ci.version
        0
        >>> cis.rename_ci_type(ci.type.id, "webserver")
    """

    def __init__(self, kv: KVStore, cascade: CascadeCoordinator) -> None:
        self.kv = kv
        self.cascade = cascade

    def add_ci(self, data: Mapping[str, str]) -> ConfigurationItem:
        """Create a CI.

        Args:
            data: Label map; stored as given, typed by its lowercased keys

        Returns:
            The new CI, version 0
        """
        type_id = derive_type_id(data)
        ci_id = str(ULID())

        def _add(tx: Transaction) -> ConfigurationItem:
            ci = ConfigurationItem(
                id=ci_id,
                version=0,
                data=dict(data),
                type=self._upsert_type(tx, type_id),
            )
            self._write(tx, ci, type_id)
            return ci

        ci = self.kv.update(_add)
        logger.debug(
            "Created CI",
            extra={"ci_id": ci.id, "type_id": ci.type.id},
        )
        return ci

    def get_ci(self, ci_id: str) -> ConfigurationItem:
        """Get a CI by id.

        Raises:
            NotFoundError: If the CI does not exist
        """
        return self.kv.view(lambda tx: self._read(tx, ci_id))

    def get_all_cis(self) -> List[ConfigurationItem]:
        """Get every CI, ordered by id."""
        return self.kv.view(
            lambda tx: [ConfigurationItem.from_json(raw) for _, raw in require(tx, CIS).items()]
        )

    def get_cis_by_type(self, type_id: Union[str, bytes]) -> List[ConfigurationItem]:
        """Get the CIs of one type, ordered by id.

        Args:
            type_id: Type id, hex string or raw digest

        Returns:
            Matching CIs; empty for an unknown type
        """
        raw_type_id = parse_type_id(type_id)

        def _list(tx: Transaction) -> List[ConfigurationItem]:
            cis = require(tx, CIS)
            result = []
            for key, _ in require(tx, CIS_BY_TYPE).scan_prefix(ci_type_prefix(raw_type_id)):
                _, ci_id = split_ci_type_key(key)
                raw = cis.get(ci_id)
                if raw is None:
                    raise StorageError(
                        f"Type index references missing CI {ci_id}, database is corrupt"
                    )
                result.append(ConfigurationItem.from_json(raw))
            return result

        return self.kv.view(_list)

    def update_ci(self, ci_id: str, data: Mapping[str, str]) -> ConfigurationItem:
        """Replace a CI's labels.

        The type is re-derived and the type index moved if it changed.
        The version is incremented.

        Raises:
            NotFoundError: If the CI does not exist
        """
        new_type_id = derive_type_id(data)

        def _update(tx: Transaction) -> ConfigurationItem:
            ci = self._read(tx, ci_id)
            old_type_id = parse_type_id(ci.type.id)

            if old_type_id != new_type_id:
                require(tx, CIS_BY_TYPE).delete(ci_type_key(old_type_id, ci.id))

            ci.type = self._upsert_type(tx, new_type_id)
            ci.data = dict(data)
            ci.version += 1
            self._write(tx, ci, new_type_id)
            return ci

        ci = self.kv.update(_update)
        logger.debug(
            "Updated CI",
            extra={"ci_id": ci.id, "type_id": ci.type.id, "version": ci.version},
        )
        return ci

    def delete_ci(self, ci_id: str) -> List[str]:
        """Delete a CI and every relationship attached to it.

        Returns:
            Ids of the relationships removed by the cascade

        Raises:
            NotFoundError: If the CI does not exist
        """

        def _delete(tx: Transaction) -> List[str]:
            ci = self._read(tx, ci_id)
            removed = self.cascade.remove_edges_of(tx, ci_id)
            require(tx, CIS_BY_TYPE).delete(ci_type_key(parse_type_id(ci.type.id), ci_id))
            require(tx, CIS).delete(ci_id)
            return removed

        removed = self.kv.update(_delete)
        logger.debug("Deleted CI", extra={"ci_id": ci_id, "relationships_removed": len(removed)})
        return removed

    def get_ci_types(self) -> List[ConfigurationItemType]:
        """Get every CI type."""
        return self.kv.view(
            lambda tx: [
                ConfigurationItemType(id=type_id_to_str(key), name=value.decode("utf-8"))
                for key, value in require(tx, CI_TYPES).items()
            ]
        )

    def rename_ci_type(self, type_id: Union[str, bytes], name: str) -> ConfigurationItemType:
        """Set a type's name. Names are not required to be unique.

        CIs written afterwards embed the new name; stored CIs keep the name
        they were written with until they are updated.
        """
        raw_type_id = parse_type_id(type_id)
        self.kv.update(lambda tx: require(tx, CI_TYPES).put(raw_type_id, name.encode("utf-8")))
        logger.debug(
            "Renamed CI type",
            extra={"type_id": type_id_to_str(raw_type_id), "type_name": name},
        )
        return ConfigurationItemType(id=type_id_to_str(raw_type_id), name=name)

    def _read(self, tx: Transaction, ci_id: str) -> ConfigurationItem:
        raw = require(tx, CIS).get(ci_id)
        if raw is None:
            raise NotFoundError(
                f"CI not found: {ci_id}",
                resource_type="ci",
                resource_id=ci_id,
            )
        return ConfigurationItem.from_json(raw)

    def _upsert_type(self, tx: Transaction, type_id: bytes) -> ConfigurationItemType:
        """Register a type on first use; keep the name of an existing one."""
        types = require(tx, CI_TYPES)
        name = types.get(type_id)
        if name is None:
            types.put(type_id, EMPTY)
            logger.debug("Registered CI type", extra={"type_id": type_id_to_str(type_id)})
            return ConfigurationItemType(id=type_id_to_str(type_id), name="")
        return ConfigurationItemType(id=type_id_to_str(type_id), name=name.decode("utf-8"))

    def _write(self, tx: Transaction, ci: ConfigurationItem, type_id: bytes) -> None:
        require(tx, CIS_BY_TYPE).put(ci_type_key(type_id, ci.id), EMPTY)
        require(tx, CIS).put(ci.id, ci.to_json())
