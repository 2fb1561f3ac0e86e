"""
Relationship store.

Relationships are directed, typed edges between CIs. Each edge is written
to four places in one transaction:

    <type>[id]                   the edge record, bucketed by type
    reltypeindex[id]             which bucket the edge lives in
    relsoutgoing["<from>:<to>"]  adjacency, "who am I connecting to?"
    relsincoming["<to>:<from>"]  adjacency, "who is connecting to me?"

and reltypes[<type>] registers the bucket.

Invariants:
    - The four entries of an edge are written and removed together
    - Edge ids are "<from>:<to>", so an ordered pair has at most one edge;
      adding a pair again replaces the previous edge, whatever its type
    - Edge-type buckets and their reltypes entry outlive their last edge

How to change safely:
    - Any new index must be maintained in _write() and delete_in()
    - Keep every public operation inside a single kv transaction
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from ..errors import NotFoundError, ReservedNameError
from ..kv.base import KVStore, Transaction
from .layout import (
    EMPTY,
    REL_TYPE_INDEX,
    REL_TYPES,
    RELS_INCOMING,
    RELS_OUTGOING,
    adjacency_prefix,
    incoming_key,
    is_reserved,
    outgoing_key,
    relationship_id,
    require,
)
from .models import Relationship

logger = logging.getLogger(__name__)


def normalize_relationship_name(relationship: str) -> str:
    return relationship.lower()


def guard_name(relationship: str) -> None:
    """Reject edge-type names that cannot be used as a keyspace.

    Raises:
        ValueError: If the name is empty
        ReservedNameError: If the name (in any case) is a reserved keyspace
    """
    if not relationship:
        raise ValueError("Relationship type name must not be empty")
    if is_reserved(relationship) or is_reserved(normalize_relationship_name(relationship)):
        raise ReservedNameError(relationship)


class RelationshipStore:
    """Create, read, update and delete typed edges.

    Example:
        >>> rels = RelationshipStore(kv)
        >>> edge = rels.add_relationship(web01.id, db01.id, "Connected-To", {"port": "5432"})
        >>> edge.relationship
        'connected-to'
        >>> [r.id for r in rels.get_relationships_by_ci(db01.id)]
        ['01H...:01H...']
    """

    def __init__(self, kv: KVStore) -> None:
        self.kv = kv

    def add_relationship(
        self,
        from_id: str,
        to_id: str,
        relationship: str,
        data: Optional[Mapping[str, str]] = None,
    ) -> Relationship:
        """Create an edge between two CIs.

        Args:
            from_id: Source CI id (not checked for existence)
            to_id: Target CI id (not checked for existence)
            relationship: Edge-type name, stored lowercased
            data: Edge labels

        Returns:
            The new edge, version 0

        Raises:
            ReservedNameError: If the type name is a reserved keyspace
            ValueError: If the type name is empty
        """
        guard_name(relationship)
        relationship = normalize_relationship_name(relationship)

        rel = Relationship(
            id=relationship_id(from_id, to_id),
            from_id=from_id,
            to_id=to_id,
            relationship=relationship,
            version=0,
            data=dict(data or {}),
        )

        self.kv.update(lambda tx: self._write(tx, rel))

        logger.debug(
            "Created relationship",
            extra={"relationship_id": rel.id, "relationship": relationship},
        )
        return rel

    def get_relationship(self, rel_id: str) -> Relationship:
        """Get an edge by id.

        Raises:
            NotFoundError: If the edge does not exist
        """
        return self.kv.view(lambda tx: self.read_in(tx, rel_id))

    def get_relationships(self) -> List[Relationship]:
        """Get every edge, ordered by id."""

        def _list(tx: Transaction) -> List[Relationship]:
            # relsoutgoing is keyed "<from>:<to>", which is the edge id
            return [Relationship.from_json(raw) for _, raw in require(tx, RELS_OUTGOING).items()]

        return self.kv.view(_list)

    def get_relationship_types(self) -> List[str]:
        """Get all registered edge-type names."""
        return self.kv.view(
            lambda tx: [key.decode("utf-8") for key, _ in require(tx, REL_TYPES).items()]
        )

    def get_relationships_by_type(self, relationship: str) -> List[Relationship]:
        """Get all edges of one type, ordered by id.

        Raises:
            ReservedNameError: If the name is a reserved keyspace
            NotFoundError: If no edge of this type was ever added
        """
        relationship = normalize_relationship_name(relationship)
        if is_reserved(relationship):
            raise ReservedNameError(relationship)

        def _list(tx: Transaction) -> List[Relationship]:
            bucket = tx.namespace(relationship) if relationship else None
            if bucket is None:
                raise NotFoundError(
                    f"Relationship type not found: {relationship}",
                    resource_type="relationship_type",
                    resource_id=relationship,
                )
            return [Relationship.from_json(raw) for _, raw in bucket.items()]

        return self.kv.view(_list)

    def get_relationships_by_ci(self, ci_id: str) -> List[Relationship]:
        """Get edges attached to a CI: outgoing first, then incoming.

        Each group is ordered by the counterpart CI id. A self-loop is
        returned once.
        """
        return self.kv.view(lambda tx: self.touching_in(tx, ci_id))

    def update_relationship(self, rel_id: str, data: Mapping[str, str]) -> Relationship:
        """Replace an edge's labels and bump its version.

        Raises:
            NotFoundError: If the edge does not exist
        """

        def _update(tx: Transaction) -> Relationship:
            rel = self.read_in(tx, rel_id)
            rel.version += 1
            rel.data = dict(data)
            self._write(tx, rel)
            return rel

        rel = self.kv.update(_update)
        logger.debug(
            "Updated relationship",
            extra={"relationship_id": rel_id, "version": rel.version},
        )
        return rel

    def delete_relationship(self, rel_id: str) -> None:
        """Delete an edge and all of its index entries.

        Raises:
            NotFoundError: If the edge does not exist
        """
        self.kv.update(lambda tx: self.delete_in(tx, rel_id))
        logger.debug("Deleted relationship", extra={"relationship_id": rel_id})

    def read_in(self, tx: Transaction, rel_id: str) -> Relationship:
        """Read an edge inside an open transaction."""
        bucket_name = require(tx, REL_TYPE_INDEX).get(rel_id)
        if bucket_name is None:
            raise NotFoundError(
                f"Relationship not found: {rel_id}",
                resource_type="relationship",
                resource_id=rel_id,
            )

        bucket = tx.namespace(bucket_name.decode("utf-8"))
        raw = bucket.get(rel_id) if bucket is not None else None
        if raw is None:
            raise NotFoundError(
                f"Relationship not found: {rel_id}",
                resource_type="relationship",
                resource_id=rel_id,
            )
        return Relationship.from_json(raw)

    def touching_in(self, tx: Transaction, ci_id: str) -> List[Relationship]:
        """Collect edges attached to a CI inside an open transaction."""
        prefix = adjacency_prefix(ci_id)
        found: Dict[str, Relationship] = {}
        for name in (RELS_OUTGOING, RELS_INCOMING):
            for _, raw in require(tx, name).scan_prefix(prefix):
                rel = Relationship.from_json(raw)
                found.setdefault(rel.id, rel)
        return list(found.values())

    def delete_in(self, tx: Transaction, rel_id: str) -> Relationship:
        """Delete an edge inside an open write transaction."""
        rel = self.read_in(tx, rel_id)

        require(tx, REL_TYPE_INDEX).delete(rel.id)
        require(tx, RELS_INCOMING).delete(incoming_key(rel.from_id, rel.to_id))
        require(tx, RELS_OUTGOING).delete(outgoing_key(rel.from_id, rel.to_id))

        bucket = tx.namespace(rel.relationship)
        if bucket is not None:
            bucket.delete(rel.id)
        return rel

    def _write(self, tx: Transaction, rel: Relationship) -> None:
        """Write an edge and every index entry for it."""
        index = require(tx, REL_TYPE_INDEX)

        # Same pair re-added under another type: drop it from the old bucket.
        previous = index.get(rel.id)
        if previous is not None and previous.decode("utf-8") != rel.relationship:
            old_bucket = tx.namespace(previous.decode("utf-8"))
            if old_bucket is not None:
                old_bucket.delete(rel.id)

        bucket = tx.create_namespace_if_absent(rel.relationship)
        require(tx, REL_TYPES).put(rel.relationship, EMPTY)
        index.put(rel.id, rel.relationship.encode("utf-8"))

        raw = rel.to_json()
        require(tx, RELS_INCOMING).put(incoming_key(rel.from_id, rel.to_id), raw)
        require(tx, RELS_OUTGOING).put(outgoing_key(rel.from_id, rel.to_id), raw)
        bucket.put(rel.id, raw)
