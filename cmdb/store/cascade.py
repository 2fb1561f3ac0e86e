"""
Cascade coordinator: removes the edges of a CI that is being deleted.

The cascade runs inside the caller's write transaction, so the CI and
every edge touching it disappear together or not at all.
"""

from __future__ import annotations

import logging
from typing import List

from ..kv.base import Transaction
from .relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


class CascadeCoordinator:
    """Deletes all edges attached to a CI."""

    def __init__(self, relationships: RelationshipStore) -> None:
        self.relationships = relationships

    def remove_edges_of(self, tx: Transaction, ci_id: str) -> List[str]:
        """Delete every edge touching ci_id inside tx.

        Returns:
            Ids of the removed edges
        """
        edges = self.relationships.touching_in(tx, ci_id)
        for edge in edges:
            self.relationships.delete_in(tx, edge.id)

        removed = [edge.id for edge in edges]
        if removed:
            logger.info(
                f"Cascade removed {len(removed)} relationship(s) of CI {ci_id}",
                extra={"ci_id": ci_id, "relationship_ids": removed},
            )
        return removed
