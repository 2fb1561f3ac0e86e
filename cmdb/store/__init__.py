"""
Graph storage for the CMDB core.

This module handles:
- Keyspace layout of the database file
- CI type derivation from label keys
- CI store (cis, citypes, cisbytype)
- Relationship store (reltypes, reltypeindex, adjacency indexes, type buckets)
- Cascade removal of edges when a CI is deleted

Invariants:
    - Primary records and their secondary indexes change in the same transaction
    - Reserved keyspace names are never edge-type names
"""

from .cascade import CascadeCoordinator
from .ci_store import CIStore
from .derivation import derive_type_id, normalize_labels, parse_type_id, type_id_to_str
from .layout import RESERVED_KEYSPACES
from .models import ConfigurationItem, ConfigurationItemType, Relationship
from .relationship_store import RelationshipStore

__all__ = [
    "CIStore",
    "RelationshipStore",
    "CascadeCoordinator",
    "ConfigurationItem",
    "ConfigurationItemType",
    "Relationship",
    "RESERVED_KEYSPACES",
    "derive_type_id",
    "normalize_labels",
    "parse_type_id",
    "type_id_to_str",
]
