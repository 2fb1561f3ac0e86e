"""
CMDB - Embedded Configuration Management Database.

This package stores Configuration Items (CIs) and typed Relationships
between them in a single transactional file:
- CIs are label maps; their type is derived from the set of label keys
- Relationships are directed edges "<from>:<to>" bucketed by type
- Secondary indexes (type -> CIs, incoming/outgoing adjacency) live in the
  same file and change in the same transaction as the records they index

Architecture:
    ┌─────────────┐     ┌──────────────────────┐
    │    CMDB     │────▶│ CIStore              │──┐
    │  (facade)   │     │ RelationshipStore    │  │ cascade on CI delete
    └─────────────┘     │ CascadeCoordinator   │◀─┘
                        └──────────┬───────────┘
                                   ▼
                        ┌──────────────────────┐
                        │ KVStore (SQLite file)│
                        └──────────────────────┘

Invariants:
    - Every CI has a type index entry for its current type
    - Every edge has a type index entry and both adjacency entries
    - Reserved keyspace names are never edge-type names
"""

from ._version import __version__
from .db import CMDB
from .errors import (
    CmdbError,
    NameAlreadyExistsError,
    NotFoundError,
    ReservedNameError,
    StorageError,
)
from .store import (
    RESERVED_KEYSPACES,
    ConfigurationItem,
    ConfigurationItemType,
    Relationship,
    derive_type_id,
)

__all__ = [
    "__version__",
    "CMDB",
    # Records
    "ConfigurationItem",
    "ConfigurationItemType",
    "Relationship",
    "RESERVED_KEYSPACES",
    "derive_type_id",
    # Errors
    "CmdbError",
    "NotFoundError",
    "ReservedNameError",
    "NameAlreadyExistsError",
    "StorageError",
]
