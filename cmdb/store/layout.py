"""
Keyspace layout of the CMDB file.

Keyspace schema:
    cis:           CI id                  -> CI record (JSON)
    citypes:       type id (16 raw bytes) -> type name (may be empty)
    cisbytype:     type id ":" CI id      -> empty
    reltypes:      edge-type name         -> empty
    reltypeindex:  edge id                -> edge-type name
    relsoutgoing:  "<from>:<to>"          -> edge record (JSON)
    relsincoming:  "<to>:<from>"          -> edge record (JSON)
    <edge-type>:   edge id                -> edge record (JSON)

Invariants:
    - Reserved keyspace names are never used as edge-type names
    - cisbytype keys start with a fixed-length raw digest, so they are split
      by offset and never by searching for the separator
"""

from __future__ import annotations

from typing import Tuple

from ..errors import StorageError
from ..kv.base import Namespace, Transaction

CIS = "cis"
CI_TYPES = "citypes"
CIS_BY_TYPE = "cisbytype"
REL_TYPES = "reltypes"
REL_TYPE_INDEX = "reltypeindex"
RELS_INCOMING = "relsincoming"
RELS_OUTGOING = "relsoutgoing"

RESERVED_KEYSPACES = (
    CIS,
    CI_TYPES,
    CIS_BY_TYPE,
    REL_TYPES,
    REL_TYPE_INDEX,
    RELS_INCOMING,
    RELS_OUTGOING,
)

SEPARATOR = ":"
TYPE_ID_SIZE = 16

EMPTY = b""


def is_reserved(name: str) -> bool:
    return name in RESERVED_KEYSPACES


def ci_type_prefix(type_id: bytes) -> bytes:
    return type_id + SEPARATOR.encode()


def ci_type_key(type_id: bytes, ci_id: str) -> bytes:
    """Key of a cisbytype entry."""
    return ci_type_prefix(type_id) + ci_id.encode("utf-8")


def split_ci_type_key(key: bytes) -> Tuple[bytes, str]:
    """Split a cisbytype key into (type id, CI id)."""
    if len(key) <= TYPE_ID_SIZE or key[TYPE_ID_SIZE:TYPE_ID_SIZE + 1] != SEPARATOR.encode():
        raise ValueError(f"Malformed cisbytype key: {key!r}")
    return key[:TYPE_ID_SIZE], key[TYPE_ID_SIZE + 1:].decode("utf-8")


def relationship_id(from_id: str, to_id: str) -> str:
    return f"{from_id}{SEPARATOR}{to_id}"


def outgoing_key(from_id: str, to_id: str) -> str:
    # from:to, "who am I connecting to?"
    return f"{from_id}{SEPARATOR}{to_id}"


def incoming_key(from_id: str, to_id: str) -> str:
    # to:from, "who is connecting to me?"
    return f"{to_id}{SEPARATOR}{from_id}"


def adjacency_prefix(ci_id: str) -> str:
    return f"{ci_id}{SEPARATOR}"


def require(tx: Transaction, name: str) -> Namespace:
    """Return a reserved keyspace.

    Raises:
        StorageError: If the keyspace is missing (the database is corrupt)
    """
    ns = tx.namespace(name)
    if ns is None:
        raise StorageError(f"Reserved keyspace '{name}' is missing, database is corrupt")
    return ns
