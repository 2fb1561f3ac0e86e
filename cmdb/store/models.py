"""
Records stored by the CMDB core.

Records are serialized as UTF-8 JSON with lowercase field names:

    CI:    {"id", "version", "data", "type": {"id", "name"}}
    Edge:  {"id", "from", "to", "relationship", "version", "data"}

Invariants:
    - Serialization is symmetric: from_json(to_json(r)) == r
    - A record that fails to decode is a storage fault, not a caller error
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from ..errors import StorageError


def _decode(raw: bytes, kind: str) -> Dict[str, Any]:
    try:
        return json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"Failed to decode {kind} record: {e}", cause=e) from e


@dataclass
class ConfigurationItemType:
    """A CI type.

    Attributes:
        id: Hex form of the label key-set digest
        name: User-assigned name (empty until renamed)
    """

    id: str
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConfigurationItemType:
        return cls(id=data["id"], name=data.get("name") or "")


@dataclass
class ConfigurationItem:
    """A node in the graph.

    Attributes:
        id: ULID, lexicographically time-ordered
        version: Starts at 0, incremented on update
        data: Label map as given by the caller
        type: Type derived from the label keys
    """

    id: str
    version: int
    data: Dict[str, str]
    type: ConfigurationItemType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "data": dict(self.data),
            "type": self.type.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConfigurationItem:
        return cls(
            id=data["id"],
            version=data["version"],
            data=dict(data.get("data") or {}),
            type=ConfigurationItemType.from_dict(data["type"]),
        )

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> ConfigurationItem:
        decoded = _decode(raw, "CI")
        try:
            return cls.from_dict(decoded)
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed CI record: {e}", cause=e) from e


@dataclass
class Relationship:
    """A directed, typed edge between two CIs.

    Attributes:
        id: "<from>:<to>"
        from_id: Source CI id (serialized as "from")
        to_id: Target CI id (serialized as "to")
        relationship: Lowercased edge-type name
        version: Starts at 0, incremented on update
        data: Label map
    """

    id: str
    from_id: str
    to_id: str
    relationship: str
    version: int = 0
    data: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": self.from_id,
            "to": self.to_id,
            "relationship": self.relationship,
            "version": self.version,
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Relationship:
        return cls(
            id=data["id"],
            from_id=data["from"],
            to_id=data["to"],
            relationship=data["relationship"],
            version=data["version"],
            data=dict(data.get("data") or {}),
        )

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> Relationship:
        decoded = _decode(raw, "relationship")
        try:
            return cls.from_dict(decoded)
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed relationship record: {e}", cause=e) from e
