"""
Unit tests for stored records.

Tests cover:
- JSON field names
- Decoding failures surface as StorageError
"""

import json

import pytest

from cmdb.errors import StorageError
from cmdb.store.models import ConfigurationItem, ConfigurationItemType, Relationship


class TestRecords:
    """Tests for record serialization."""

    def test_ci_json_fields(self):
        ci = ConfigurationItem(
            id="01HABC",
            version=2,
            data={"Hostname": "web01"},
            type=ConfigurationItemType(id="00" * 16, name="webserver"),
        )

        decoded = json.loads(ci.to_json())

        assert decoded == {
            "id": "01HABC",
            "version": 2,
            "data": {"Hostname": "web01"},
            "type": {"id": "00" * 16, "name": "webserver"},
        }
        assert ConfigurationItem.from_json(ci.to_json()) == ci

    def test_relationship_json_fields(self):
        rel = Relationship(
            id="a:b",
            from_id="a",
            to_id="b",
            relationship="connected-to",
            version=1,
            data={"master": "b"},
        )

        decoded = json.loads(rel.to_json())

        assert decoded == {
            "id": "a:b",
            "from": "a",
            "to": "b",
            "relationship": "connected-to",
            "version": 1,
            "data": {"master": "b"},
        }
        assert Relationship.from_json(rel.to_json()) == rel

    def test_invalid_json_is_storage_error(self):
        with pytest.raises(StorageError, match="decode"):
            ConfigurationItem.from_json(b"{not json")

    def test_missing_field_is_storage_error(self):
        with pytest.raises(StorageError, match="Malformed"):
            Relationship.from_json(b'{"id": "a:b"}')
