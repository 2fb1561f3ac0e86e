"""
Unit tests for the keyspace layout.

Tests cover:
- Reserved names
- Key builders for the type index and adjacency indexes
"""

import pytest

from cmdb.store.layout import (
    RESERVED_KEYSPACES,
    adjacency_prefix,
    ci_type_key,
    ci_type_prefix,
    incoming_key,
    is_reserved,
    outgoing_key,
    relationship_id,
    split_ci_type_key,
)


class TestLayout:
    """Tests for layout helpers."""

    def test_reserved_keyspaces(self):
        assert set(RESERVED_KEYSPACES) == {
            "cis",
            "citypes",
            "cisbytype",
            "reltypes",
            "reltypeindex",
            "relsincoming",
            "relsoutgoing",
        }
        assert is_reserved("cis")
        assert not is_reserved("connected-to")

    def test_ci_type_key_round_trip(self):
        type_id = bytes(range(16))
        key = ci_type_key(type_id, "01HZZZ")
        assert key.startswith(ci_type_prefix(type_id))
        assert split_ci_type_key(key) == (type_id, "01HZZZ")

    def test_ci_type_key_with_separator_in_digest(self):
        """A digest containing ':' is split by offset, not by separator."""
        type_id = b":" * 16
        key = ci_type_key(type_id, "ci1")
        assert split_ci_type_key(key) == (type_id, "ci1")

    def test_split_rejects_malformed_key(self):
        with pytest.raises(ValueError, match="Malformed"):
            split_ci_type_key(b"short")

    def test_edge_keys(self):
        assert relationship_id("a", "b") == "a:b"
        assert outgoing_key("a", "b") == "a:b"
        assert incoming_key("a", "b") == "b:a"
        assert adjacency_prefix("a") == "a:"
