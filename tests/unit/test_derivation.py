"""
Unit tests for CI type derivation.

Tests cover:
- Label normalization and collision handling
- Canonical key string
- Type id stability and hex round trip
"""

import hashlib

import pytest

from cmdb.store.derivation import (
    canonical_label_string,
    derive_type_id,
    normalize_labels,
    parse_type_id,
    type_id_to_str,
)


class TestNormalizeLabels:
    """Tests for normalize_labels."""

    def test_lowercases_keys_keeps_values(self):
        assert normalize_labels({"HostName": "Web01", "IP": "10.0.0.1"}) == {
            "hostname": "Web01",
            "ip": "10.0.0.1",
        }

    def test_does_not_mutate_input(self):
        data = {"HostName": "web01"}
        normalize_labels(data)
        assert data == {"HostName": "web01"}

    def test_collision_last_in_sorted_order_wins(self):
        """Keys colliding after lowercasing merge deterministically."""
        # sorted(["HOST", "Host", "host"]) == ["HOST", "Host", "host"]
        assert normalize_labels({"host": "c", "HOST": "a", "Host": "b"}) == {"host": "c"}
        assert normalize_labels({"Host": "b", "host": "c", "HOST": "a"}) == {"host": "c"}


class TestDeriveTypeId:
    """Tests for derive_type_id."""

    def test_md5_of_sorted_keys(self):
        """Type id is md5 of the sorted, concatenated keys."""
        expected = hashlib.md5(b"hostnameip").digest()
        assert derive_type_id({"hostname": "web01", "ip": "192.168.0.100"}) == expected
        assert derive_type_id({"ip": "192.168.0.100", "hostname": "web01"}) == expected

    def test_is_16_raw_bytes(self):
        assert len(derive_type_id({"a": "1"})) == 16

    def test_ignores_values(self):
        assert derive_type_id({"hostname": "a"}) == derive_type_id({"hostname": "b"})

    def test_case_insensitive_keys(self):
        assert derive_type_id({"HostName": "a", "IP": "x"}) == derive_type_id(
            {"hostname": "b", "ip": "y"}
        )

    def test_different_key_sets_differ(self):
        assert derive_type_id({"hostname": "a"}) != derive_type_id({"hostname": "a", "ip": "b"})

    def test_empty_labels(self):
        assert derive_type_id({}) == hashlib.md5(b"").digest()

    def test_canonical_string(self):
        assert canonical_label_string({"ip": "1", "Hostname": "2", "os": "3"}) == "hostnameipos"


class TestTypeIdEncoding:
    """Tests for type id hex conversion."""

    def test_round_trip(self):
        raw = derive_type_id({"hostname": "web01"})
        text = type_id_to_str(raw)
        assert len(text) == 32
        assert parse_type_id(text) == raw
        assert parse_type_id(raw) == raw

    def test_rejects_invalid_hex(self):
        with pytest.raises(ValueError, match="Invalid CI type id"):
            parse_type_id("not-hex")

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="16 bytes"):
            parse_type_id("abcd")
        with pytest.raises(ValueError, match="16 bytes"):
            parse_type_id(b"\x00" * 15)
