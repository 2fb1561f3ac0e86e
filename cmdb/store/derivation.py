"""
CI type derivation.

A CI's type is the set of its label keys. Two CIs whose keys are equal
(case-insensitively) share a type, whatever their values are.

Derivation:
    1. Normalize: lowercase every key, keep values. Keys that collide after
       lowercasing are merged; original keys are visited in sorted order
       and the last one wins, so the result does not depend on dict order.
    2. Canonicalize: sort the normalized keys by their UTF-8 bytes and
       concatenate them without a separator.
    3. Hash: MD5 of the concatenation. The 16 raw digest bytes are the
       type id used as a key; records carry its hex form.
"""

from __future__ import annotations

import hashlib
from typing import Dict, Mapping, Union

from .layout import TYPE_ID_SIZE


def normalize_labels(data: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of data with lowercased keys."""
    normalized: Dict[str, str] = {}
    for key in sorted(data):
        normalized[key.lower()] = data[key]
    return normalized


def canonical_label_string(data: Mapping[str, str]) -> str:
    """Concatenate the normalized label keys in ascending byte order."""
    keys = normalize_labels(data).keys()
    return "".join(sorted(keys, key=lambda k: k.encode("utf-8")))


def derive_type_id(data: Mapping[str, str]) -> bytes:
    """Derive the raw 16-byte type id of a label map.

    Example:
        >>> derive_type_id({"IP": "10.0.0.1", "hostname": "web01"}) == hashlib.md5(b"hostnameip").digest()
        True
    """
    return hashlib.md5(canonical_label_string(data).encode("utf-8")).digest()


def type_id_to_str(type_id: bytes) -> str:
    return type_id.hex()


def parse_type_id(type_id: Union[str, bytes]) -> bytes:
    """Accept a type id as raw digest bytes or its hex form.

    Raises:
        ValueError: If the value is not a 16-byte digest
    """
    if isinstance(type_id, str):
        try:
            raw = bytes.fromhex(type_id)
        except ValueError:
            raise ValueError(f"Invalid CI type id '{type_id}'")
    else:
        raw = bytes(type_id)

    if len(raw) != TYPE_ID_SIZE:
        raise ValueError(f"CI type id must be {TYPE_ID_SIZE} bytes, got {len(raw)}")
    return raw
