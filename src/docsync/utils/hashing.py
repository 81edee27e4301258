"""Deterministic content hashing and UUID derivation.

Every identity in the store is derived from these helpers, so the same
content always maps to the same chunk id, hash and point id.
"""

from __future__ import annotations

import hashlib
import re

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def generate_hash(content: str) -> str:
    """Return the hex SHA-256 of ``content``."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def is_valid_uuid(value: str) -> bool:
    """True if ``value`` is a canonical RFC 4122 UUID string (versions 1-5)."""
    return bool(_UUID_RE.match(value))


def hash_to_uuid(hex_hash: str) -> str:
    """Fold a hex digest into a UUID-shaped string.

    The version nibble is forced to 5 and the variant nibble to 8, so the
    result always passes :func:`is_valid_uuid`.
    """
    h = hex_hash[:32]
    return "-".join([
        h[0:8],
        h[8:12],
        "5" + h[13:16],
        "8" + h[17:20],
        h[20:32],
    ])


def generate_metadata_uuid(key: str) -> str:
    """UUID for the sentinel record holding metadata ``key``."""
    h = hashlib.md5(f"metadata_{key}".encode("utf-8")).hexdigest()
    return f"{h[0:8]}-{h[8:12]}-4{h[13:16]}-{h[16:20]}-{h[20:32]}"
