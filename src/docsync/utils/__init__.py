"""Hashing identities and URL helpers."""

from docsync.utils.hashing import (
    generate_hash,
    generate_metadata_uuid,
    hash_to_uuid,
    is_valid_uuid,
)
from docsync.utils.urls import build_url, get_url_prefix, normalize_url, should_process_url

__all__ = [
    "build_url",
    "generate_hash",
    "generate_metadata_uuid",
    "get_url_prefix",
    "hash_to_uuid",
    "is_valid_uuid",
    "normalize_url",
    "should_process_url",
]
