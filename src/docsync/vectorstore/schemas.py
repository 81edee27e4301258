"""Record layout shared by the storage backends."""

from __future__ import annotations

import json
from typing import Any

from docsync.chunking.schemas import Chunk

# Columns that older databases may lack; detected at runtime.
OPTIONAL_COLUMNS = ("branch", "repo")

# Column order used for inserts (the embedding column comes first).
CONTENT_COLUMNS = (
    "product_name",
    "version",
    "branch",
    "repo",
    "heading_hierarchy",
    "section",
    "chunk_id",
    "content",
    "url",
    "hash",
    "chunk_index",
    "total_chunks",
)

METADATA_URL_SCHEME = "metadata://"


def chunk_record(chunk: Chunk, content_hash: str) -> dict[str, Any]:
    """Flatten a chunk into the column/payload values both backends store."""
    meta = chunk.metadata
    return {
        "product_name": meta.product_name,
        "version": meta.version,
        "branch": meta.branch or "",
        "repo": meta.repo or "",
        "heading_hierarchy": list(meta.heading_hierarchy),
        "section": meta.section,
        "chunk_id": meta.chunk_id,
        "content": chunk.content,
        "url": meta.url,
        "hash": content_hash,
        "chunk_index": int(chunk.chunk_index),
        "total_chunks": int(chunk.total_chunks),
    }


def row_values(record: dict[str, Any], columns: tuple[str, ...]) -> list[Any]:
    """Column values in ``columns`` order, JSON-encoding the hierarchy."""
    values = []
    for col in columns:
        value = record[col]
        if col == "heading_hierarchy":
            value = json.dumps(value)
        values.append(value)
    return values
