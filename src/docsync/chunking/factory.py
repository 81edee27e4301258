"""Chunker factory — registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from docsync.chunking.base import BaseChunker

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Chunker registry
#
# Each entry: (kind, module_path, class_name)
# ---------------------------------------------------------------------------

_CHUNKER_REGISTRY: list[tuple[str, str, str]] = [
    ("markdown", "docsync.chunking.markdown_chunker", "MarkdownChunker"),
    ("code", "docsync.chunking.code_chunker", "CodeChunker"),
]

# Singleton cache
_chunker_cache: dict[str, BaseChunker] = {}


def get_chunker(kind: str = "markdown", **kwargs) -> BaseChunker:
    """Get a chunker by kind.

    Args:
        kind: ``markdown`` for documents, pages and issues; ``code`` for
            repository files.
        **kwargs: Passed to the chunker constructor.
    """
    key = kind.lower()

    if not kwargs and key in _chunker_cache:
        return _chunker_cache[key]

    for reg_key, module_path, cls_name in _CHUNKER_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            instance = cls(**kwargs)
            if not kwargs:
                _chunker_cache[key] = instance
            return instance

    available = [k for k, _, _ in _CHUNKER_REGISTRY]
    raise ValueError(f"Unknown chunker '{kind}'. Available: {available}")


def available_chunkers() -> list[str]:
    """Return names of registered chunkers."""
    return [k for k, _, _ in _CHUNKER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _chunker_cache.clear()
