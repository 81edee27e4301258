"""Storage factory — registry, lazy import, per-source construction."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from docsync.errors import SourceError
from docsync.vectorstore.base import StorageAdapter

if TYPE_CHECKING:
    from docsync.config import SourceConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Store registry: (store_key, module_path, class_name)
# ---------------------------------------------------------------------------

_STORE_REGISTRY: list[tuple[str, str, str]] = [
    ("sqlite", "docsync.vectorstore.sqlite_store", "SqliteVecStore"),
    ("qdrant", "docsync.vectorstore.qdrant_store", "QdrantStore"),
]


def get_vector_store(provider: str = "sqlite", **kwargs) -> StorageAdapter:
    """Get a storage backend by name.

    Args:
        provider: One of ``sqlite``, ``qdrant``.
        **kwargs: Passed to the store constructor.

    Returns:
        A ``StorageAdapter`` instance.
    """
    key = provider.lower()

    for reg_key, module_path, cls_name in _STORE_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            return cls(**kwargs)

    available = [k for k, _, _ in _STORE_REGISTRY]
    raise ValueError(f"Unknown vector store '{provider}'. Available: {available}")


def open_store(source: SourceConfig, dimension: int) -> StorageAdapter:
    """Open the store configured for ``source``.

    Defaults derive from the product name and version: a
    ``<product>-<version>.db`` file for SQLite, a ``<product>_<version>``
    collection for Qdrant.

    Raises:
        SourceError: If the backend cannot be opened.
    """
    db = source.database_config
    params = db.params

    try:
        if db.type == "sqlite":
            from docsync.vectorstore.sqlite_store import default_db_path

            path = params.db_path or default_db_path(source.product_name, source.version)
            return get_vector_store("sqlite", db_path=path, dimension=dimension)

        from docsync.vectorstore.qdrant_store import default_collection_name

        collection = params.collection_name or default_collection_name(
            source.product_name, source.version,
        )
        return get_vector_store(
            "qdrant",
            collection_name=collection,
            dimension=dimension,
            url=params.qdrant_url,
            port=params.qdrant_port,
            api_key=params.api_key,
        )
    except Exception as exc:
        raise SourceError(
            f"Cannot open {db.type} store for {source.product_name}@{source.version}: {exc}"
        ) from exc


def available_stores() -> list[str]:
    """Return names of registered vector stores."""
    return [k for k, _, _ in _STORE_REGISTRY]
