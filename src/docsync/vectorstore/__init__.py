"""Storage backends — sqlite-vec (local file) and Qdrant (server)."""

from docsync.vectorstore.base import StorageAdapter
from docsync.vectorstore.factory import available_stores, get_vector_store, open_store

__all__ = [
    "StorageAdapter",
    "available_stores",
    "get_vector_store",
    "open_store",
]
