"""Abstract base class for storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsync.chunking.schemas import Chunk


class StorageAdapter(ABC):
    """Interface for vector storage backends.

    Content records are keyed by ``chunk_id``. Sync-cursor values live in
    sentinel metadata records that no content-scoped read or delete may
    touch.
    """

    @abstractmethod
    def upsert(self, chunk: Chunk, embedding: list[float], content_hash: str) -> None:
        """Insert the chunk, or replace the record with the same ``chunk_id``."""

    @abstractmethod
    def get_hash(self, chunk_id: str) -> str | None:
        """Return the stored content hash for ``chunk_id``, or ``None``."""

    @abstractmethod
    def delete_by_url_prefix(self, keep_urls: set[str], prefix: str) -> int:
        """Delete every record under ``prefix`` whose URL is not in ``keep_urls``.

        Returns:
            Number of records deleted.
        """

    @abstractmethod
    def delete_by_url(self, url: str) -> int:
        """Delete all records whose URL equals ``url``.

        Returns:
            Number of records deleted (backends that cannot count return 0).
        """

    @abstractmethod
    def get_metadata(self, key: str, default: str | None = None) -> str | None:
        """Read a sync-cursor value."""

    @abstractmethod
    def set_metadata(self, key: str, value: str) -> None:
        """Write a sync-cursor value."""

    @abstractmethod
    def stored_urls_by_prefix(self, prefix: str) -> list[str]:
        """Distinct content URLs stored under ``prefix``."""

    @abstractmethod
    def chunk_hashes_by_url(self, url: str) -> list[str]:
        """Sorted content hashes stored for ``url``."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of content records."""

    def close(self) -> None:
        """Release the underlying connection (optional)."""

    def __enter__(self) -> StorageAdapter:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @classmethod
    def store_name(cls) -> str:
        """Return human-readable store name."""
        return cls.__name__
