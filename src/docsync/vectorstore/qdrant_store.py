"""Qdrant vector store — one collection per source, cursors stored as points.

Supports Qdrant Cloud, a local server, an on-disk path or ``:memory:``.
Point ids must be UUIDs, so non-UUID chunk ids are folded into one
deterministically. Sync-cursor values are stored as sentinel points with a
zero vector and ``is_metadata=True``; every content-scoped query excludes
them.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from qdrant_client import QdrantClient, models

from docsync.chunking.schemas import Chunk
from docsync.utils.hashing import generate_metadata_uuid, hash_to_uuid, is_valid_uuid
from docsync.vectorstore.base import StorageAdapter
from docsync.vectorstore.schemas import METADATA_URL_SCHEME, chunk_record

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:6333"
DEFAULT_DIMENSION = 3072
SCROLL_PAGE = 1000


def default_collection_name(product_name: str, version: str) -> str:
    return f"{'_'.join(product_name.lower().split())}_{version}"


def point_id_for(chunk_id: str) -> str:
    return chunk_id if is_valid_uuid(chunk_id) else hash_to_uuid(chunk_id)


class QdrantStore(StorageAdapter):
    """Qdrant-backed store."""

    def __init__(
        self,
        collection_name: str,
        dimension: int = DEFAULT_DIMENSION,
        url: str | None = None,
        port: int | None = None,
        api_key: str | None = None,
        path: str | None = None,
        client: QdrantClient | None = None,
    ):
        self._collection_name = collection_name
        self._dimension = dimension

        # Connect to Qdrant
        if client is not None:
            self._client = client
        elif url == ":memory:":
            self._client = QdrantClient(":memory:")
        elif path:
            self._client = QdrantClient(path=path)
        else:
            kwargs: dict[str, Any] = {
                "url": url or DEFAULT_URL,
                "api_key": api_key or os.getenv("QDRANT_API_KEY"),
            }
            if port:
                kwargs["port"] = port
            self._client = QdrantClient(**kwargs)

        logger.info("Using Qdrant collection '%s'", collection_name)
        self._ensure_collection()

    @property
    def collection_name(self) -> str:
        return self._collection_name

    def _ensure_collection(self) -> None:
        collections = [c.name for c in self._client.get_collections().collections]
        if self._collection_name in collections:
            return
        try:
            self._client.create_collection(
                collection_name=self._collection_name,
                vectors_config=models.VectorParams(
                    size=self._dimension,
                    distance=models.Distance.COSINE,
                ),
            )
            logger.info(
                "Created Qdrant collection '%s' (dim=%d)",
                self._collection_name, self._dimension,
            )
        except Exception as exc:
            # Another process may have created it between the check and the call
            if "already exists" in str(exc).lower() or getattr(exc, "status_code", None) == 409:
                logger.info("Qdrant collection '%s' already exists", self._collection_name)
                return
            raise

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    @staticmethod
    def _not_metadata() -> list[models.Condition]:
        return [
            models.FieldCondition(key="is_metadata", match=models.MatchValue(value=True)),
        ]

    def _content_filter(self, *must: models.Condition) -> models.Filter:
        return models.Filter(must=list(must), must_not=self._not_metadata())

    def _scroll(self, scroll_filter: models.Filter, fields: list[str] | bool = True):
        offset = None
        while True:
            points, offset = self._client.scroll(
                collection_name=self._collection_name,
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE,
                offset=offset,
                with_payload=fields,
                with_vectors=False,
            )
            yield from points
            if offset is None:
                break

    # ------------------------------------------------------------------
    # Content records
    # ------------------------------------------------------------------

    def upsert(self, chunk: Chunk, embedding: list[float], content_hash: str) -> None:
        payload = chunk_record(chunk, content_hash)
        payload["original_chunk_id"] = payload.pop("chunk_id")
        payload["is_metadata"] = False

        self._client.upsert(
            collection_name=self._collection_name,
            points=[models.PointStruct(
                id=point_id_for(chunk.chunk_id),
                vector=embedding,
                payload=payload,
            )],
        )

    def get_hash(self, chunk_id: str) -> str | None:
        points = self._client.retrieve(
            collection_name=self._collection_name,
            ids=[point_id_for(chunk_id)],
            with_payload=True,
            with_vectors=False,
        )
        if not points or not points[0].payload:
            return None
        return points[0].payload.get("hash")

    def delete_by_url_prefix(self, keep_urls: set[str], prefix: str) -> int:
        obsolete: list[models.ExtendedPointId] = []
        scroll_filter = self._content_filter(
            models.FieldCondition(key="url", match=models.MatchText(text=prefix)),
        )
        for point in self._scroll(scroll_filter):
            payload = point.payload or {}
            if payload.get("is_metadata") is True:
                continue
            url = payload.get("url") or ""
            if not url.startswith(prefix) or url in keep_urls:
                continue
            obsolete.append(point.id)

        if obsolete:
            self._client.delete(
                collection_name=self._collection_name,
                points_selector=models.PointIdsList(points=obsolete),
            )
        logger.info(
            "Deleted %d obsolete chunks from Qdrant for prefix %s",
            len(obsolete), prefix,
        )
        return len(obsolete)

    def delete_by_url(self, url: str) -> int:
        url_filter = self._content_filter(
            models.FieldCondition(key="url", match=models.MatchValue(value=url)),
        )
        n = self._client.count(
            collection_name=self._collection_name, count_filter=url_filter, exact=True,
        ).count
        if n:
            self._client.delete(
                collection_name=self._collection_name,
                points_selector=models.FilterSelector(filter=url_filter),
            )
        logger.info("Deleted %d chunks for %s", n, url)
        return n

    def stored_urls_by_prefix(self, prefix: str) -> list[str]:
        scroll_filter = self._content_filter(
            models.FieldCondition(key="url", match=models.MatchText(text=prefix)),
        )
        urls: set[str] = set()
        for point in self._scroll(scroll_filter, fields=["url"]):
            url = (point.payload or {}).get("url")
            if url and url.startswith(prefix):
                urls.add(url)
        return sorted(urls)

    def chunk_hashes_by_url(self, url: str) -> list[str]:
        scroll_filter = self._content_filter(
            models.FieldCondition(key="url", match=models.MatchValue(value=url)),
        )
        hashes = [
            (point.payload or {}).get("hash")
            for point in self._scroll(scroll_filter, fields=["hash"])
        ]
        return sorted(h for h in hashes if h)

    def count(self) -> int:
        return self._client.count(
            collection_name=self._collection_name,
            count_filter=models.Filter(must_not=self._not_metadata()),
            exact=True,
        ).count

    # ------------------------------------------------------------------
    # Sync-cursor metadata
    # ------------------------------------------------------------------

    def get_metadata(self, key: str, default: str | None = None) -> str | None:
        points = self._client.retrieve(
            collection_name=self._collection_name,
            ids=[generate_metadata_uuid(key)],
            with_payload=True,
            with_vectors=False,
        )
        if not points or not points[0].payload:
            return default
        value = points[0].payload.get("metadata_value")
        return default if value is None else str(value)

    def set_metadata(self, key: str, value: str) -> None:
        self._client.upsert(
            collection_name=self._collection_name,
            points=[models.PointStruct(
                id=generate_metadata_uuid(key),
                vector=[0.0] * self._dimension,
                payload={
                    "metadata_key": key,
                    "metadata_value": value,
                    "is_metadata": True,
                    "content": f"Metadata: {key}",
                    "product_name": "system",
                    "version": "metadata",
                    "url": f"{METADATA_URL_SCHEME}{key}",
                },
            )],
        )

    def close(self) -> None:
        self._client.close()
