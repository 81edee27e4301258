"""Tests for storage backends — sqlite-vec and Qdrant (in-memory)."""

from __future__ import annotations

import sqlite3

import numpy as np
import pytest

from docsync.chunking.schemas import Chunk, ChunkMetadata
from docsync.config import DatabaseConfig, DatabaseParams, WebsiteSource
from docsync.errors import SourceError
from docsync.utils.hashing import generate_hash, is_valid_uuid
from docsync.vectorstore.base import StorageAdapter
from docsync.vectorstore.factory import available_stores, get_vector_store, open_store
from docsync.vectorstore.qdrant_store import QdrantStore, default_collection_name, point_id_for
from docsync.vectorstore.sqlite_store import SqliteVecStore, default_db_path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

DIM = 8  # Small dimension for fast tests


def _random_embedding(dim: int = DIM) -> list[float]:
    vec = np.random.randn(dim).astype(np.float32)
    vec /= np.linalg.norm(vec)
    return vec.tolist()


def _make_chunk(text: str, url: str, index: int = 0, total: int = 1) -> Chunk:
    chunk_id = generate_hash(f"{url}::{text}")
    return Chunk(
        content=text,
        metadata=ChunkMetadata(
            product_name="Example",
            version="1.0",
            url=url,
            chunk_id=chunk_id,
            hash=chunk_id,
            heading_hierarchy=("Guide", "Install"),
            section="Install",
        ),
        chunk_index=index,
        total_chunks=total,
    )


def _put(store: StorageAdapter, text: str, url: str) -> Chunk:
    chunk = _make_chunk(text, url)
    store.upsert(chunk, _random_embedding(), generate_hash(text))
    return chunk


def _sqlite_store(tmp_path) -> SqliteVecStore:
    try:
        return SqliteVecStore(tmp_path / "test.db", dimension=DIM)
    except (AttributeError, sqlite3.OperationalError) as exc:
        pytest.skip(f"sqlite-vec extension cannot be loaded here: {exc}")


SITE = "https://docs.example.com"


# ---------------------------------------------------------------------------
# Behaviour shared by every backend
# ---------------------------------------------------------------------------


class TestStorageContract:
    @pytest.fixture(params=["sqlite", "qdrant"])
    def store(self, request, tmp_path):
        if request.param == "sqlite":
            s = _sqlite_store(tmp_path)
        else:
            s = QdrantStore(collection_name="test_docs", dimension=DIM, url=":memory:")
        yield s
        s.close()

    def test_is_storage_adapter(self, store):
        assert isinstance(store, StorageAdapter)

    def test_upsert_and_get_hash(self, store):
        chunk = _put(store, "install with pip", f"{SITE}/install")
        assert store.get_hash(chunk.chunk_id) == generate_hash("install with pip")
        assert store.count() == 1

    def test_get_hash_missing(self, store):
        assert store.get_hash(generate_hash("nothing")) is None

    def test_upsert_same_id_replaces(self, store):
        chunk = _make_chunk("text", f"{SITE}/a")
        store.upsert(chunk, _random_embedding(), "hash-one")
        store.upsert(chunk, _random_embedding(), "hash-two")
        assert store.count() == 1
        assert store.get_hash(chunk.chunk_id) == "hash-two"

    def test_delete_by_url_prefix_keeps_listed(self, store):
        a = _put(store, "alpha", f"{SITE}/a")
        b = _put(store, "beta", f"{SITE}/b")
        other = _put(store, "elsewhere", "https://other.example.com/a")

        deleted = store.delete_by_url_prefix({f"{SITE}/a"}, f"{SITE}/")
        assert deleted == 1
        assert store.get_hash(a.chunk_id) is not None
        assert store.get_hash(b.chunk_id) is None
        assert store.get_hash(other.chunk_id) is not None

    def test_delete_by_url_prefix_nothing_to_delete(self, store):
        _put(store, "alpha", f"{SITE}/a")
        assert store.delete_by_url_prefix({f"{SITE}/a"}, f"{SITE}/") == 0
        assert store.count() == 1

    def test_delete_by_url(self, store):
        _put(store, "one", f"{SITE}/a")
        _put(store, "two", f"{SITE}/a")
        keep = _put(store, "three", f"{SITE}/ab")
        assert store.delete_by_url(f"{SITE}/a") == 2
        assert store.count() == 1
        assert store.get_hash(keep.chunk_id) is not None

    def test_metadata_roundtrip(self, store):
        assert store.get_metadata("last_run_o_r") is None
        assert store.get_metadata("last_run_o_r", "fallback") == "fallback"
        store.set_metadata("last_run_o_r", "2025-03-01T00:00:00Z")
        store.set_metadata("last_run_o_r", "2025-04-01T00:00:00Z")
        assert store.get_metadata("last_run_o_r") == "2025-04-01T00:00:00Z"

    def test_metadata_survives_prefix_cleanup(self, store):
        store.set_metadata("last_commit_o_r", "abc123")
        _put(store, "alpha", f"{SITE}/a")
        assert store.delete_by_url_prefix(set(), "metadata://") == 0
        store.delete_by_url_prefix(set(), f"{SITE}/")
        assert store.count() == 0
        assert store.get_metadata("last_commit_o_r") == "abc123"

    def test_metadata_not_counted(self, store):
        store.set_metadata("k", "v")
        assert store.count() == 0
        assert store.stored_urls_by_prefix("metadata://") == []

    def test_stored_urls_by_prefix(self, store):
        _put(store, "one", f"{SITE}/a")
        _put(store, "two", f"{SITE}/a")
        _put(store, "three", f"{SITE}/b")
        _put(store, "four", "https://other.example.com/c")
        assert sorted(store.stored_urls_by_prefix(f"{SITE}/")) == [f"{SITE}/a", f"{SITE}/b"]

    def test_chunk_hashes_by_url(self, store):
        _put(store, "one", f"{SITE}/a")
        _put(store, "two", f"{SITE}/a")
        _put(store, "three", f"{SITE}/b")
        assert store.chunk_hashes_by_url(f"{SITE}/a") == sorted(
            [generate_hash("one"), generate_hash("two")]
        )
        assert store.chunk_hashes_by_url(f"{SITE}/missing") == []

    def test_context_manager_closes(self, store):
        with store as s:
            assert s is store


# ---------------------------------------------------------------------------
# SQLite specifics
# ---------------------------------------------------------------------------


class TestSqliteVecStore:
    def test_persists_across_handles(self, tmp_path):
        store = _sqlite_store(tmp_path)
        chunk = _put(store, "persisted", f"{SITE}/p")
        store.set_metadata("last_mtime_docs", "1700000000.0")
        store.close()

        reopened = SqliteVecStore(tmp_path / "test.db", dimension=DIM)
        assert reopened.get_hash(chunk.chunk_id) == generate_hash("persisted")
        assert reopened.get_metadata("last_mtime_docs") == "1700000000.0"
        reopened.close()

    def test_columns_discovered(self, tmp_path):
        store = _sqlite_store(tmp_path)
        assert "branch" in store.columns
        assert "chunk_id" in store.columns
        store.close()

    def test_prefix_with_like_wildcards(self, tmp_path):
        store = _sqlite_store(tmp_path)
        _put(store, "under", "file:///docs_v1/a.md")
        _put(store, "sibling", "file:///docsXv1/a.md")
        assert store.delete_by_url_prefix(set(), "file:///docs_v1/") == 1
        assert store.stored_urls_by_prefix("file:///docsXv1/") == ["file:///docsXv1/a.md"]
        store.close()

    def test_default_db_path(self):
        assert default_db_path("My Product", "2.1") == "My_Product-2.1.db"


# ---------------------------------------------------------------------------
# Qdrant specifics
# ---------------------------------------------------------------------------


class TestQdrantStore:
    def test_point_id_is_uuid(self):
        chunk_id = generate_hash("anything")
        pid = point_id_for(chunk_id)
        assert is_valid_uuid(pid)
        assert point_id_for(chunk_id) == pid

    def test_uuid_chunk_id_used_directly(self):
        raw = "123e4567-e89b-42d3-a456-426614174000"
        assert point_id_for(raw) == raw

    def test_default_collection_name(self):
        assert default_collection_name("My Product", "2.1") == "my_product_2.1"

    def test_existing_collection_reused(self):
        from qdrant_client import QdrantClient

        client = QdrantClient(":memory:")
        first = QdrantStore(collection_name="shared", dimension=DIM, client=client)
        _put(first, "kept", f"{SITE}/a")
        second = QdrantStore(collection_name="shared", dimension=DIM, client=client)
        assert second.count() == 1

    def test_original_chunk_id_in_payload(self):
        store = QdrantStore(collection_name="payload", dimension=DIM, url=":memory:")
        chunk = _put(store, "payload", f"{SITE}/a")
        points = store._client.retrieve(
            collection_name="payload", ids=[point_id_for(chunk.chunk_id)], with_payload=True,
        )
        assert points[0].payload["original_chunk_id"] == chunk.chunk_id
        assert points[0].payload["is_metadata"] is False


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestStoreFactory:
    def test_available(self):
        assert available_stores() == ["sqlite", "qdrant"]

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown vector store"):
            get_vector_store("pinecone")

    def test_get_qdrant(self):
        store = get_vector_store("qdrant", collection_name="f", dimension=DIM, url=":memory:")
        assert isinstance(store, QdrantStore)
        assert store.store_name() == "QdrantStore"

    def test_open_store_qdrant_memory(self):
        source = WebsiteSource(
            product_name="Example",
            version="1.0",
            url=f"{SITE}/",
            database_config=DatabaseConfig(
                type="qdrant", params=DatabaseParams(qdrant_url=":memory:"),
            ),
        )
        store = open_store(source, dimension=DIM)
        assert isinstance(store, QdrantStore)
        assert store.collection_name == "example_1.0"

    def test_open_store_sqlite_path(self, tmp_path):
        source = WebsiteSource(
            product_name="Example",
            version="1.0",
            url=f"{SITE}/",
            database_config=DatabaseConfig(
                type="sqlite", params=DatabaseParams(db_path=str(tmp_path / "x.db")),
            ),
        )
        try:
            store = open_store(source, dimension=DIM)
        except SourceError as exc:
            pytest.skip(f"sqlite-vec extension cannot be loaded here: {exc}")
        assert isinstance(store, SqliteVecStore)
        store.close()

    def test_open_store_wraps_errors(self, tmp_path):
        source = WebsiteSource(
            product_name="Example",
            version="1.0",
            url=f"{SITE}/",
            database_config=DatabaseConfig(
                type="sqlite",
                params=DatabaseParams(db_path=str(tmp_path / "missing" / "dir" / "x.db")),
            ),
        )
        with pytest.raises(SourceError):
            open_store(source, dimension=DIM)
