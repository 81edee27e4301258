"""SQLite vector store backed by the ``sqlite-vec`` extension.

One ``vec0`` virtual table holds the embedding and every metadata column;
sync cursors live in the plain ``vec_metadata`` table. ``vec0`` has no
native upsert, so writes try an insert and fall back to an update by
``chunk_id``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

import sqlite_vec

from docsync.chunking.schemas import Chunk
from docsync.errors import StorageConflictError
from docsync.vectorstore.base import StorageAdapter
from docsync.vectorstore.schemas import (
    CONTENT_COLUMNS,
    OPTIONAL_COLUMNS,
    chunk_record,
    row_values,
)

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 3072


def default_db_path(product_name: str, version: str) -> str:
    return f"{'_'.join(product_name.split())}-{version}.db"


class SqliteVecStore(StorageAdapter):
    """sqlite-vec backed store; one database file per source."""

    def __init__(self, db_path: str | Path, dimension: int = DEFAULT_DIMENSION):
        self.db_path = str(db_path)
        self._dimension = dimension

        logger.info("Opening SQLite database at %s", self.db_path)
        self._conn = sqlite3.connect(self.db_path)
        self._conn.enable_load_extension(True)
        sqlite_vec.load(self._conn)
        self._conn.enable_load_extension(False)

        (version,) = self._conn.execute("SELECT vec_version()").fetchone()
        logger.debug("sqlite-vec %s loaded", version)

        self._create_tables()
        self._columns: tuple[str, ...] | None = None

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _create_tables(self) -> None:
        with self._conn:
            self._conn.execute(
                f"""
                CREATE VIRTUAL TABLE IF NOT EXISTS vec_items USING vec0(
                    chunk_id TEXT PRIMARY KEY,
                    embedding FLOAT[{self._dimension}],
                    product_name TEXT,
                    version TEXT,
                    branch TEXT,
                    repo TEXT,
                    heading_hierarchy TEXT,
                    section TEXT,
                    content TEXT,
                    url TEXT,
                    hash TEXT,
                    chunk_index INTEGER,
                    total_chunks INTEGER
                )
                """
            )
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS vec_metadata (key TEXT PRIMARY KEY, value TEXT)"
            )

    @property
    def columns(self) -> tuple[str, ...]:
        """Content columns present in this database, discovered once per handle."""
        if self._columns is None:
            present = {row[1] for row in self._conn.execute("PRAGMA table_info(vec_items)")}
            self._columns = tuple(
                c for c in CONTENT_COLUMNS
                if c not in OPTIONAL_COLUMNS or c in present
            )
            missing = [c for c in OPTIONAL_COLUMNS if c not in present]
            if missing:
                logger.info("vec_items has no %s column(s); writing without them", missing)
        return self._columns

    # ------------------------------------------------------------------
    # Content records
    # ------------------------------------------------------------------

    def upsert(self, chunk: Chunk, embedding: list[float], content_hash: str) -> None:
        record = chunk_record(chunk, content_hash)
        columns = self.columns
        vector = json.dumps(embedding)

        insert_sql = (
            f"INSERT INTO vec_items (embedding, {', '.join(columns)}) "
            f"VALUES (?, {', '.join('?' for _ in columns)})"
        )
        update_columns = tuple(c for c in columns if c != "chunk_id")
        update_sql = (
            "UPDATE vec_items SET embedding = ?, "
            + ", ".join(f"{c} = ?" for c in update_columns)
            + " WHERE chunk_id = ?"
        )

        with self._conn:
            try:
                self._conn.execute(insert_sql, [vector, *row_values(record, columns)])
                return
            except sqlite3.DatabaseError as exc:
                logger.debug("Insert of %s failed (%s), updating instead", chunk.chunk_id[:8], exc)

            try:
                self._conn.execute(
                    update_sql,
                    [vector, *row_values(record, update_columns), record["chunk_id"]],
                )
            except sqlite3.DatabaseError as exc:
                raise StorageConflictError(
                    f"Could not insert or update chunk {chunk.chunk_id}: {exc}"
                ) from exc

    def get_hash(self, chunk_id: str) -> str | None:
        row = self._conn.execute(
            "SELECT hash FROM vec_items WHERE chunk_id = ?", (chunk_id,)
        ).fetchone()
        return row[0] if row else None

    def delete_by_url_prefix(self, keep_urls: set[str], prefix: str) -> int:
        rows = self._conn.execute(
            "SELECT chunk_id, url FROM vec_items WHERE url LIKE ? || '%'", (prefix,)
        ).fetchall()

        deleted = 0
        with self._conn:
            for chunk_id, url in rows:
                # LIKE is case-insensitive and treats _ as a wildcard
                if not url.startswith(prefix) or url in keep_urls:
                    continue
                logger.debug("Deleting obsolete chunk %s... (%s)", chunk_id[:8], url)
                self._conn.execute("DELETE FROM vec_items WHERE chunk_id = ?", (chunk_id,))
                deleted += 1

        logger.info("Deleted %d obsolete chunks from SQLite for prefix %s", deleted, prefix)
        return deleted

    def delete_by_url(self, url: str) -> int:
        # rowcount is unreliable for virtual tables
        (deleted,) = self._conn.execute(
            "SELECT COUNT(*) FROM vec_items WHERE url = ?", (url,)
        ).fetchone()
        if deleted:
            with self._conn:
                self._conn.execute("DELETE FROM vec_items WHERE url = ?", (url,))
        logger.info("Deleted %d chunks for %s", deleted, url)
        return deleted

    def stored_urls_by_prefix(self, prefix: str) -> list[str]:
        rows = self._conn.execute(
            "SELECT DISTINCT url FROM vec_items WHERE url LIKE ? || '%'", (prefix,)
        ).fetchall()
        return [r[0] for r in rows if r[0].startswith(prefix)]

    def chunk_hashes_by_url(self, url: str) -> list[str]:
        rows = self._conn.execute("SELECT hash FROM vec_items WHERE url = ?", (url,)).fetchall()
        return sorted(r[0] for r in rows)

    def count(self) -> int:
        (n,) = self._conn.execute("SELECT COUNT(*) FROM vec_items").fetchone()
        return n

    # ------------------------------------------------------------------
    # Sync-cursor metadata
    # ------------------------------------------------------------------

    def get_metadata(self, key: str, default: str | None = None) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM vec_metadata WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else default

    def set_metadata(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT INTO vec_metadata (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def close(self) -> None:
        self._conn.close()
