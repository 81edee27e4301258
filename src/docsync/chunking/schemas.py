"""Data models for chunks."""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class SourceContext:
    """Per-document context propagated onto every chunk it produces."""

    product_name: str
    version: str
    url: str
    branch: str | None = None
    repo: str | None = None
    file_path: str | None = None  # code sources only, relative to the repo root


@dataclass(frozen=True)
class ChunkMetadata:
    """Metadata carried by each chunk — stored alongside embeddings."""

    product_name: str
    version: str
    url: str
    chunk_id: str
    hash: str
    heading_hierarchy: tuple[str, ...] = field(default_factory=tuple)
    section: str = "Introduction"
    branch: str | None = None
    repo: str | None = None

    def with_identity(self, chunk_id: str, content_hash: str) -> ChunkMetadata:
        return replace(self, chunk_id=chunk_id, hash=content_hash)


@dataclass
class Chunk:
    """A single retrievable piece of a document."""

    content: str
    metadata: ChunkMetadata
    chunk_index: int = 0
    total_chunks: int = 0
    token_count: int = 0

    @property
    def chunk_id(self) -> str:
        return self.metadata.chunk_id

    @property
    def url(self) -> str:
        return self.metadata.url


def stamp_totals(chunks: list[Chunk]) -> list[Chunk]:
    """Second phase of chunking: number chunks and back-fill ``total_chunks``."""
    total = len(chunks)
    for i, c in enumerate(chunks):
        c.chunk_index = i
        c.total_chunks = total
    return chunks
