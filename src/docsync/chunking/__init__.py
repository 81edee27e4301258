"""Heading-aware markdown and source-code chunking."""

from docsync.chunking.base import BaseChunker
from docsync.chunking.schemas import Chunk, ChunkMetadata, SourceContext

__all__ = ["BaseChunker", "Chunk", "ChunkMetadata", "SourceContext"]
