"""Abstract base class for all chunkers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsync.chunking.schemas import Chunk, SourceContext


class BaseChunker(ABC):
    """Interface for document chunking strategies."""

    @abstractmethod
    def chunk(self, text: str, context: SourceContext) -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: Full document text (markdown or source code).
            context: Product, version and URL propagated to each chunk.

        Returns:
            List of ``Chunk`` objects with ``chunk_index``/``total_chunks``
            already stamped.
        """

    @classmethod
    def strategy_name(cls) -> str:
        """Return human-readable strategy name."""
        return cls.__name__
