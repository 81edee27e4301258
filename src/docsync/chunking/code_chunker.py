"""Chunker for source files from code repositories.

Markdown files go through the heading-aware chunker and are re-keyed with
the file path; other languages use a syntax-aware splitter with a plain
token-window fallback. Chunk ids include the URL, so identical snippets in
different files never collide.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import replace

from docsync.chunking.base import BaseChunker
from docsync.chunking.markdown_chunker import MarkdownChunker, count_tokens
from docsync.chunking.schemas import Chunk, ChunkMetadata, SourceContext, stamp_totals
from docsync.chunking.splitters import (
    DEFAULT_CHUNK_SIZE,
    SyntaxAwareSplitter,
    TextSplitter,
    TokenWindowSplitter,
    supports_language,
)
from docsync.utils.hashing import generate_hash

logger = logging.getLogger(__name__)

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".swift": "swift",
    ".c": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".scala": "scala",
    ".sql": "sql",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "bash",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".sass": "scss",
    ".less": "css",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
}


def detect_language(file_path: str) -> str | None:
    return EXTENSION_LANGUAGES.get(posixpath.splitext(file_path)[1].lower())


class CodeChunker(BaseChunker):
    """Chunk a single source file. ``context.file_path`` names the file."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        markdown_chunker: MarkdownChunker | None = None,
    ):
        self.chunk_size = chunk_size
        self.markdown_chunker = markdown_chunker or MarkdownChunker()
        self._syntax_splitters: dict[str, TextSplitter] = {}
        self._token_splitter: TextSplitter | None = None

    def chunk(self, text: str, context: SourceContext) -> list[Chunk]:
        path = (context.file_path or "").replace("\\", "/")
        language = detect_language(path) if path else None

        if language == "markdown":
            return self._chunk_markdown(text, context, path)

        pieces = self._split(text, language, path or context.url)

        prefix = f"[File: {path}]\n" if path else ""
        chunks: list[Chunk] = []
        for piece in pieces:
            body = piece.strip()
            if not body:
                continue
            searchable = prefix + body
            chunk_id = generate_hash(f"{context.url}::{searchable}")
            meta = ChunkMetadata(
                product_name=context.product_name,
                version=context.version,
                url=context.url,
                chunk_id=chunk_id,
                hash=chunk_id,
                heading_hierarchy=(path,) if path else (),
                section=path or "Code",
                branch=context.branch,
                repo=context.repo,
            )
            chunks.append(Chunk(content=searchable, metadata=meta, token_count=count_tokens(searchable)))

        stamp_totals(chunks)
        logger.debug("Chunked %s: %d chunks", path or context.url, len(chunks))
        return chunks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _chunk_markdown(self, text: str, context: SourceContext, path: str) -> list[Chunk]:
        chunks = self.markdown_chunker.chunk(text, context)
        if not path:
            return chunks

        prefix = f"[File: {path}]\n"
        for c in chunks:
            searchable = prefix + c.content
            chunk_id = generate_hash(f"{context.url}::{searchable}")
            c.content = searchable
            c.token_count = count_tokens(searchable)
            c.metadata = replace(
                c.metadata,
                chunk_id=chunk_id,
                hash=chunk_id,
                heading_hierarchy=(path, *c.metadata.heading_hierarchy),
                section=path,
            )
        return chunks

    def _split(self, text: str, language: str | None, label: str) -> list[str]:
        if language and supports_language(language):
            try:
                return self._syntax_splitter(language).split(text)
            except Exception as exc:
                logger.warning(
                    "Syntax-aware split failed for %s (%s), falling back to token windows",
                    label, exc,
                )
        return self._window_splitter().split(text)

    def _syntax_splitter(self, language: str) -> TextSplitter:
        splitter = self._syntax_splitters.get(language)
        if splitter is None:
            splitter = SyntaxAwareSplitter(language, chunk_size=self.chunk_size)
            self._syntax_splitters[language] = splitter
        return splitter

    def _window_splitter(self) -> TextSplitter:
        if self._token_splitter is None:
            self._token_splitter = TokenWindowSplitter(chunk_size=self.chunk_size)
        return self._token_splitter
