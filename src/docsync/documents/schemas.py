"""Data models for document loading."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LoadResult:
    """Result of converting a single document to markdown.

    Attributes:
        text: Full markdown text.
        page_texts: Per-page text (for PDFs). Single entry for other formats.
        source_path: Filesystem path, URL or filename.
        format: File extension used (md, txt, html, pdf, docx).
        page_count: Number of pages (PDFs).
        char_count: Length of ``text``.
        warnings: Non-fatal issues encountered during loading.
    """

    text: str
    page_texts: list[str] = field(default_factory=list)
    source_path: str | None = None
    format: str = ""
    page_count: int | None = None
    char_count: int = 0
    warnings: list[str] = field(default_factory=list)
