"""Unified document loader — MD, TXT, HTML, PDF, DOCX to markdown.

Supports both filesystem paths and in-memory bytes (for PDFs downloaded
during a crawl).
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path

from docsync.documents.html import HtmlExtractor
from docsync.documents.schemas import LoadResult

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".md", ".markdown", ".txt", ".html", ".htm", ".pdf", ".docx"}

_WHITESPACE = re.compile(r"\s+")
_BLANK_RUNS = re.compile(r"\n{3,}")


class DocumentLoader:
    """Load documents into a ``LoadResult`` whose text is markdown."""

    def __init__(self, html_extractor: HtmlExtractor | None = None):
        self.html_extractor = html_extractor or HtmlExtractor()

    def load_file(self, path: str | Path, encoding: str = "utf-8") -> LoadResult:
        """Load a document from a filesystem path."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        ext = path.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported format '{ext}'. Supported: {sorted(SUPPORTED_EXTENSIONS)}"
            )

        data = path.read_bytes()
        result = self._dispatch(data, ext, path.stem, encoding)
        result.source_path = str(path)
        return result

    def load_bytes(self, data: bytes, filename: str, encoding: str = "utf-8") -> LoadResult:
        """Load a document from in-memory bytes."""
        name = Path(filename)
        ext = name.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported format '{ext}'. Supported: {sorted(SUPPORTED_EXTENSIONS)}"
            )

        result = self._dispatch(data, ext, name.stem, encoding)
        result.source_path = filename
        return result

    # ------------------------------------------------------------------
    # Private dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, data: bytes, ext: str, title: str, encoding: str) -> LoadResult:
        if ext == ".pdf":
            result = self._load_pdf(data, title)
        elif ext == ".docx":
            result = self._load_docx(data, title)
        else:
            result = self._load_text(data, encoding)
            if ext in (".html", ".htm"):
                result.text = self.html_extractor.to_markdown(result.text)
                result.page_texts = [result.text]

        result.format = ext.lstrip(".")
        result.char_count = len(result.text)
        for warning in result.warnings:
            logger.warning("%s: %s", title, warning)
        return result

    # ------------------------------------------------------------------
    # Format-specific loaders
    # ------------------------------------------------------------------

    @staticmethod
    def _load_text(data: bytes, encoding: str) -> LoadResult:
        for enc in dict.fromkeys((encoding, "utf-8", "latin-1")):
            try:
                text = data.decode(enc)
                return LoadResult(text=text, page_texts=[text], page_count=1)
            except (UnicodeDecodeError, LookupError):
                continue
        text = data.decode("utf-8", errors="replace")
        return LoadResult(
            text=text,
            page_texts=[text],
            page_count=1,
            warnings=["Encoding detection fell back to utf-8 with replacements"],
        )

    @staticmethod
    def _load_pdf(data: bytes, title: str) -> LoadResult:
        import pdfplumber

        warnings: list[str] = []
        page_texts: list[str] = []

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page in pdf.pages:
                    text = page.extract_text() or ""
                    page_texts.append(_WHITESPACE.sub(" ", text).strip())
        except Exception as exc:
            warnings.append(f"PDF extraction error: {exc}")
            return LoadResult(text="", warnings=warnings)

        parts = [f"# {title}"]
        multi_page = len(page_texts) > 1
        for num, text in enumerate(page_texts, start=1):
            if not text:
                continue
            if multi_page:
                parts.append(f"## Page {num}")
            parts.append(text)

        if not any(page_texts):
            warnings.append("PDF contains no extractable text (may be scanned/image-only)")

        return LoadResult(
            text="\n\n".join(parts).strip(),
            page_texts=page_texts,
            page_count=len(page_texts),
            warnings=warnings,
        )

    @staticmethod
    def _load_docx(data: bytes, title: str) -> LoadResult:
        from docx import Document

        warnings: list[str] = []
        try:
            doc = Document(io.BytesIO(data))
        except Exception as exc:
            warnings.append(f"DOCX extraction error: {exc}")
            return LoadResult(text="", warnings=warnings)

        parts = [f"# {title}"]
        for p in doc.paragraphs:
            text = p.text.strip()
            if not text:
                continue
            style = p.style.name if p.style is not None else ""
            level = _docx_heading_level(style)
            # Document title is already the h1; Word headings shift down one level
            parts.append(f"{'#' * min(level + 1, 6)} {text}" if level else text)

        text = _BLANK_RUNS.sub("\n\n", "\n\n".join(parts)).strip()
        return LoadResult(text=text, page_texts=[text], page_count=1, warnings=warnings)


def _docx_heading_level(style_name: str) -> int:
    if style_name == "Title":
        return 1
    if style_name.startswith("Heading "):
        suffix = style_name.removeprefix("Heading ").strip()
        if suffix.isdigit():
            return int(suffix)
    return 0
