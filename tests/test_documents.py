"""Tests for document loading and HTML to markdown extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsync.documents.html import HtmlExtractor, soup_to_markdown
from docsync.documents.loader import SUPPORTED_EXTENSIONS, DocumentLoader

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ARTICLE = """
<html><head><title>Guide</title><script>var x = 1;</script></head>
<body>
  <nav><a href="/">Home</a> | <a href="/docs">Docs</a></nav>
  <main>
    <h1>Getting Started</h1>
    <p>Install the client library with your package manager before anything else.</p>
    <h2>Configuration</h2>
    <ul><li>Set the <b>API key</b> in the environment.</li><li>Choose a region.</li></ul>
    <pre>client = Client(region="eu")</pre>
  </main>
  <footer>Copyright</footer>
</body></html>
"""


@pytest.fixture
def loader() -> DocumentLoader:
    return DocumentLoader()


# ---------------------------------------------------------------------------
# soup fallback
# ---------------------------------------------------------------------------


class TestSoupToMarkdown:
    def test_headings_keep_levels(self):
        md = soup_to_markdown(ARTICLE)
        assert "# Getting Started" in md
        assert "## Configuration" in md

    def test_noise_removed(self):
        md = soup_to_markdown(ARTICLE)
        assert "var x" not in md
        assert "Copyright" not in md
        assert "Home" not in md

    def test_lists_and_code(self):
        md = soup_to_markdown(ARTICLE)
        assert "- Set the API key in the environment." in md
        assert '```\nclient = Client(region="eu")\n```' in md

    def test_plain_text_body(self):
        assert soup_to_markdown("<div>just   some\ntext</div>") == "just some text"


class TestHtmlExtractor:
    def test_empty_html(self):
        assert HtmlExtractor().to_markdown("") == ""
        assert HtmlExtractor().to_markdown("   ") == ""

    def test_short_page_uses_fallback(self):
        md = HtmlExtractor().to_markdown("<html><body><h2>Tiny</h2></body></html>")
        assert md == "## Tiny"

    def test_article_text_survives(self):
        md = HtmlExtractor().to_markdown(ARTICLE, url="https://docs.example.com/guide")
        assert "Install the client library" in md


# ---------------------------------------------------------------------------
# DocumentLoader
# ---------------------------------------------------------------------------


class TestDocumentLoader:
    def test_supported_extensions(self):
        assert {".md", ".txt", ".html", ".pdf", ".docx"} <= SUPPORTED_EXTENSIONS

    def test_load_markdown(self, loader, tmp_path: Path):
        path = tmp_path / "readme.md"
        path.write_text("# Title\n\nBody text.\n", encoding="utf-8")
        result = loader.load_file(path)
        assert result.text == "# Title\n\nBody text.\n"
        assert result.format == "md"
        assert result.char_count == len(result.text)
        assert result.source_path == str(path)

    def test_load_latin1_text(self, loader, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_bytes("caf\xe9".encode("latin-1"))
        assert loader.load_file(path).text == "caf\xe9"

    def test_load_html_file(self, loader, tmp_path: Path):
        path = tmp_path / "page.html"
        path.write_text(ARTICLE, encoding="utf-8")
        result = loader.load_file(path)
        assert "Install the client library" in result.text
        assert "<p>" not in result.text

    def test_load_docx(self, loader, tmp_path: Path):
        from docx import Document

        doc = Document()
        doc.add_heading("Setup", level=1)
        doc.add_paragraph("Run the installer.")
        doc.add_heading("Details", level=2)
        doc.add_paragraph("")
        doc.add_paragraph("More text.")
        path = tmp_path / "manual.docx"
        doc.save(str(path))

        result = loader.load_file(path)
        assert result.text == (
            "# manual\n\n## Setup\n\nRun the installer.\n\n### Details\n\nMore text."
        )
        assert result.format == "docx"

    def test_corrupt_pdf_yields_warning(self, loader):
        result = loader.load_bytes(b"not a pdf", "broken.pdf")
        assert result.text == ""
        assert result.warnings
        assert result.source_path == "broken.pdf"

    def test_unsupported_extension(self, loader, tmp_path: Path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(ValueError, match="Unsupported format"):
            loader.load_file(path)

    def test_missing_file(self, loader, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            loader.load_file(tmp_path / "nope.md")

    def test_load_bytes_html(self, loader):
        result = loader.load_bytes(b"<h1>Hello</h1>", "page.htm")
        assert result.text == "# Hello"
        assert result.format == "htm"
