"""Shared fixtures for tests — fake renderer, in-memory store, no network calls."""

from __future__ import annotations

import hashlib
import textwrap
from pathlib import Path

import pytest

from docsync.chunking.schemas import Chunk, SourceContext
from docsync.config import WebsiteSource
from docsync.crawler.renderer import PageRenderer, RenderResult, RenderSession
from docsync.documents.html import HtmlExtractor
from docsync.documents.loader import DocumentLoader
from docsync.embeddings.base import EmbeddingProvider
from docsync.errors import EmbeddingFailure, HTTPStatusError
from docsync.vectorstore.base import StorageAdapter

DIM = 16

# ---------------------------------------------------------------------------
# Mock embedding provider
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(EmbeddingProvider):
    """Deterministic hash-based embeddings; counts every text embedded."""

    def __init__(self, dimension: int = DIM, fail_on: str | None = None):
        self._dim = dimension
        self.fail_on = fail_on
        self.calls = 0
        self.texts: list[str] = []

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        out = []
        for t in texts:
            if self.fail_on is not None and self.fail_on in t:
                raise EmbeddingFailure(f"refusing to embed text containing {self.fail_on!r}")
            self.calls += 1
            self.texts.append(t)
            out.append(self._hash_embed(t))
        return out

    @property
    def dimension(self) -> int:
        return self._dim

    def _hash_embed(self, text: str) -> list[float]:
        h = hashlib.sha256(text.encode()).digest()
        return [(h[i % len(h)] / 255.0) * 2 - 1 for i in range(self._dim)]


# ---------------------------------------------------------------------------
# In-memory storage adapter
# ---------------------------------------------------------------------------


class InMemoryStore(StorageAdapter):
    """Dict-backed store that records every mutating call."""

    def __init__(self):
        self.records: dict[str, dict] = {}
        self.metadata: dict[str, str] = {}
        self.delete_calls: list[tuple] = []
        self.upserts = 0
        self.closed = False

    def upsert(self, chunk: Chunk, embedding: list[float], content_hash: str) -> None:
        self.upserts += 1
        self.records[chunk.chunk_id] = {
            "url": chunk.url,
            "hash": content_hash,
            "content": chunk.content,
            "embedding": embedding,
            "chunk_index": chunk.chunk_index,
            "total_chunks": chunk.total_chunks,
        }

    def get_hash(self, chunk_id: str) -> str | None:
        record = self.records.get(chunk_id)
        return record["hash"] if record else None

    def delete_by_url_prefix(self, keep_urls: set[str], prefix: str) -> int:
        self.delete_calls.append(("prefix", prefix, frozenset(keep_urls)))
        doomed = [
            cid for cid, r in self.records.items()
            if r["url"].startswith(prefix) and r["url"] not in keep_urls
        ]
        for cid in doomed:
            del self.records[cid]
        return len(doomed)

    def delete_by_url(self, url: str) -> int:
        self.delete_calls.append(("url", url))
        doomed = [cid for cid, r in self.records.items() if r["url"] == url]
        for cid in doomed:
            del self.records[cid]
        return len(doomed)

    def get_metadata(self, key: str, default: str | None = None) -> str | None:
        return self.metadata.get(key, default)

    def set_metadata(self, key: str, value: str) -> None:
        self.metadata[key] = value

    def stored_urls_by_prefix(self, prefix: str) -> list[str]:
        return sorted({r["url"] for r in self.records.values() if r["url"].startswith(prefix)})

    def chunk_hashes_by_url(self, url: str) -> list[str]:
        return sorted(r["hash"] for r in self.records.values() if r["url"] == url)

    def count(self) -> int:
        return len(self.records)

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fake renderer
# ---------------------------------------------------------------------------


class FakeSession(RenderSession):
    def __init__(self, renderer: FakeRenderer):
        self.renderer = renderer
        self.closed = False

    def render(self, url: str) -> RenderResult:
        self.renderer.rendered.append(url)
        page = self.renderer.pages.get(url)
        if page is None:
            raise HTTPStatusError(404, url)
        if isinstance(page, Exception):
            raise page
        html, links = page
        return RenderResult(html=html, final_url=url, links=list(links))

    def reset(self) -> None:
        if self.renderer.fail_reset:
            raise RuntimeError("reset hung")

    def close(self) -> None:
        self.closed = True
        self.renderer.closed_sessions += 1


class FakeRenderer(PageRenderer):
    """Serves ``pages[url] = (body, links)``; unknown URLs are 404s.

    A page value may also be an exception instance, which ``render`` raises.
    """

    def __init__(self, pages: dict | None = None, fail_reset: bool = False):
        self.pages: dict = pages or {}
        self.fail_reset = fail_reset
        self.rendered: list[str] = []
        self.opened = 0
        self.closed_sessions = 0

    def open(self) -> RenderSession:
        self.opened += 1
        return FakeSession(self)


class PassthroughExtractor(HtmlExtractor):
    """Treat page bodies as markdown already."""

    def to_markdown(self, html: str, url: str | None = None) -> str:
        return html


class UnreadableLoader(DocumentLoader):
    """Fails to load any file whose name is in ``broken``."""

    def __init__(self, broken: set[str]):
        super().__init__(PassthroughExtractor())
        self.broken = broken

    def load_file(self, path, encoding="utf-8"):
        if Path(path).name in self.broken:
            raise OSError(f"transient read failure: {path}")
        return super().load_file(path, encoding=encoding)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


SITE = "https://docs.example.com"


def page_markdown(title: str, words: int = 60) -> str:
    body = " ".join(f"{title.lower()}{i}" for i in range(words))
    return f"# {title}\n\n{body}\n"


@pytest.fixture
def embedder() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def website_source() -> WebsiteSource:
    return WebsiteSource(product_name="Example", version="1.0", url=f"{SITE}/")


@pytest.fixture
def three_page_site() -> dict:
    """``/`` links to ``/a`` and ``/b``; ``/a`` links to the removed ``/c``."""
    return {
        f"{SITE}/": (page_markdown("Home"), ["/a", "/b"]),
        f"{SITE}/a": (page_markdown("Alpha"), ["/c", "/"]),
        f"{SITE}/b": (page_markdown("Beta"), ["/a"]),
    }


@pytest.fixture
def context() -> SourceContext:
    return SourceContext(product_name="Example", version="1.0", url=f"{SITE}/guide")


@pytest.fixture
def sample_markdown() -> str:
    intro = " ".join(f"intro{i}" for i in range(120))
    install = " ".join(f"install{i}" for i in range(150))
    usage = " ".join(f"usage{i}" for i in range(150))
    return textwrap.dedent(f"""\
        # Guide

        {intro}

        ## Installation [](#installation)

        {install}

        ## Usage

        {usage}
        """)


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    d = tmp_path / "docs"
    (d / "nested").mkdir(parents=True)
    (d / "index.md").write_text(page_markdown("Index"), encoding="utf-8")
    (d / "notes.txt").write_text("plain notes " * 20, encoding="utf-8")
    (d / "nested" / "deep.md").write_text(page_markdown("Deep"), encoding="utf-8")
    (d / "image.png").write_bytes(b"\x89PNG\r\n")
    return d
