"""Breadth-first website crawler driving one reusable render session.

The scheduler owns the URL frontier, referrer tracking and broken-link
bookkeeping. Page content is converted to markdown and handed to a
callback; the caller decides what to do with it (chunk, embed, store).
"""

from __future__ import annotations

import logging
import socket
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from docsync.config import WebsiteSource
from docsync.crawler.renderer import PageRenderer, RenderResult
from docsync.crawler.session import ReusableSession
from docsync.crawler.sitemap import parse_sitemap
from docsync.documents.html import HtmlExtractor
from docsync.documents.loader import DocumentLoader
from docsync.errors import HTTPStatusError, NetworkError
from docsync.utils.urls import build_url, is_pdf_url, normalize_url, should_process_url

logger = logging.getLogger(__name__)

PageCallback = Callable[[str, str], None]
SitemapFetcher = Callable[[str], list[str]]

_NETWORK_MESSAGE_PATTERNS = ("getaddrinfo", "network", "timeout", "connection", "dns")


def is_network_error(exc: BaseException) -> bool:
    """True for DNS, connection, reset, unreachable and timeout failures."""
    if isinstance(exc, HTTPStatusError):
        return False
    if isinstance(exc, (NetworkError, httpx.TransportError, socket.gaierror,
                        ConnectionError, TimeoutError)):
        return True
    message = str(exc).lower()
    return any(p in message for p in _NETWORK_MESSAGE_PATTERNS)


# ---------------------------------------------------------------------------
# State and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrokenLink:
    source: str
    target: str

    @property
    def key(self) -> str:
        return f"{self.source} -> {self.target}"


@dataclass
class CrawlCounters:
    processed: int = 0
    processed_pdfs: int = 0
    skipped_extension: int = 0
    skipped_size: int = 0
    errors: int = 0


@dataclass
class CrawlState:
    """In-memory frontier for one crawl."""

    seed_url: str
    queue: deque[str] = field(default_factory=deque)
    queued: set[str] = field(default_factory=set)
    visited: set[str] = field(default_factory=set)
    referrers: dict[str, set[str]] = field(default_factory=dict)
    broken_links: list[BrokenLink] = field(default_factory=list)
    missing_urls: set[str] = field(default_factory=set)
    _broken_keys: set[str] = field(default_factory=set)

    def enqueue(self, url: str) -> bool:
        if url in self.queued or normalize_url(url) in self.visited:
            return False
        self.queue.append(url)
        self.queued.add(url)
        return True

    def pop(self) -> str:
        url = self.queue.popleft()
        self.queued.discard(url)
        return url

    def add_referrer(self, target: str, source: str) -> None:
        self.referrers.setdefault(normalize_url(target), set()).add(source)

    def referrers_of(self, url: str) -> set[str]:
        return self.referrers.get(normalize_url(url)) or {self.seed_url}

    def add_broken_link(self, source: str, target: str) -> None:
        link = BrokenLink(source, target)
        if link.key in self._broken_keys:
            return
        self._broken_keys.add(link.key)
        self.broken_links.append(link)


@dataclass
class CrawlResult:
    has_network_errors: bool
    broken_links: list[BrokenLink]
    missing_urls: set[str]
    counters: CrawlCounters
    visited: set[str] = field(default_factory=set)
    truncated: bool = False


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class CrawlScheduler:
    """Walk a site from a seed URL, one page at a time."""

    def __init__(
        self,
        renderer: PageRenderer,
        extractor: HtmlExtractor | None = None,
        loader: DocumentLoader | None = None,
        sitemap_fetcher: SitemapFetcher | None = None,
        max_pages: int | None = None,
    ):
        self.renderer = renderer
        self.extractor = extractor or HtmlExtractor()
        self.loader = loader or DocumentLoader(self.extractor)
        self.sitemap_fetcher = sitemap_fetcher or parse_sitemap
        self.max_pages = max_pages
        self.session: ReusableSession | None = None

    # ---- Public API ---------------------------------------------------

    def crawl(
        self,
        seed_url: str,
        source_config: WebsiteSource,
        on_page_content: PageCallback,
        visited_urls: set[str] | None = None,
    ) -> CrawlResult:
        """Crawl everything reachable under ``source_config.url``.

        ``on_page_content`` receives ``(normalized_url, markdown)`` for each
        page that passes the size gate. ``visited_urls`` is filled in place
        with normalized URLs.
        """
        state = CrawlState(seed_url=seed_url)
        if visited_urls is not None:
            state.visited = visited_urls
        counters = CrawlCounters()
        has_network_errors = False
        truncated = False
        scope = source_config.url

        state.enqueue(seed_url)
        state.add_referrer(seed_url, seed_url)
        if source_config.sitemap_url:
            self._seed_from_sitemap(state, source_config.sitemap_url, scope)

        logger.info("Starting crawl from %s with %d URLs in initial queue", seed_url, len(state.queue))
        rendered = 0

        self.session = ReusableSession(self.renderer)
        try:
            while state.queue:
                url = state.pop()
                normalized = normalize_url(url)
                if normalized in state.visited:
                    continue

                if self.max_pages is not None and rendered >= self.max_pages:
                    logger.warning("Reached max_pages=%d; stopping crawl", self.max_pages)
                    truncated = True
                    break

                state.visited.add(normalized)

                if not should_process_url(url):
                    logger.debug("Skipping URL with unsupported extension: %s", url)
                    counters.skipped_extension += 1
                    continue

                rendered += 1
                try:
                    self._process_url(url, normalized, state, counters, scope, source_config, on_page_content)
                except Exception as exc:
                    logger.error("Failed during processing or link discovery for %s: %s", url, exc)
                    counters.errors += 1
                    self.session.mark_for_recreation()

                    if isinstance(exc, HTTPStatusError) and exc.status_code == 404:
                        state.missing_urls.add(normalized)
                        for source in state.referrers_of(normalized):
                            state.add_broken_link(source, normalized)

                    if is_network_error(exc):
                        has_network_errors = True
                        logger.warning("Network error detected for %s, this may affect cleanup decisions", url)
        finally:
            self.session.close()

        logger.info(
            "Crawl completed. HTML Pages: %d, PDFs: %d, Skipped (Extension): %d, "
            "Skipped (Size): %d, Errors: %d",
            counters.processed, counters.processed_pdfs, counters.skipped_extension,
            counters.skipped_size, counters.errors,
        )
        if has_network_errors:
            logger.warning(
                "Network errors were encountered during crawling. "
                "Cleanup may be skipped to avoid removing valid chunks."
            )

        return CrawlResult(
            has_network_errors=has_network_errors,
            broken_links=list(state.broken_links),
            missing_urls=set(state.missing_urls),
            counters=counters,
            visited=set(state.visited),
            truncated=truncated,
        )

    # ---- Private ------------------------------------------------------

    def _seed_from_sitemap(self, state: CrawlState, sitemap_url: str, scope: str) -> None:
        before = len(state.queue)
        for url in self.sitemap_fetcher(sitemap_url):
            if url.startswith(scope):
                state.add_referrer(url, sitemap_url)
                if state.enqueue(url):
                    logger.debug("Adding URL from sitemap to queue: %s", url)
        logger.info("Added %d URLs from sitemap to the crawl queue", len(state.queue) - before)

    def _process_url(
        self,
        url: str,
        normalized: str,
        state: CrawlState,
        counters: CrawlCounters,
        scope: str,
        source_config: WebsiteSource,
        on_page_content: PageCallback,
    ) -> None:
        logger.info("Crawling: %s", url)
        page = self.session.acquire()
        result = page.render(url)

        content = self._to_markdown(url, result)
        if len(content) > source_config.max_size:
            logger.warning(
                "Content (%d chars) exceeds max size (%d). Skipping %s.",
                len(content), source_config.max_size, url,
            )
            counters.skipped_size += 1
        else:
            on_page_content(normalized, content)
            if result.is_pdf or is_pdf_url(url):
                counters.processed_pdfs += 1
            else:
                counters.processed += 1

        base = result.final_url or url
        new_links = 0
        for href in result.links:
            full_url = build_url(href, base)
            if not full_url or not full_url.startswith(scope):
                continue
            state.add_referrer(full_url, base)
            if state.enqueue(full_url):
                new_links += 1
        logger.debug("Found %d new links on %s", new_links, url)

        self.session.reset()

    def _to_markdown(self, url: str, result: RenderResult) -> str:
        if result.is_pdf or is_pdf_url(url):
            name = url.rstrip("/").rsplit("/", 1)[-1] or "document.pdf"
            if not name.lower().endswith(".pdf"):
                name += ".pdf"
            return self.loader.load_bytes(result.content, name).text
        return self.extractor.to_markdown(result.html, result.final_url or url)
