"""Ingestion pipeline — source → markdown → chunk → hash-check → embed → store.

One ``IngestPipeline`` processes every configured source in order. Each
source opens its own store handle, and a failure in one source is logged
without stopping the run.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from docsync.chunking.base import BaseChunker
from docsync.chunking.factory import get_chunker
from docsync.chunking.schemas import Chunk, SourceContext
from docsync.config import (
    CodeSource,
    CrawlSettings,
    GithubSource,
    LocalDirectorySource,
    Settings,
    SourceConfig,
    WebsiteSource,
)
from docsync.crawler.renderer import HttpxPageRenderer, PageRenderer
from docsync.crawler.scheduler import CrawlScheduler
from docsync.documents.loader import DocumentLoader
from docsync.embeddings.base import EmbeddingProvider
from docsync.errors import EmbeddingFailure
from docsync.pipeline.schemas import ChunkStats, SourceReport
from docsync.sources.github_issues import GitHubIssuesClient
from docsync.sources.local_files import (
    file_url,
    scan_code_directory,
    scan_directory,
    url_scope,
)
from docsync.sync import git
from docsync.sync.commit_cursor import CommitShaCursor
from docsync.sync.date_cursor import DateCursor
from docsync.sync.mtime_cursor import MtimeCursor
from docsync.utils.hashing import generate_hash
from docsync.utils.urls import get_url_prefix
from docsync.vectorstore.base import StorageAdapter
from docsync.vectorstore.factory import open_store

logger = logging.getLogger(__name__)

StoreOpener = Callable[[SourceConfig, int], StorageAdapter]
IssuesClientFactory = Callable[[GithubSource], GitHubIssuesClient]


def github_blob_url(repo: str, branch: str, rel_path: str) -> str:
    return f"https://github.com/{repo}/blob/{branch}/{rel_path}"


def _default_issues_client(cfg: GithubSource) -> GitHubIssuesClient:
    return GitHubIssuesClient(cfg.repo, token=cfg.token)


class IngestPipeline:
    """Orchestrates ingestion of all sources into their vector stores."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store_opener: StoreOpener = open_store,
        renderer: PageRenderer | None = None,
        loader: DocumentLoader | None = None,
        crawl_settings: CrawlSettings | None = None,
        issues_client_factory: IssuesClientFactory = _default_issues_client,
        sitemap_fetcher: Callable[[str], list[str]] | None = None,
    ):
        self.embedding_provider = embedding_provider
        self.store_opener = store_opener
        self.crawl_settings = crawl_settings or CrawlSettings()
        self.renderer = renderer or HttpxPageRenderer(
            timeout=self.crawl_settings.timeout,
            user_agent=self.crawl_settings.user_agent,
        )
        self.loader = loader or DocumentLoader()
        self.issues_client_factory = issues_client_factory
        self.sitemap_fetcher = sitemap_fetcher

    # ------------------------------------------------------------------
    # Chunk storage
    # ------------------------------------------------------------------

    def store_chunks(self, chunks: list[Chunk], store: StorageAdapter) -> ChunkStats:
        """Embed and upsert chunks whose content hash differs from the store.

        A chunk that fails to embed or store is logged and skipped; the
        remaining chunks are still processed.
        """
        stats = ChunkStats(created=len(chunks))

        for chunk in chunks:
            content_hash = generate_hash(chunk.content)
            short_id = chunk.chunk_id[:8] + "..."

            try:
                stored_hash = store.get_hash(chunk.chunk_id)
            except Exception as exc:
                logger.error("Error checking stored hash for chunk %s: %s", short_id, exc)
                stored_hash = None

            if stored_hash == content_hash:
                logger.info("Skipping unchanged chunk: %s", short_id)
                stats.skipped_unchanged += 1
                continue

            try:
                embedding = self.embedding_provider.embed_texts([chunk.content])[0]
            except EmbeddingFailure as exc:
                logger.error("Embedding failed for chunk %s: %s", short_id, exc)
                stats.failed += 1
                continue

            try:
                store.upsert(chunk, embedding, content_hash)
            except Exception as exc:
                logger.error("Failed to store chunk %s: %s", short_id, exc)
                stats.failed += 1
                continue

            stats.embedded += 1
            logger.debug("Stored chunk %s in %s", short_id, store.store_name())

        return stats

    def ingest_document(
        self,
        text: str,
        context: SourceContext,
        store: StorageAdapter,
        chunker: BaseChunker,
    ) -> ChunkStats:
        """Chunk one document and store it, replacing superseded chunks.

        If the store holds chunks for ``context.url`` whose hashes no longer
        appear in the new chunk set, every record for the URL is dropped
        before the new chunks are written.
        """
        chunks = chunker.chunk(text, context)
        logger.info("Created %d chunks for %s", len(chunks), context.url)

        replaced = 0
        new_hashes = {generate_hash(c.content) for c in chunks}
        stale = set(store.chunk_hashes_by_url(context.url)) - new_hashes
        if stale:
            replaced = store.delete_by_url(context.url)
            logger.info("Content changed for %s; dropped %d superseded records", context.url, replaced)

        stats = self.store_chunks(chunks, store)
        stats.replaced_records = replaced
        return stats

    # ------------------------------------------------------------------
    # Source drivers
    # ------------------------------------------------------------------

    def process_website(self, cfg: WebsiteSource) -> SourceReport:
        report = SourceReport(source=cfg.label)
        chunker = get_chunker("markdown")
        scheduler = CrawlScheduler(
            self.renderer,
            loader=self.loader,
            extractor=self.loader.html_extractor,
            sitemap_fetcher=self.sitemap_fetcher,
            max_pages=self.crawl_settings.max_pages,
        )

        with self.store_opener(cfg, self.embedding_provider.dimension) as store:
            visited: set[str] = set()

            def on_page(url: str, content: str) -> None:
                logger.info("Processing content from %s (%d chars markdown)", url, len(content))
                context = SourceContext(cfg.product_name, cfg.version, url)
                try:
                    report.chunks += self.ingest_document(content, context, store, chunker)
                except Exception as exc:
                    logger.error("Error during chunking or embedding for %s: %s", url, exc)
                    report.warnings.append(f"{url}: {exc}")
                    return
                report.documents += 1

            result = scheduler.crawl(cfg.url, cfg, on_page, visited)

            for link in result.broken_links:
                logger.warning("Broken link: %s", link.key)
                report.broken_links.append(link.key)

            if result.has_network_errors:
                logger.warning("Skipping cleanup for %s due to network errors", cfg.url)
                report.cleanup_skipped = True
            elif result.truncated:
                logger.warning("Skipping cleanup for %s: crawl stopped at max_pages", cfg.url)
                report.cleanup_skipped = True
            else:
                prefix = get_url_prefix(cfg.url)
                keep = visited - result.missing_urls
                logger.info("Running cleanup for %s (%d live URLs)", prefix, len(keep))
                report.deleted = store.delete_by_url_prefix(keep, prefix)

        logger.info("Finished processing website: %s", cfg.url)
        return report

    def process_github_issues(self, cfg: GithubSource) -> SourceReport:
        report = SourceReport(source=cfg.label)
        chunker = get_chunker("markdown")

        with self.store_opener(cfg, self.embedding_provider.dimension) as store:
            cursor = DateCursor(store, cfg.repo, cfg.start_date)
            scope = cursor.scope_work()
            client = self.issues_client_factory(cfg)
            try:
                for url, markdown in client.iter_issue_documents(scope.since):
                    context = SourceContext(cfg.product_name or cfg.repo, cfg.version, url)
                    try:
                        report.chunks += self.ingest_document(markdown, context, store, chunker)
                        report.documents += 1
                    except Exception as exc:
                        logger.error("Error processing issue %s: %s", url, exc)
            finally:
                client.close()
            cursor.commit()

        logger.info("Successfully processed %d issues for %s", report.documents, cfg.repo)
        return report

    def process_local_directory(self, cfg: LocalDirectorySource) -> SourceReport:
        report = SourceReport(source=cfg.label)
        chunker = get_chunker("markdown")

        with self.store_opener(cfg, self.embedding_provider.dimension) as store:

            def on_file(path: str, content: str) -> None:
                url = file_url(path, cfg.path, cfg.url_rewrite_prefix)
                logger.info("Processing content from %s (%d chars)", path, len(content))
                context = SourceContext(cfg.product_name, cfg.version, url)
                report.chunks += self.ingest_document(content, context, store, chunker)
                report.documents += 1

            result = scan_directory(cfg, on_file, self.loader)

            if result.incomplete:
                logger.warning("Skipping cleanup for %s: some directories could not be read", cfg.path)
                report.cleanup_skipped = True
            else:
                keep = {file_url(p, cfg.path, cfg.url_rewrite_prefix) for p in result.live_files}
                prefix = url_scope(cfg.path, cfg.url_rewrite_prefix)
                logger.info("Running cleanup for local directory %s", cfg.path)
                report.deleted = store.delete_by_url_prefix(keep, prefix)

        logger.info("Finished processing local directory: %s", cfg.path)
        return report

    def process_code_source(self, cfg: CodeSource) -> SourceReport:
        if cfg.source == "github":
            return self._process_code_repo(cfg)
        return self._process_code_directory(cfg)

    def process_source(self, cfg: SourceConfig) -> SourceReport:
        logger.info("Starting processing for %s", cfg.label)
        if isinstance(cfg, WebsiteSource):
            return self.process_website(cfg)
        if isinstance(cfg, GithubSource):
            return self.process_github_issues(cfg)
        if isinstance(cfg, LocalDirectorySource):
            return self.process_local_directory(cfg)
        if isinstance(cfg, CodeSource):
            return self.process_code_source(cfg)
        raise ValueError(f"Unknown source type: {type(cfg).__name__}")

    def run(self, settings: Settings, only: str | None = None) -> list[SourceReport]:
        """Process every configured source sequentially.

        Args:
            settings: Loaded settings.
            only: Restrict the run to sources whose product name or label
                matches.
        """
        reports: list[SourceReport] = []
        for cfg in settings.sources:
            if only and only not in (cfg.product_name, cfg.label):
                continue
            try:
                reports.append(self.process_source(cfg))
            except Exception as exc:
                logger.error("Source %s failed: %s", cfg.label, exc)
                reports.append(SourceReport(source=cfg.label, error=str(exc)))
        return reports

    # ------------------------------------------------------------------
    # Code sources
    # ------------------------------------------------------------------

    def _code_file_handler(
        self,
        cfg: CodeSource,
        root: Path,
        store: StorageAdapter,
        report: SourceReport,
        url_for: Callable[[str, str], str],
        branch: str | None = None,
    ) -> Callable[[str, str], None]:
        chunker = get_chunker("code", chunk_size=cfg.chunk_size)

        def on_file(path: str, content: str) -> None:
            rel = Path(path).relative_to(root).as_posix()
            context = SourceContext(
                cfg.product_name,
                cfg.version,
                url_for(path, rel),
                branch=branch,
                repo=cfg.repo,
                file_path=rel,
            )
            report.chunks += self.ingest_document(content, context, store, chunker)
            report.documents += 1

        return on_file

    def _process_code_directory(self, cfg: CodeSource) -> SourceReport:
        report = SourceReport(source=cfg.label)
        root = Path(cfg.path)

        def url_for(path: str, rel: str) -> str:
            return file_url(path, cfg.path, cfg.url_rewrite_prefix)

        with self.store_opener(cfg, self.embedding_provider.dimension) as store:
            cursor = MtimeCursor(store, cfg.path)
            scope = cursor.scope_work()
            tracked: set[str] = set()

            result = scan_code_directory(
                root,
                cfg,
                self._code_file_handler(cfg, root, store, report, url_for),
                mtime_cutoff=scope.mtime_cutoff,
                track_files=tracked,
            )

            if result.incomplete:
                logger.warning("Keeping records for unlisted files in %s: scan was incomplete", cfg.path)
                report.cleanup_skipped = True
                tracked |= cursor.removed_files(tracked)

            for path in sorted(cursor.removed_files(tracked)):
                url = url_for(path, "")
                deleted = store.delete_by_url(url)
                logger.info("Removed %d records for deleted file %s", deleted, path)
                report.deleted += deleted

            cursor.record(result.max_mtime, tracked)
            cursor.commit()

        logger.info("Finished processing code directory: %s", cfg.path)
        return report

    def _process_code_repo(self, cfg: CodeSource) -> SourceReport:
        report = SourceReport(source=cfg.label)
        token = cfg.token or os.getenv("GITHUB_TOKEN")
        repo_dir = Path(cfg.clone_dir) / cfg.repo.replace("/", "_")

        git.clone_or_fetch(git.repo_clone_url(cfg.repo, token), repo_dir, cfg.branch)
        branch = cfg.branch or git.current_branch(repo_dir)

        def url_for(path: str, rel: str) -> str:
            return github_blob_url(cfg.repo, branch, rel)

        with self.store_opener(cfg, self.embedding_provider.dimension) as store:
            cursor = CommitShaCursor(store, cfg.repo, repo_dir)
            scope = cursor.scope_work()
            if scope.is_empty:
                logger.info("No changes in %s since last run", cfg.repo)
                return report

            allowed = None if scope.full_rescan else {str(repo_dir / p) for p in scope.changed}
            result = scan_code_directory(
                repo_dir,
                cfg,
                self._code_file_handler(cfg, repo_dir, store, report, url_for, branch=branch),
                allowed_files=allowed,
            )

            if scope.full_rescan and result.incomplete:
                logger.warning("Skipping cleanup for %s: some directories could not be read", cfg.repo)
                report.cleanup_skipped = True
            elif scope.full_rescan:
                keep = {
                    url_for(p, Path(p).relative_to(repo_dir).as_posix())
                    for p in result.live_files
                }
                prefix = github_blob_url(cfg.repo, branch, "")
                report.deleted = store.delete_by_url_prefix(keep, prefix)
            else:
                for rel in sorted(scope.removed):
                    deleted = store.delete_by_url(url_for("", rel))
                    logger.info("Removed %d records for deleted file %s", deleted, rel)
                    report.deleted += deleted

            cursor.commit()

        logger.info("Finished processing code repository: %s", cfg.repo)
        return report
