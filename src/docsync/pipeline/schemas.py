"""Data models for ingestion runs."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ChunkStats:
    """Per-chunk outcome counts for one document or source."""

    created: int = 0
    embedded: int = 0
    skipped_unchanged: int = 0
    failed: int = 0
    replaced_records: int = 0

    def __iadd__(self, other: ChunkStats) -> ChunkStats:
        self.created += other.created
        self.embedded += other.embedded
        self.skipped_unchanged += other.skipped_unchanged
        self.failed += other.failed
        self.replaced_records += other.replaced_records
        return self


@dataclass
class SourceReport:
    """Result of processing one configured source."""

    source: str
    documents: int = 0
    chunks: ChunkStats = field(default_factory=ChunkStats)
    deleted: int = 0
    cleanup_skipped: bool = False
    broken_links: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
