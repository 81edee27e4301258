"""Ingestion pipeline — per-source drivers and hash-aware chunk storage."""

from docsync.pipeline.ingest import IngestPipeline
from docsync.pipeline.schemas import ChunkStats, SourceReport

__all__ = [
    "ChunkStats",
    "IngestPipeline",
    "SourceReport",
]
