"""Sync cursors — per-source watermarks persisted in the store."""

from docsync.sync.base import SyncCursor, WorkScope
from docsync.sync.commit_cursor import CommitShaCursor
from docsync.sync.date_cursor import DateCursor
from docsync.sync.mtime_cursor import MtimeCursor

__all__ = [
    "CommitShaCursor",
    "DateCursor",
    "MtimeCursor",
    "SyncCursor",
    "WorkScope",
]
