"""Date watermark for API sources (GitHub issues)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from docsync.sync.base import SyncCursor, WorkScope
from docsync.vectorstore.base import StorageAdapter

logger = logging.getLogger(__name__)

DEFAULT_START_DATE = "2025-01-01"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class DateCursor(SyncCursor):
    """Stores ``last_run_<repo>`` as an ISO-8601 UTC timestamp."""

    def __init__(
        self,
        store: StorageAdapter,
        repo: str,
        start_date: str | None = None,
    ):
        super().__init__(store, repo)
        self.default = f"{start_date or DEFAULT_START_DATE}T00:00:00Z"

    @property
    def key(self) -> str:
        return f"last_run_{self.identity}"

    def load(self) -> str:
        value = self.store.get_metadata(self.key, self.default)
        return value or self.default

    def scope_work(self) -> WorkScope:
        since = self.load()
        logger.info("Syncing %s since %s", self.identity, since)
        return WorkScope(full_rescan=False, since=since)

    def commit(self, now: str | None = None) -> None:
        value = now or utc_now_iso()
        self.store.set_metadata(self.key, value)
        logger.info("Updated %s to %s", self.key, value)
