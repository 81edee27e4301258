"""Modification-time watermark for local code directories.

Two keys are stored per directory: ``last_mtime_<id>`` (the newest mtime
seen, in epoch seconds) and ``tracked_files_<id>`` (a JSON list of every
file that matched the filters). Files that disappear from the tracked set
are reported as removed.
"""

from __future__ import annotations

import json
import logging

from docsync.sync.base import SyncCursor, WorkScope
from docsync.vectorstore.base import StorageAdapter

logger = logging.getLogger(__name__)


class MtimeCursor(SyncCursor):
    def __init__(self, store: StorageAdapter, identity: str):
        super().__init__(store, identity)
        self._previous_files: set[str] = set()
        self._max_mtime: float | None = None
        self._files: set[str] | None = None

    @property
    def key(self) -> str:
        return f"last_mtime_{self.identity}"

    @property
    def files_key(self) -> str:
        return f"tracked_files_{self.identity}"

    def load(self) -> str | None:
        return self.store.get_metadata(self.key) or None

    def tracked_files(self) -> set[str]:
        raw = self.store.get_metadata(self.files_key)
        if not raw:
            return set()
        try:
            return set(json.loads(raw))
        except (ValueError, TypeError):
            logger.warning("Ignoring corrupt %s value", self.files_key)
            return set()

    def scope_work(self) -> WorkScope:
        raw = self.load()
        self._previous_files = self.tracked_files()

        cutoff: float | None = None
        if raw is not None:
            try:
                cutoff = float(raw)
            except ValueError:
                logger.warning("Ignoring corrupt %s value %r", self.key, raw)

        if cutoff is None:
            logger.info("No stored mtime for %s; full rescan", self.identity)
            return WorkScope(full_rescan=True)
        return WorkScope(full_rescan=False, mtime_cutoff=cutoff)

    def removed_files(self, current_files: set[str]) -> set[str]:
        """Tracked paths from the previous pass that no longer exist."""
        return self._previous_files - current_files

    def record(self, max_mtime: float, files: set[str]) -> None:
        """Remember the results of the scan for ``commit``."""
        try:
            previous = float(self.load() or 0)
        except ValueError:
            previous = 0.0
        self._max_mtime = max(max_mtime, previous)
        self._files = set(files)

    def commit(self) -> None:
        if self._files is None or self._max_mtime is None:
            raise RuntimeError("MtimeCursor.commit() called before record()")
        self.store.set_metadata(self.key, repr(self._max_mtime))
        self.store.set_metadata(self.files_key, json.dumps(sorted(self._files)))
        logger.info(
            "Updated %s to %s (%d tracked files)",
            self.key, self._max_mtime, len(self._files),
        )
