"""Commit SHA watermark for code sources backed by a git checkout."""

from __future__ import annotations

import logging
from pathlib import Path

from docsync.errors import SourceError
from docsync.sync import git
from docsync.sync.base import SyncCursor, WorkScope
from docsync.vectorstore.base import StorageAdapter

logger = logging.getLogger(__name__)


class CommitShaCursor(SyncCursor):
    """Stores ``last_commit_<repo>`` and diffs against HEAD on the next pass."""

    def __init__(self, store: StorageAdapter, repo: str, repo_dir: str | Path):
        super().__init__(store, repo)
        self.repo_dir = Path(repo_dir)
        self._head: str | None = None

    @property
    def key(self) -> str:
        return f"last_commit_{self.identity}"

    def load(self) -> str | None:
        return self.store.get_metadata(self.key) or None

    def scope_work(self) -> WorkScope:
        self._head = git.head_sha(self.repo_dir)
        previous = self.load()

        if previous is None:
            logger.info("No stored commit for %s; full rescan", self.identity)
            return WorkScope(full_rescan=True)

        if previous == self._head:
            logger.info("%s unchanged at %s", self.identity, self._head[:12])
            return WorkScope(full_rescan=False)

        try:
            changed, removed = self._diff_with_deepening(previous)
        except SourceError as exc:
            logger.warning(
                "Could not diff %s..%s (%s); falling back to full rescan",
                previous[:12], self._head[:12], exc,
            )
            return WorkScope(full_rescan=True)

        logger.info(
            "%s: %d changed, %d removed since %s",
            self.identity, len(changed), len(removed), previous[:12],
        )
        return WorkScope(full_rescan=False, changed=changed, removed=removed)

    def commit(self) -> None:
        head = self._head or git.head_sha(self.repo_dir)
        self.store.set_metadata(self.key, head)
        logger.info("Updated %s to %s", self.key, head[:12])

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _diff_with_deepening(self, previous: str) -> tuple[set[str], set[str]]:
        if git.has_commit(self.repo_dir, previous):
            return git.diff_name_status(self.repo_dir, previous, self._head)

        for step in git.DEEPEN_STEPS:
            logger.info("Commit %s not available locally; fetching %s", previous[:12], step)
            try:
                git.deepen(self.repo_dir, step)
            except SourceError as exc:
                logger.debug("Fetch %s failed: %s", step, exc)
                continue
            if git.has_commit(self.repo_dir, previous):
                return git.diff_name_status(self.repo_dir, previous, self._head)

        raise SourceError(f"commit {previous} not found after deepening history")
