"""Abstract base class for per-source sync watermarks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from docsync.vectorstore.base import StorageAdapter


@dataclass
class WorkScope:
    """What a source driver has to visit on this pass.

    ``full_rescan`` means every item is in scope and ``changed`` is ignored.
    Otherwise only ``changed`` items are revisited and ``removed`` items
    are deleted.
    """

    full_rescan: bool = True
    changed: set[str] = field(default_factory=set)
    removed: set[str] = field(default_factory=set)
    since: str | None = None
    mtime_cutoff: float | None = None

    @property
    def is_empty(self) -> bool:
        return not self.full_rescan and not self.changed and not self.removed


def cursor_identity(identity: str) -> str:
    """Make an identity safe for use inside a metadata key."""
    return identity.replace("/", "_")


class SyncCursor(ABC):
    """A watermark persisted through the store's metadata API.

    ``scope_work`` reads the stored watermark and decides what to visit.
    The new watermark is only written by ``commit``, which drivers call
    after a pass has finished.
    """

    def __init__(self, store: StorageAdapter, identity: str):
        self.store = store
        self.identity = cursor_identity(identity)

    @abstractmethod
    def load(self) -> str | None:
        """Return the stored watermark (or the default)."""

    @abstractmethod
    def scope_work(self, *args, **kwargs) -> WorkScope:
        """Compute the work scope for this pass."""

    @abstractmethod
    def commit(self) -> None:
        """Persist the watermark for the pass that just finished."""

    @classmethod
    def cursor_name(cls) -> str:
        """Return human-readable cursor name."""
        return cls.__name__
