"""Reusable render session with explicit lifecycle states.

State machine::

    DISCONNECTED --acquire--> ACTIVE
    ACTIVE --render/reset error--> NEEDS_RECREATION
    NEEDS_RECREATION --acquire--> ACTIVE   (stale session closed first)
    any --close--> CLOSED
"""

from __future__ import annotations

import logging
from enum import StrEnum

from docsync.crawler.renderer import PageRenderer, RenderSession

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    DISCONNECTED = "disconnected"
    ACTIVE = "active"
    NEEDS_RECREATION = "needs_recreation"
    CLOSED = "closed"


class ReusableSession:
    """Owns at most one live ``RenderSession`` for the duration of a crawl."""

    def __init__(self, renderer: PageRenderer):
        self.renderer = renderer
        self.state = SessionState.DISCONNECTED
        self._session: RenderSession | None = None
        self.opened = 0

    def acquire(self) -> RenderSession:
        """Return a usable session, opening or recreating it lazily."""
        if self.state == SessionState.CLOSED:
            raise RuntimeError("Session already closed")

        if self.state == SessionState.NEEDS_RECREATION:
            logger.info("Recreating render session after previous error...")
            self._close_stale()
        elif self.state == SessionState.DISCONNECTED:
            logger.info("Opening render session...")

        if self._session is None:
            self._session = self.renderer.open()
            self.opened += 1
        self.state = SessionState.ACTIVE
        return self._session

    def mark_for_recreation(self) -> None:
        if self.state == SessionState.ACTIVE:
            self.state = SessionState.NEEDS_RECREATION

    def reset(self) -> None:
        """Clear page state; a failing reset means the session is stuck."""
        if self._session is None or self.state != SessionState.ACTIVE:
            return
        try:
            self._session.reset()
        except Exception as exc:
            logger.warning("Session reset failed (%s); will recreate", exc)
            self.state = SessionState.NEEDS_RECREATION

    def close(self) -> None:
        if self.state == SessionState.CLOSED:
            return
        self._close_stale()
        self.state = SessionState.CLOSED
        logger.debug("Render session closed")

    def __enter__(self) -> ReusableSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _close_stale(self) -> None:
        if self._session is None:
            return
        try:
            self._session.close()
        except Exception as exc:
            logger.debug("Ignoring error while closing stale session: %s", exc)
        self._session = None
