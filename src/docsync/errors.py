"""Error taxonomy shared across sources, crawler, stores and providers."""

from __future__ import annotations


class DocsyncError(Exception):
    """Base class for all docsync errors."""


class ConfigError(DocsyncError):
    """Configuration could not be loaded or validated. Fatal for the run."""


class SourceError(DocsyncError):
    """A source could not be set up (store, clone, credentials).

    Aborts the current source only; the run continues with the next one.
    """


class NetworkError(DocsyncError):
    """DNS, connection or timeout failure talking to a remote host."""


class RenderTimeoutError(NetworkError):
    """A page render or navigation did not finish in time."""


class RateLimitError(DocsyncError):
    """The remote API asked us to slow down."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class HTTPStatusError(DocsyncError):
    """A fetch completed with a status code >= 400."""

    def __init__(self, status_code: int, url: str, message: str | None = None):
        super().__init__(message or f"HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class StorageConflictError(DocsyncError):
    """Insert collided with an existing record and the update fallback failed."""


class EmbeddingFailure(DocsyncError):
    """The embedding provider gave up after its retry budget."""
