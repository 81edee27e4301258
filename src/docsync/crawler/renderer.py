"""Page rendering — abstract session interface plus an httpx implementation.

A ``PageRenderer`` opens ``RenderSession`` objects. One session is reused
across a whole crawl; ``reset()`` clears per-page state between pages and
``close()`` releases the underlying connection pool.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from docsync.errors import HTTPStatusError, NetworkError, RenderTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; docsync crawler)"

_SKIPPED_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:")


@dataclass
class RenderResult:
    """Outcome of rendering one URL.

    Attributes:
        html: Decoded response body for HTML pages, empty for binary content.
        final_url: URL after redirects; links resolve against this.
        links: Raw ``href`` values found on the page.
        status: HTTP status of the final response.
        content: Raw body bytes (used for PDFs).
        content_type: Response ``Content-Type`` without parameters.
    """

    html: str
    final_url: str
    links: list[str] = field(default_factory=list)
    status: int = 200
    content: bytes = b""
    content_type: str = "text/html"

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"


class RenderSession(ABC):
    """A live rendering context (a browser tab, an HTTP client...)."""

    @abstractmethod
    def render(self, url: str) -> RenderResult:
        """Load ``url``.

        Raises:
            HTTPStatusError: For responses with status >= 400.
            NetworkError: For DNS, connection or timeout failures.
        """

    @abstractmethod
    def reset(self) -> None:
        """Drop per-page state before the next page."""

    @abstractmethod
    def close(self) -> None:
        """Release the session."""


class PageRenderer(ABC):
    """Factory for ``RenderSession`` objects."""

    @abstractmethod
    def open(self) -> RenderSession:
        """Open a fresh session."""

    @classmethod
    def renderer_name(cls) -> str:
        """Return human-readable renderer name."""
        return cls.__name__


# ---------------------------------------------------------------------------
# httpx implementation
# ---------------------------------------------------------------------------


def extract_links(html: str) -> list[str]:
    """Return every usable ``a[href]`` on the page, in document order."""
    soup = BeautifulSoup(html, "html.parser")
    links: list[str] = []
    for a in soup.select("a[href]"):
        href = a["href"].strip()
        if href and not href.startswith(_SKIPPED_HREF_PREFIXES):
            links.append(href)
    return links


class HttpxRenderSession(RenderSession):
    def __init__(self, client: httpx.Client):
        self._client = client

    def render(self, url: str) -> RenderResult:
        try:
            resp = self._client.get(url)
        except httpx.TimeoutException as exc:
            raise RenderTimeoutError(f"Timeout loading {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error loading {url}: {exc}") from exc

        if resp.status_code >= 400:
            raise HTTPStatusError(resp.status_code, str(resp.url))

        content_type = resp.headers.get("content-type", "text/html").split(";")[0].strip().lower()
        final_url = str(resp.url)

        if content_type == "application/pdf":
            return RenderResult(
                html="",
                final_url=final_url,
                status=resp.status_code,
                content=resp.content,
                content_type=content_type,
            )

        html = resp.text
        return RenderResult(
            html=html,
            final_url=final_url,
            links=extract_links(html),
            status=resp.status_code,
            content=resp.content,
            content_type=content_type,
        )

    def reset(self) -> None:
        self._client.cookies.clear()

    def close(self) -> None:
        self._client.close()


class HttpxPageRenderer(PageRenderer):
    """Fetch pages with ``httpx`` (no JavaScript execution)."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    def open(self) -> RenderSession:
        client = httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )
        logger.debug("Opened httpx render session (timeout=%ss)", self.timeout)
        return HttpxRenderSession(client)
