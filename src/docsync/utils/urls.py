"""URL helpers used by the crawler and the cleanup pass."""

from __future__ import annotations

import logging
import posixpath
from urllib.parse import urljoin, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

# Extensions the crawler will fetch; anything else is a static asset.
PROCESSABLE_EXTENSIONS = {".html", ".htm", ".pdf"}


def normalize_url(url: str) -> str:
    """Strip query string and fragment."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def get_url_prefix(url: str) -> str:
    """Return origin + path, the scope used for cleanup of a website source."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme:
        return url
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def build_url(href: str, current_url: str) -> str:
    """Resolve ``href`` against ``current_url``; empty string if unresolvable."""
    try:
        return urljoin(current_url, href)
    except ValueError:
        logger.debug("Could not resolve %r against %s", href, current_url)
        return ""


def url_extension(url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    return posixpath.splitext(path)[1].lower()


def is_pdf_url(url: str) -> bool:
    return url_extension(url) == ".pdf"


def should_process_url(url: str) -> bool:
    """True for extension-less paths and HTML/PDF documents."""
    ext = url_extension(url)
    return not ext or ext in PROCESSABLE_EXTENSIONS
