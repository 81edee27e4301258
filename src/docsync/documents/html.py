"""HTML to markdown extraction.

trafilatura pulls the main content out of a page (dropping navigation,
footers and cookie banners). Pages where it finds too little text fall
back to a plain BeautifulSoup walk that still keeps headings, so the
chunker has a hierarchy to work with.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup
from trafilatura import extract

logger = logging.getLogger(__name__)

MIN_EXTRACTED_CHARS = 40

_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "pre", "td", "th"]
_NOISE_TAGS = ["script", "style", "noscript", "nav", "footer", "header", "svg"]
_BLANK_RUNS = re.compile(r"\n{3,}")


class HtmlExtractor:
    """Convert rendered HTML into markdown text."""

    def __init__(self, include_links: bool = False, include_tables: bool = True):
        self.include_links = include_links
        self.include_tables = include_tables

    def to_markdown(self, html: str, url: str | None = None) -> str:
        if not html or not html.strip():
            return ""

        md = extract(
            html,
            url=url,
            output_format="markdown",
            include_formatting=True,
            include_links=self.include_links,
            include_tables=self.include_tables,
            include_comments=False,
        )
        if md and len(md.strip()) >= MIN_EXTRACTED_CHARS:
            return _BLANK_RUNS.sub("\n\n", md).strip()

        logger.debug("trafilatura found little content for %s; using soup fallback", url)
        return soup_to_markdown(html)


def soup_to_markdown(html: str) -> str:
    """Flatten HTML into markdown-ish text, keeping heading levels."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()

    root = soup.find("main") or soup.find("article") or soup.body or soup
    lines: list[str] = []
    for el in root.find_all(_BLOCK_TAGS):
        # Nested blocks (p inside li) are emitted by their outermost block
        if el.find_parent(_BLOCK_TAGS) is not None:
            continue
        if el.name == "pre":
            code = el.get_text()
            if code.strip():
                lines.append(f"```\n{code.rstrip()}\n```")
            continue
        text = " ".join(el.get_text(" ").split())
        if not text:
            continue
        if el.name.startswith("h"):
            lines.append(f"{'#' * int(el.name[1])} {text}")
        elif el.name == "li":
            lines.append(f"- {text}")
        else:
            lines.append(text)

    if not lines:
        return " ".join(root.get_text(" ").split())
    return "\n\n".join(lines)
