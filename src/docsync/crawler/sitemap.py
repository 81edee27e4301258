"""Sitemap parsing — ``urlset`` pages and nested ``sitemapindex`` files."""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MAX_SITEMAP_DEPTH = 5


def parse_sitemap_xml(xml: str) -> tuple[list[str], list[str]]:
    """Split a sitemap document into ``(page_urls, nested_sitemap_urls)``."""
    soup = BeautifulSoup(xml, "html.parser")
    pages = [loc.get_text(strip=True) for loc in soup.select("url > loc")]
    nested = [loc.get_text(strip=True) for loc in soup.select("sitemap > loc")]
    return [u for u in pages if u], [u for u in nested if u]


def parse_sitemap(
    sitemap_url: str,
    client: httpx.Client | None = None,
    _depth: int = 0,
) -> list[str]:
    """Fetch ``sitemap_url`` and return every page URL it lists.

    Sitemap indexes are followed recursively. Fetch errors are logged and
    yield an empty list so the crawl can still start from its seed.
    """
    owns_client = client is None
    client = client or httpx.Client(timeout=30.0, follow_redirects=True)
    logger.info("Parsing sitemap from %s", sitemap_url)
    try:
        try:
            resp = client.get(sitemap_url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Error parsing sitemap at %s: %s", sitemap_url, exc)
            return []

        urls, nested = parse_sitemap_xml(resp.text)
        for nested_url in nested:
            if _depth >= MAX_SITEMAP_DEPTH:
                logger.warning("Sitemap nesting too deep; ignoring %s", nested_url)
                continue
            logger.debug("Found nested sitemap: %s", nested_url)
            urls.extend(parse_sitemap(nested_url, client, _depth + 1))

        logger.info("Found %d URLs in sitemap %s", len(urls), sitemap_url)
        return urls
    finally:
        if owns_client:
            client.close()
