"""Website crawling — frontier scheduling over a reusable render session."""

from docsync.crawler.renderer import HttpxPageRenderer, PageRenderer, RenderResult, RenderSession
from docsync.crawler.scheduler import BrokenLink, CrawlResult, CrawlScheduler, is_network_error
from docsync.crawler.session import ReusableSession, SessionState

__all__ = [
    "BrokenLink",
    "CrawlResult",
    "CrawlScheduler",
    "HttpxPageRenderer",
    "PageRenderer",
    "RenderResult",
    "RenderSession",
    "ReusableSession",
    "SessionState",
    "is_network_error",
]
