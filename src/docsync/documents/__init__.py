"""Document conversion — files and HTML to markdown."""

from docsync.documents.html import HtmlExtractor
from docsync.documents.loader import DocumentLoader
from docsync.documents.schemas import LoadResult

__all__ = [
    "DocumentLoader",
    "HtmlExtractor",
    "LoadResult",
]
