"""Plain-text splitters used by the code chunker.

``SyntaxAwareSplitter`` cuts source code on language constructs (classes,
functions, blocks) via langchain's recursive splitter; ``TokenWindowSplitter``
is the language-agnostic fallback that cuts fixed tiktoken windows.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import tiktoken
from langchain_text_splitters import Language, RecursiveCharacterTextSplitter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 512
DEFAULT_ENCODING = "cl100k_base"

# Code language name -> langchain ``Language`` value
_LANGCHAIN_LANGUAGES: dict[str, str] = {
    "typescript": "ts",
    "tsx": "ts",
    "javascript": "js",
    "python": "python",
    "go": "go",
    "rust": "rust",
    "java": "java",
    "kotlin": "kotlin",
    "swift": "swift",
    "c": "c",
    "cpp": "cpp",
    "csharp": "csharp",
    "ruby": "ruby",
    "php": "php",
    "scala": "scala",
    "html": "html",
    "markdown": "markdown",
}


def supports_language(language: str) -> bool:
    return language in _LANGCHAIN_LANGUAGES


class TextSplitter(ABC):
    """Interface for splitting a document into ordered text pieces."""

    @abstractmethod
    def split(self, text: str) -> list[str]:
        """Split ``text`` into pieces, preserving order."""


class TokenWindowSplitter(TextSplitter):
    """Fixed-size, non-overlapping windows of tiktoken tokens."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, encoding_name: str = DEFAULT_ENCODING):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be greater than 0")
        self.chunk_size = chunk_size
        self._encoding = tiktoken.get_encoding(encoding_name)

    def split(self, text: str) -> list[str]:
        if not text.strip():
            return []
        ids = self._encoding.encode(text, disallowed_special=())
        return [
            self._encoding.decode(ids[i : i + self.chunk_size])
            for i in range(0, len(ids), self.chunk_size)
        ]


class SyntaxAwareSplitter(TextSplitter):
    """Split on language-specific separators, sized in tiktoken tokens.

    Raises:
        ValueError: If ``language`` has no syntax-aware separators.
    """

    def __init__(
        self,
        language: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        encoding_name: str = DEFAULT_ENCODING,
    ):
        key = _LANGCHAIN_LANGUAGES.get(language)
        if key is None:
            raise ValueError(f"No syntax-aware separators for language '{language}'")

        separators = RecursiveCharacterTextSplitter.get_separators_for_language(Language(key))
        self.language = language
        self._splitter = RecursiveCharacterTextSplitter.from_tiktoken_encoder(
            encoding_name=encoding_name,
            chunk_size=chunk_size,
            chunk_overlap=0,
            separators=separators,
            is_separator_regex=True,
        )

    def split(self, text: str) -> list[str]:
        if not text.strip():
            return []
        return self._splitter.split_text(text)
