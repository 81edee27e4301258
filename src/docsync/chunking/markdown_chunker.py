"""Heading-aware markdown chunker.

Scans the document line by line, tracking the heading hierarchy. Small
sections are merged with their siblings and children until they reach a
minimum size; oversized sections are split into overlapping windows. Every
chunk is prefixed with a ``[Topic: a > b]`` breadcrumb so that queries about
a parent topic still match the child text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from docsync.chunking.base import BaseChunker
from docsync.chunking.schemas import Chunk, ChunkMetadata, SourceContext, stamp_totals
from docsync.utils.hashing import generate_hash

logger = logging.getLogger(__name__)

MAX_TOKENS = 1000
MIN_TOKENS = 150
OVERLAP_PERCENT = 0.1

_TOKEN_SPLIT = re.compile(r"(\s+)")
_HEADING_PREFIX = re.compile(r"^#+\s*")
_ANCHOR_LINK = re.compile(r"\[.*?\]\(#[^)]*\)")
_EMPTY_ANCHOR = re.compile(r"\[\]\(#[^)]*\)")


def tokenize(text: str) -> list[str]:
    """Split into word and whitespace tokens; ``"".join`` restores the text."""
    return [t for t in _TOKEN_SPLIT.split(text) if t]


def count_tokens(text: str) -> int:
    return len(tokenize(text))


def clean_heading(line: str) -> str:
    """Strip the ``#`` markers and anchor-link artifacts from a heading line."""
    text = _HEADING_PREFIX.sub("", line)
    text = _ANCHOR_LINK.sub("", text)
    text = _EMPTY_ANCHOR.sub("", text)
    return text.strip()


def heading_level(line: str) -> int:
    return len(line) - len(line.lstrip("#"))


@dataclass
class _BufferedHeading:
    level: int
    text: str


@dataclass
class _ScanState:
    buffer: str = ""
    hierarchy: list[str] = field(default_factory=list)
    headings: list[_BufferedHeading] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)

    def deepest_level(self) -> int:
        return max((h.level for h in self.headings), default=0)

    def enter_heading(self, level: int, text: str) -> None:
        # Entering a heading clears any deeper levels left from the previous subtree.
        del self.hierarchy[level - 1:]
        while len(self.hierarchy) < level - 1:
            self.hierarchy.append("")
        self.hierarchy.append(text)
        self.headings.append(_BufferedHeading(level, text))

    def topic_hierarchy(self) -> tuple[str, ...]:
        """Breadcrumb for the buffered text.

        When several sibling headings at the deepest buffered level were
        merged, the chunk is labelled by their parent. Otherwise the current
        hierarchy is used as is.
        """
        deepest = self.deepest_level()
        siblings = sum(1 for h in self.headings if h.level == deepest)
        if siblings > 1 and deepest > 1:
            return tuple(self.hierarchy[: deepest - 1])
        return tuple(self.hierarchy)

    def reset_buffer(self) -> None:
        self.buffer = ""
        self.headings = []


class MarkdownChunker(BaseChunker):
    """Split markdown on headings with merge and overlap-split policies."""

    def __init__(
        self,
        max_tokens: int = MAX_TOKENS,
        min_tokens: int = MIN_TOKENS,
        overlap_percent: float = OVERLAP_PERCENT,
    ):
        if min_tokens > max_tokens:
            raise ValueError("min_tokens must not exceed max_tokens")
        self.max_tokens = max_tokens
        self.min_tokens = min_tokens
        self.overlap = int(max_tokens * overlap_percent)

    def chunk(self, text: str, context: SourceContext) -> list[Chunk]:
        state = _ScanState()

        for line in text.split("\n"):
            if line.startswith("#"):
                level = heading_level(line)
                heading = clean_heading(line)

                buffered = count_tokens(state.buffer.strip())
                merge = (
                    0 < buffered < self.min_tokens
                    and bool(state.headings)
                    and level >= state.deepest_level()
                )
                if buffered and not merge:
                    self._flush(state, context)

                state.enter_heading(level, heading)
                state.buffer += f"{line}\n"
            else:
                state.buffer += f"{line}\n"
                # Safety valve for long sections without sub-headings
                if count_tokens(state.buffer) >= self.max_tokens:
                    self._flush(state, context)

        self._flush(state, context, force=True)
        stamp_totals(state.chunks)

        logger.debug(
            "MarkdownChunker produced %d chunks for %s",
            len(state.chunks), context.url,
        )
        return state.chunks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _flush(self, state: _ScanState, context: SourceContext, force: bool = False) -> None:
        body = state.buffer.strip()
        if not body:
            return

        tokens = tokenize(body)
        if len(tokens) < self.min_tokens and not force:
            return

        topic = state.topic_hierarchy()

        if len(tokens) > self.max_tokens:
            step = self.max_tokens - self.overlap
            start = 0
            while start < len(tokens):
                window = tokens[start : start + self.max_tokens]
                state.chunks.append(self._make_chunk("".join(window), topic, context))
                if start + self.max_tokens >= len(tokens):
                    break
                start += step
        else:
            state.chunks.append(self._make_chunk(body, topic, context))

        state.reset_buffer()

    @staticmethod
    def _make_chunk(body: str, hierarchy: tuple[str, ...], context: SourceContext) -> Chunk:
        crumbs = tuple(h for h in hierarchy if h)
        prefix = f"[Topic: {' > '.join(crumbs)}]\n" if crumbs else ""
        searchable = prefix + body.strip()
        chunk_id = generate_hash(searchable)

        meta = ChunkMetadata(
            product_name=context.product_name,
            version=context.version,
            url=context.url,
            chunk_id=chunk_id,
            hash=chunk_id,
            heading_hierarchy=crumbs,
            section=(hierarchy[-1] if hierarchy else "") or "Introduction",
            branch=context.branch,
            repo=context.repo,
        )
        return Chunk(content=searchable, metadata=meta, token_count=count_tokens(searchable))
