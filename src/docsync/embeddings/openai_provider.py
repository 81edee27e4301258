"""OpenAI embedding provider — text-embedding-3-small/large.

Reads the API key from ``OPENAI_API_KEY`` unless one is passed explicitly.
"""

from __future__ import annotations

import logging
from typing import Any

import openai

from docsync.embeddings.base import EmbeddingProvider
from docsync.embeddings.retry import embedding_retry
from docsync.errors import EmbeddingFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-large"

_DIMENSION_MAP = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

BATCH_SIZE = 2048  # OpenAI max batch size


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embed text via the OpenAI Embeddings API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        dimensions: int | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client: Any | None = None,
    ):
        self.model = model
        self._dimensions = dimensions or _DIMENSION_MAP.get(model, 1536)
        # SDK-level retries are disabled; backoff is handled by embedding_retry
        self._client: Any = client or openai.OpenAI(api_key=api_key, max_retries=0)
        self._create = embedding_retry(max_retries, base_delay)(self._create_batch)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        all_embeddings: list[list[float]] = []

        for i in range(0, len(texts), BATCH_SIZE):
            batch = texts[i : i + BATCH_SIZE]
            try:
                all_embeddings.extend(self._create(batch))
            except Exception as exc:
                logger.error("All OpenAI embedding attempts failed: %s", exc)
                raise EmbeddingFailure(f"OpenAI embedding failed: {exc}") from exc

        return all_embeddings

    @property
    def dimension(self) -> int:
        return self._dimensions

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _create_batch(self, batch: list[str]) -> list[list[float]]:
        resp = self._client.embeddings.create(
            model=self.model,
            input=batch,
        )
        # Sort by index to guarantee order
        sorted_data = sorted(resp.data, key=lambda x: x.index)
        return [d.embedding for d in sorted_data]
