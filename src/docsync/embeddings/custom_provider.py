"""Custom embedding provider — any OpenAI-compatible ``/embeddings`` endpoint.

POSTs ``{"model": ..., "input": [...]}`` and expects
``{"data": [{"embedding": [...]}, ...]}`` back. Authenticates with a bearer
token (``OPENAI_API_KEY`` by default).
"""

from __future__ import annotations

import logging
import os

import httpx

from docsync.embeddings.base import EmbeddingProvider
from docsync.embeddings.retry import embedding_retry
from docsync.errors import ConfigError, EmbeddingFailure

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-large"
DEFAULT_DIM = 3072


class CustomEmbeddingProvider(EmbeddingProvider):
    """Embed text via a self-hosted OpenAI-compatible server."""

    def __init__(
        self,
        endpoint: str | None = None,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        dimension: int = DEFAULT_DIM,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        transport: httpx.BaseTransport | None = None,
    ):
        endpoint = endpoint or os.getenv("CUSTOM_ENDPOINT")
        if not endpoint:
            raise ConfigError("Custom embedding provider requires an endpoint (CUSTOM_ENDPOINT)")
        if not httpx.URL(endpoint).scheme.startswith("http"):
            raise ConfigError(f"Invalid custom embedding endpoint URL: {endpoint}")

        self.endpoint = endpoint
        self.model = model
        self._dimension = dimension

        headers = {"Content-Type": "application/json"}
        token = api_key or os.getenv("OPENAI_API_KEY")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)
        self._post = embedding_retry(max_retries, base_delay)(self._post_batch)

        logger.info("Initialized custom embedding provider: %s (model=%s)", endpoint, model)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            return self._post(texts)
        except Exception as exc:
            logger.error("All custom embedding attempts failed: %s", exc)
            raise EmbeddingFailure(f"Custom embedding failed: {exc}") from exc

    @property
    def dimension(self) -> int:
        return self._dimension

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _post_batch(self, texts: list[str]) -> list[list[float]]:
        logger.debug("Creating embeddings for %d texts", len(texts))
        resp = self._client.post(self.endpoint, json={"model": self.model, "input": texts})
        resp.raise_for_status()
        data = resp.json()

        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise ValueError("Invalid response format from custom embedding endpoint")

        embeddings = []
        for item in data["data"]:
            vector = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(vector, list):
                raise ValueError("Invalid embedding format in response")
            embeddings.append(vector)
        return embeddings
