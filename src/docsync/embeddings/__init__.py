"""Embedding providers — OpenAI and OpenAI-compatible endpoints."""

from docsync.embeddings.base import EmbeddingProvider
from docsync.embeddings.factory import available_providers, get_embedding_provider

__all__ = [
    "EmbeddingProvider",
    "available_providers",
    "get_embedding_provider",
]
