"""Embedding provider factory — registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from docsync.embeddings.base import EmbeddingProvider

if TYPE_CHECKING:
    from docsync.config import EmbeddingSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Provider registry: (provider_key, module_path, class_name)
# ---------------------------------------------------------------------------

_PROVIDER_REGISTRY: list[tuple[str, str, str]] = [
    ("openai", "docsync.embeddings.openai_provider", "OpenAIEmbeddingProvider"),
    ("custom", "docsync.embeddings.custom_provider", "CustomEmbeddingProvider"),
]

# Singleton cache
_provider_cache: dict[str, EmbeddingProvider] = {}


def get_embedding_provider(
    provider: str = "openai",
    **kwargs,
) -> EmbeddingProvider:
    """Get an embedding provider by name.

    Args:
        provider: One of ``openai``, ``custom``.
        **kwargs: Passed to the provider constructor.

    Returns:
        An ``EmbeddingProvider`` instance.
    """
    key = provider.lower()

    if not kwargs and key in _provider_cache:
        return _provider_cache[key]

    for reg_key, module_path, cls_name in _PROVIDER_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            instance = cls(**kwargs)
            if not kwargs:
                _provider_cache[key] = instance
            logger.info("Created embedding provider: %s", cls_name)
            return instance

    available = [k for k, _, _ in _PROVIDER_REGISTRY]
    raise ValueError(f"Unknown embedding provider '{provider}'. Available: {available}")


def provider_from_settings(settings: EmbeddingSettings) -> EmbeddingProvider:
    """Build the provider described by the ``embedding`` settings section."""
    common = {
        "model": settings.model,
        "api_key": settings.api_key,
        "max_retries": settings.max_retries,
        "base_delay": settings.base_delay,
    }
    if settings.provider.lower() == "custom":
        return get_embedding_provider(
            "custom",
            endpoint=settings.endpoint,
            dimension=settings.dimension,
            timeout=settings.timeout,
            **common,
        )
    return get_embedding_provider(settings.provider, dimensions=settings.dimension, **common)


def available_providers() -> list[str]:
    """Return names of registered embedding providers."""
    return [k for k, _, _ in _PROVIDER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _provider_cache.clear()
