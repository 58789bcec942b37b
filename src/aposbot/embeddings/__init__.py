"""Text embedding abstraction."""

from aposbot.embeddings.provider import EmbeddingProvider, EmbeddingProviderError

__all__ = ["EmbeddingProvider", "EmbeddingProviderError"]
