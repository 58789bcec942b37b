"""LiteLLM-based embedding provider with an in-memory cache."""

import logging
from collections import OrderedDict

from litellm import aembedding
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
    Timeout,
)

from aposbot.constants.llm import EMBEDDING_CACHE_MAX_ENTRIES, EMBEDDING_MODEL

logger = logging.getLogger(__name__)


class EmbeddingProviderError(Exception):
    """Raised when the embedding provider fails to return a vector."""

    pass


class EmbeddingProvider:
    """Turns text into embedding vectors.

    Vectors are cached by exact text, so repeated questions and chunks are
    embedded once. The cache is bounded; the least recently used entry is
    evicted when it is full. Concurrent misses for the same text may both
    call the provider, and the later result simply overwrites the earlier.
    """

    def __init__(
        self,
        model: str = EMBEDDING_MODEL,
        api_key: str | None = None,
        cache_max_entries: int = EMBEDDING_CACHE_MAX_ENTRIES,
    ) -> None:
        """Initialize the provider.

        Args:
            model: LiteLLM embedding model name.
            api_key: Optional API key (uses env var if not provided).
            cache_max_entries: Maximum number of cached vectors.
        """
        self.model = model
        self.api_key = api_key
        self.cache_max_entries = cache_max_entries
        self._cache: OrderedDict[str, list[float]] = OrderedDict()

    @property
    def cache_size(self) -> int:
        """Number of cached vectors."""
        return len(self._cache)

    async def embed(self, text: str) -> list[float]:
        """Embed a piece of text, using the cache when possible.

        Args:
            text: Text to embed.

        Returns:
            The embedding vector.

        Raises:
            EmbeddingProviderError: If the provider call fails or returns
                no vector.
        """
        cached = self._cache.get(text)
        if cached is not None:
            self._cache.move_to_end(text)
            return cached

        vector = await self._request(text)

        self._cache[text] = vector
        self._cache.move_to_end(text)
        while len(self._cache) > self.cache_max_entries:
            self._cache.popitem(last=False)
        return vector

    async def _request(self, text: str) -> list[float]:
        kwargs = {"model": self.model, "input": [text]}
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = await aembedding(**kwargs)
        except AuthenticationError as e:
            raise EmbeddingProviderError(f"Authentication failed: {e}") from e
        except RateLimitError as e:
            raise EmbeddingProviderError(f"Rate limit exceeded: {e}") from e
        except Timeout as e:
            raise EmbeddingProviderError(f"Request timed out: {e}") from e
        except APIConnectionError as e:
            raise EmbeddingProviderError(f"Connection failed: {e}") from e
        except APIError as e:
            raise EmbeddingProviderError(f"Embedding API error: {e}") from e
        except Exception as e:
            # Bad requests, provider 5xx, unknown models, and the like
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

        try:
            item = response.data[0]
            vector = item["embedding"] if isinstance(item, dict) else item.embedding
            return [float(x) for x in vector]
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise EmbeddingProviderError(f"Malformed embedding response: {e}") from e

    def clear_cache(self) -> int:
        """Drop every cached vector.

        Returns:
            Number of entries removed.
        """
        cache_size = len(self._cache)
        self._cache.clear()
        logger.info(f"Cleared embedding cache ({cache_size} entries)")
        return cache_size
