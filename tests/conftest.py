"""Shared pytest fixtures for all tests.

These fixtures properly clean up resources to prevent file descriptor leaks.
"""

import gc
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from aposbot.embeddings.provider import EmbeddingProvider, EmbeddingProviderError
from aposbot.vectorstore.store import VectorStore


def with_similarity(similarity: float) -> list[float]:
    """2-D unit vector whose cosine with [1, 0] is ``similarity``."""
    return [similarity, math.sqrt(1.0 - similarity * similarity)]


def make_embedder(table: dict[str, list[float]]) -> MagicMock:
    """Embedding provider double that looks vectors up by exact text.

    Unknown text raises EmbeddingProviderError so a test notices any
    embedding it did not plan for.
    """

    async def embed(text: str) -> list[float]:
        if text not in table:
            raise EmbeddingProviderError(f"no test vector for {text!r}")
        return table[text]

    embedder = MagicMock(spec=EmbeddingProvider)
    embedder.embed = AsyncMock(side_effect=embed)
    return embedder


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Clean up resources after each test to prevent file descriptor leaks.

    This runs automatically after every test to help garbage collect
    any lingering ChromaDB connections.
    """
    yield
    gc.collect()


@pytest.fixture
def temp_vectorstore(tmp_path):
    """Create a temporary vector store that cleans up properly.

    Queries are embedded through a table-backed embedder; tests add the
    query vectors they need to ``store.test_vectors``.
    """
    vectors: dict[str, list[float]] = {}
    store = VectorStore(tmp_path / "chroma", make_embedder(vectors))
    store.test_vectors = vectors  # type: ignore[attr-defined]
    yield store
    store.close()
    gc.collect()
