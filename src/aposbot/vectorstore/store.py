"""ChromaDB vector store implementation."""

import asyncio
import gc
import logging
from pathlib import Path
from typing import Any

import chromadb
from chromadb.config import Settings

from aposbot.constants.vectorstore import (
    COLLECTION_NAME,
    INIT_ATTEMPTS,
    RETRY_DELAY_SECONDS,
)
from aposbot.embeddings.provider import EmbeddingProvider
from aposbot.qa.schemas import Document

logger = logging.getLogger(__name__)


class VectorStoreInitError(Exception):
    """Raised when the vector store cannot be opened after all retries."""

    pass


class VectorStore:
    """Vector store wrapper for the documentation collection in ChromaDB.

    The collection is built ahead of time with cosine distance. Queries are
    embedded through the shared EmbeddingProvider so that the question
    vector is cached alongside the ones used by the duplicate and
    confidence checks.
    """

    def __init__(
        self,
        persist_path: Path,
        embedder: EmbeddingProvider,
        collection_name: str = COLLECTION_NAME,
    ) -> None:
        """Open the persistent collection once, without retrying.

        Use ``connect()`` at application startup.

        Args:
            persist_path: Directory path for ChromaDB persistence.
            embedder: Provider used to embed search queries.
            collection_name: Name of the documentation collection.
        """
        self._persist_path = Path(persist_path)
        self._embedder = embedder
        self._collection_name = collection_name
        self._client: Any = None
        self._collection: Any = None
        self._open()

    @classmethod
    async def connect(
        cls,
        persist_path: Path,
        embedder: EmbeddingProvider,
        collection_name: str = COLLECTION_NAME,
        attempts: int = INIT_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ) -> "VectorStore":
        """Open the vector store, retrying on failure.

        Args:
            persist_path: Directory path for ChromaDB persistence.
            embedder: Provider used to embed search queries.
            collection_name: Name of the documentation collection.
            attempts: Total number of attempts.
            retry_delay: Seconds to wait between attempts.

        Returns:
            The connected store.

        Raises:
            VectorStoreInitError: If every attempt fails.
        """
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                store = await asyncio.to_thread(
                    cls, persist_path, embedder, collection_name=collection_name
                )
            except Exception as e:
                last_error = e
                logger.error(
                    f"Chroma initialization failed (attempt {attempt}/{attempts}): {e}"
                )
                if attempt < attempts:
                    await asyncio.sleep(retry_delay)
                continue

            logger.info(f"Chroma vectorstore successfully initialized at {persist_path}")
            try:
                count = await asyncio.to_thread(store.count)
                logger.info(f"Chroma collection {collection_name!r} count: {count}")
            except Exception as e:
                logger.error(f"Error getting Chroma stats: {e}")
            return store

        logger.error("All retries failed. Could not initialize ChromaDB.")
        raise VectorStoreInitError(
            f"Could not open Chroma collection {collection_name!r} at {persist_path} "
            f"after {attempts} attempts: {last_error}"
        ) from last_error

    def _open(self) -> None:
        self._persist_path.mkdir(parents=True, exist_ok=True)
        self._client = chromadb.PersistentClient(
            path=str(self._persist_path),
            settings=Settings(anonymized_telemetry=False),
        )
        # Embeddings are computed by EmbeddingProvider, never by Chroma
        self._collection = self._client.get_or_create_collection(
            name=self._collection_name,
            embedding_function=None,
            metadata={"hnsw:space": "cosine"},
        )

    @property
    def collection(self) -> Any:
        """Get the underlying ChromaDB collection."""
        return self._collection

    def add_documents(
        self,
        ids: list[str],
        documents: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict[str, Any]] | None = None,
    ) -> None:
        """Add pre-embedded documents to the collection.

        Args:
            ids: Unique identifiers for each document.
            documents: Text content of each document.
            embeddings: Embedding vector for each document.
            metadatas: Optional metadata dictionaries for each document.
        """
        self._collection.add(
            ids=ids,
            documents=documents,
            embeddings=embeddings,  # type: ignore[arg-type]
            metadatas=metadatas,  # type: ignore[arg-type]
        )

    async def search(self, query: str, k: int) -> list[Document]:
        """Find the documents nearest to a query.

        Args:
            query: Search text.
            k: Maximum number of documents to return.

        Returns:
            Documents sorted by decreasing similarity; empty if the
            collection has no documents.

        Raises:
            EmbeddingProviderError: If the query cannot be embedded.
        """
        query_embedding = await self._embedder.embed(query)

        available = await asyncio.to_thread(self._collection.count)
        n_results = min(k, available)
        if n_results <= 0:
            return []

        raw = await asyncio.to_thread(
            self._collection.query,
            query_embeddings=[query_embedding],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )
        return self._to_documents(raw)

    def _to_documents(self, raw: Any) -> list[Document]:
        documents = (raw.get("documents") or [[]])[0] or []
        metadatas = (raw.get("metadatas") or [[]])[0] or []
        distances = (raw.get("distances") or [[]])[0] or []

        results: list[Document] = []
        for i, content in enumerate(documents):
            metadata = metadatas[i] if i < len(metadatas) and metadatas[i] else {}
            score = 1.0 - distances[i] if i < len(distances) else None
            results.append(
                Document(page_content=content or "", metadata=dict(metadata), score=score)
            )

        results.sort(key=lambda d: d.score if d.score is not None else -1.0, reverse=True)
        return results

    def count(self) -> int:
        """Number of documents in the collection."""
        return self._collection.count()

    def health_check(self) -> tuple[bool, str]:
        """Check that the collection is reachable.

        Returns:
            Tuple of (healthy, human-readable status).
        """
        try:
            count = self.count()
        except Exception as e:
            return False, f"ChromaDB is unhealthy: {e}"
        return True, f"ChromaDB is healthy. Collection contains {count} documents."

    def refresh_connection(self) -> None:
        """Reopen the collection if it is no longer reachable."""
        try:
            self.count()
        except Exception as e:
            logger.info(f"Refreshing Chroma connection due to: {e}")
            self._open()

    def close(self) -> None:
        """Close the vector store and release resources.

        This should be called when the store is no longer needed to
        release file handles and other system resources.
        """
        # PersistentClient has no close method; stop its internal systems instead
        if self._client is not None:
            systems = getattr(self._client, "_identifier_to_system", None)
            if systems:
                for system in list(systems.values()):
                    stop = getattr(system, "stop", None)
                    if stop is not None:
                        try:
                            stop()
                        except Exception as e:
                            logger.debug(f"Ignoring error while stopping Chroma system: {e}")

        self._collection = None
        self._client = None

        # Force garbage collection to release file handles
        gc.collect()
