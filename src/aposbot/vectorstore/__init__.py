"""Vector store module for semantic search."""

from aposbot.vectorstore.store import VectorStore, VectorStoreInitError

__all__ = ["VectorStore", "VectorStoreInitError"]
