"""FastAPI dependency injection functions."""

from functools import lru_cache

from fastapi import Depends, HTTPException, status

from aposbot.config import Settings, load_settings
from aposbot.embeddings.provider import EmbeddingProvider
from aposbot.llm.client import LLMClient
from aposbot.notifications.slack import SlackConversationLogger
from aposbot.qa.service import QAService
from aposbot.qa.session import InFlightRequests, SessionHistoryStore
from aposbot.vectorstore.store import VectorStore


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()


_embedder_instance: EmbeddingProvider | None = None


def get_embedder() -> EmbeddingProvider:
    """Get the shared embedding provider (and its cache)."""
    global _embedder_instance
    if _embedder_instance is None:
        settings = get_settings()
        _embedder_instance = EmbeddingProvider(
            model=settings.embeddings.model,
            api_key=settings.openai_api_key,
            cache_max_entries=settings.embeddings.cache_max_entries,
        )
    return _embedder_instance


# Opened once by the application lifespan, then shared by every request
_vectorstore_instance: VectorStore | None = None


def set_vectorstore(store: VectorStore | None) -> None:
    """Install the vector store connected at startup."""
    global _vectorstore_instance
    _vectorstore_instance = store


def get_vectorstore() -> VectorStore:
    """Get the vector store connected at startup.

    Raises:
        HTTPException: 503 if the store has not been connected.
    """
    if _vectorstore_instance is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Knowledge base is not available.",
        )
    return _vectorstore_instance


_llm_instance: LLMClient | None = None


def get_llm() -> LLMClient:
    """Get LLM client instance."""
    global _llm_instance
    if _llm_instance is None:
        settings = get_settings()
        _llm_instance = LLMClient(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            endpoint=settings.llm_endpoint,
            log_path=settings.llm_log_path,
            temperature=settings.llm.temperature,
            max_tokens=settings.llm.max_tokens,
        )
    return _llm_instance


_session_store: SessionHistoryStore | None = None


def get_session_store() -> SessionHistoryStore:
    """Get the process-wide conversation history store."""
    global _session_store
    if _session_store is None:
        settings = get_settings()
        _session_store = SessionHistoryStore(
            max_sessions=settings.sessions.max_sessions,
            ttl_minutes=settings.sessions.ttl_minutes,
        )
    return _session_store


_in_flight = InFlightRequests()


def get_in_flight() -> InFlightRequests:
    """Get the per-session in-flight request tracker."""
    return _in_flight


_slack_logger: SlackConversationLogger | None = None


def get_slack_logger() -> SlackConversationLogger:
    """Get the Slack conversation logger."""
    global _slack_logger
    if _slack_logger is None:
        settings = get_settings()
        _slack_logger = SlackConversationLogger(
            webhook_url=settings.slack_hook,
            enabled=settings.log_to_slack,
        )
    return _slack_logger


def get_qa_service(
    vectorstore: VectorStore = Depends(get_vectorstore),
    embedder: EmbeddingProvider = Depends(get_embedder),
    llm: LLMClient = Depends(get_llm),
    sessions: SessionHistoryStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> QAService:
    """Get Q&A service instance."""
    return QAService(
        vectorstore,
        embedder,
        llm,
        sessions,
        ask=settings.ask,
        default_url=settings.vectorstore.default_url,
    )


def _reset_instances() -> None:
    """Reset cached instances (for testing only)."""
    global _embedder_instance, _vectorstore_instance, _llm_instance
    global _session_store, _in_flight, _slack_logger
    if _vectorstore_instance is not None:
        _vectorstore_instance.close()
    _embedder_instance = None
    _vectorstore_instance = None
    _llm_instance = None
    _session_store = None
    _in_flight = InFlightRequests()
    _slack_logger = None
    get_settings.cache_clear()
