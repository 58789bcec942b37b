"""Q&A service: duplicate check, retrieval, confidence gate, answer."""

import logging
import uuid

from aposbot.config import AskConfig
from aposbot.constants.qa import (
    CONFIDENCE_THRESHOLD,
    DUPLICATE_THRESHOLD,
    RETRIEVAL_TOP_K,
)
from aposbot.constants.vectorstore import DEFAULT_DOCUMENT_URL
from aposbot.embeddings.provider import EmbeddingProvider
from aposbot.llm.client import LLMClient
from aposbot.qa.answerer import ConversationalAnswerer
from aposbot.qa.guards import ConfidenceGate, DuplicateQuestionGuard
from aposbot.qa.schemas import AnswerOutcome, QARequest, QAResponse
from aposbot.qa.session import SessionHistoryStore
from aposbot.vectorstore.store import VectorStore

logger = logging.getLogger(__name__)


class QAService:
    """Service for evidence-gated Q&A over the documentation.

    Stages run strictly one after another for a request. The service holds
    no per-request state; callers must serialize requests per session.
    """

    def __init__(
        self,
        vectorstore: VectorStore,
        embedder: EmbeddingProvider,
        llm: LLMClient,
        sessions: SessionHistoryStore,
        ask: AskConfig | None = None,
        default_url: str = DEFAULT_DOCUMENT_URL,
    ) -> None:
        """Initialize Q&A service.

        Args:
            vectorstore: Chroma store holding the documentation.
            embedder: Embedding provider shared with the vector store.
            llm: Chat model client.
            sessions: Conversation history store.
            ask: Thresholds and retrieval size; module defaults if omitted.
            default_url: Citation URL for documents that have none.
        """
        duplicate_threshold = ask.duplicate_threshold if ask else DUPLICATE_THRESHOLD
        confidence_threshold = ask.confidence_threshold if ask else CONFIDENCE_THRESHOLD
        self.top_k = ask.retrieval_top_k if ask else RETRIEVAL_TOP_K

        self._vectorstore = vectorstore
        self._llm = llm
        self._sessions = sessions
        self._duplicate_guard = DuplicateQuestionGuard(embedder, threshold=duplicate_threshold)
        self._confidence_gate = ConfidenceGate(embedder, threshold=confidence_threshold)
        self._answerer = ConversationalAnswerer(
            llm,
            vectorstore,
            sessions,
            top_k=self.top_k,
            default_url=default_url,
        )

    async def ask(self, request: QARequest) -> QAResponse:
        """Answer a question about ApostropheCMS.

        Args:
            request: The question and optional session ID. A new session ID
                is generated when none is given.

        Returns:
            The answer, or an advisory message when the question repeats an
            earlier one or the documentation does not support an answer.

        Raises:
            EmbeddingProviderError: If the duplicate or confidence check
                cannot embed its inputs.
            AnswerGenerationFailed: If the model fails while answering.
        """
        session_id = request.session_id or str(uuid.uuid4())
        question = request.question

        history = self._sessions.get_messages(session_id)
        verdict = await self._duplicate_guard.check(question, history)
        if not verdict.passed:
            return self._advisory(session_id, verdict.outcome, verdict.message, verdict.score)

        documents = await self._vectorstore.search(question, self.top_k)

        verdict = await self._confidence_gate.check(question, documents)
        if not verdict.passed:
            return self._advisory(session_id, verdict.outcome, verdict.message, verdict.score)

        answer = await self._answerer.answer(question, session_id)
        logger.info(
            f"Answered question for session {session_id} "
            f"(model {self._llm.model_name}, confidence {verdict.score:.3f})"
        )
        return QAResponse(
            answer=answer,
            session_id=session_id,
            outcome=AnswerOutcome.ANSWERED,
            model=self._llm.model_name,
            confidence=verdict.score,
        )

    def _advisory(
        self,
        session_id: str,
        outcome: AnswerOutcome | None,
        message: str | None,
        score: float | None,
    ) -> QAResponse:
        assert outcome is not None and message is not None  # Set on every stopping verdict
        logger.info(f"Question for session {session_id} not answered: {outcome.value}")
        return QAResponse(
            answer=message,
            session_id=session_id,
            outcome=outcome,
            model=None,
            confidence=score if outcome != AnswerOutcome.DUPLICATE_QUESTION else None,
        )
