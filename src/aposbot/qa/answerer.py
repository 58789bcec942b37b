"""History-aware retrieval and grounded answer generation."""

import logging

from aposbot.constants.qa import RETRIEVAL_TOP_K
from aposbot.constants.vectorstore import DEFAULT_DOCUMENT_URL
from aposbot.embeddings.provider import EmbeddingProviderError
from aposbot.llm.client import LLMClient, ModelInvocationError
from aposbot.qa.documents import fix_document_metadata, format_context
from aposbot.qa.prompts import CONTEXTUALIZE_SYSTEM_PROMPT, format_answer_system_prompt
from aposbot.qa.schemas import Document
from aposbot.qa.session import SessionHistoryStore
from aposbot.vectorstore.store import VectorStore

logger = logging.getLogger(__name__)


class AnswerGenerationFailed(Exception):
    """Raised when an answer could not be produced.

    The underlying model or embedding error is chained as ``__cause__``.
    """

    pass


class ConversationalAnswerer:
    """Answers a question using the session history and retrieved docs.

    Two model calls per question: one rewrites the question into a
    standalone retrieval query, the other writes the answer from the
    documents that query retrieves. The session gets the question and the
    answer appended only after both calls succeed.
    """

    def __init__(
        self,
        llm: LLMClient,
        vectorstore: VectorStore,
        sessions: SessionHistoryStore,
        top_k: int = RETRIEVAL_TOP_K,
        default_url: str = DEFAULT_DOCUMENT_URL,
    ) -> None:
        self._llm = llm
        self._vectorstore = vectorstore
        self._sessions = sessions
        self.top_k = top_k
        self.default_url = default_url

    async def contextualize(self, question: str, session_id: str) -> str:
        """Rewrite a follow-up question so it stands on its own.

        With no history the question is returned unchanged without calling
        the model.

        Raises:
            ModelInvocationError: If the model call fails.
        """
        history = self._sessions.get_messages(session_id)
        if not history:
            return question

        rewritten = await self._llm.complete(CONTEXTUALIZE_SYSTEM_PROMPT, history, question)
        rewritten = rewritten.strip()
        logger.debug(f"Contextualized query: {rewritten!r}")
        return rewritten or question

    async def retrieve(self, query: str) -> list[Document]:
        """Fetch documents for a query, each with a citation URL."""
        documents = await self._vectorstore.search(query, self.top_k)
        return fix_document_metadata(documents, default_url=self.default_url)

    async def answer(self, question: str, session_id: str) -> str:
        """Produce an answer and record the exchange in the session.

        Args:
            question: The user's question, as asked.
            session_id: Conversation the question belongs to.

        Returns:
            The model's answer text, verbatim.

        Raises:
            AnswerGenerationFailed: If rewriting, retrieval embedding, or
                answering fails. Nothing is added to the history then.
        """
        try:
            query = await self.contextualize(question, session_id)
            documents = await self.retrieve(query)
            system_prompt = format_answer_system_prompt(format_context(documents))
            history = self._sessions.get_messages(session_id)
            answer = await self._llm.complete(system_prompt, history, question)
        except (ModelInvocationError, EmbeddingProviderError) as e:
            logger.error(f"Answer generation failed for session {session_id}: {e}")
            raise AnswerGenerationFailed(str(e)) from e

        self._sessions.append_exchange(session_id, question, answer)
        return answer
