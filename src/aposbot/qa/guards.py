"""Checks that decide whether a question should be answered at all."""

import asyncio
import logging
from dataclasses import dataclass

from aposbot.constants.qa import (
    CONFIDENCE_THRESHOLD,
    DUPLICATE_QUESTION_MESSAGE,
    DUPLICATE_THRESHOLD,
    EMPTY_KNOWLEDGE_BASE_MESSAGE,
    LOW_CONFIDENCE_MESSAGE,
)
from aposbot.embeddings.provider import EmbeddingProvider
from aposbot.qa.schemas import AnswerOutcome, Document, Message, MessageRole
from aposbot.qa.similarity import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    """Verdict of a guard.

    ``message`` and ``outcome`` are set only when the question is stopped.
    ``score`` is the similarity that decided the verdict, if one was computed.
    """

    passed: bool
    outcome: AnswerOutcome | None = None
    message: str | None = None
    score: float | None = None

    @classmethod
    def allow(cls, score: float | None = None) -> "GateResult":
        return cls(passed=True, score=score)

    @classmethod
    def stop(
        cls, outcome: AnswerOutcome, message: str, score: float | None = None
    ) -> "GateResult":
        return cls(passed=False, outcome=outcome, message=message, score=score)


class DuplicateQuestionGuard:
    """Stops a question that repeats one already asked in the session.

    Asking the same thing twice tends to make the model drift further from
    the documentation, so the user is pointed back at the earlier answer.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        threshold: float = DUPLICATE_THRESHOLD,
    ) -> None:
        self._embedder = embedder
        self.threshold = threshold

    async def check(self, question: str, history: list[Message]) -> GateResult:
        """Compare a question with every earlier human message.

        Args:
            question: The new question.
            history: The session's messages, oldest first.

        Returns:
            A stopping result on the first prior question at or above the
            threshold, otherwise an allowing one.

        Raises:
            EmbeddingProviderError: If an embedding cannot be computed.
        """
        prior_questions = [m.content for m in history if m.role == MessageRole.HUMAN]
        if not prior_questions:
            return GateResult.allow()

        question_embedding = await self._embedder.embed(question)
        for prior in prior_questions:
            prior_embedding = await self._embedder.embed(prior)
            similarity = cosine_similarity(question_embedding, prior_embedding)
            if similarity >= self.threshold:
                logger.info(f"Duplicate question detected (similarity {similarity:.3f})")
                return GateResult.stop(
                    AnswerOutcome.DUPLICATE_QUESTION,
                    DUPLICATE_QUESTION_MESSAGE,
                    score=similarity,
                )

        return GateResult.allow()


class ConfidenceGate:
    """Stops a question when the retrieved documentation does not match it.

    The gate only decides whether to answer; it never removes individual
    documents from the set handed to the answerer.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        self._embedder = embedder
        self.threshold = threshold

    async def score(self, question: str, documents: list[Document]) -> list[float]:
        """Similarity between the question and each document's content.

        Raises:
            EmbeddingProviderError: If an embedding cannot be computed.
        """
        if not documents:
            return []
        question_embedding = await self._embedder.embed(question)
        doc_embeddings = await asyncio.gather(
            *(self._embedder.embed(doc.page_content) for doc in documents)
        )
        return [cosine_similarity(question_embedding, emb) for emb in doc_embeddings]

    async def check(self, question: str, documents: list[Document]) -> GateResult:
        """Decide whether the retrieved documents support an answer.

        Args:
            question: The user's question.
            documents: Documents retrieved for it.

        Returns:
            Stopping result for an empty knowledge base or when the best
            score is below the threshold; otherwise an allowing result
            carrying the best score.

        Raises:
            EmbeddingProviderError: If an embedding cannot be computed.
        """
        scores = await self.score(question, documents)
        if not scores:
            logger.warning("No documents retrieved; knowledge base may be empty")
            return GateResult.stop(
                AnswerOutcome.EMPTY_KNOWLEDGE_BASE, EMPTY_KNOWLEDGE_BASE_MESSAGE
            )

        best = max(scores)
        if best < self.threshold:
            logger.info(f"Low confidence (best score {best:.3f} < {self.threshold})")
            return GateResult.stop(AnswerOutcome.LOW_CONFIDENCE, LOW_CONFIDENCE_MESSAGE, score=best)

        return GateResult.allow(score=best)
