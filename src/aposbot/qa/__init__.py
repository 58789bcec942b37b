"""Q&A module for evidence-gated question answering."""

from aposbot.qa.schemas import (
    AnswerOutcome,
    Document,
    Message,
    MessageRole,
    QARequest,
    QAResponse,
)
from aposbot.qa.similarity import DimensionMismatchError, cosine_similarity

__all__ = [
    "AnswerOutcome",
    "DimensionMismatchError",
    "Document",
    "Message",
    "MessageRole",
    "QARequest",
    "QAResponse",
    "cosine_similarity",
]
