"""Q&A request, response, and conversation schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Author of a conversation message."""

    HUMAN = "human"
    AI = "ai"


class Message(BaseModel):
    """A single turn in a session's conversation history."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(..., description="Who wrote the message")
    content: str = Field(..., description="Message text")

    @classmethod
    def human(cls, content: str) -> "Message":
        return cls(role=MessageRole.HUMAN, content=content)

    @classmethod
    def ai(cls, content: str) -> "Message":
        return cls(role=MessageRole.AI, content=content)


class Document(BaseModel):
    """A documentation chunk returned by the vector store."""

    page_content: str = Field(..., description="Chunk text")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Chunk metadata")
    score: float | None = Field(
        None,
        description="Similarity to the search query (1 - cosine distance)",
    )

    @property
    def url(self) -> str | None:
        return self.metadata.get("url") or None


class AnswerOutcome(str, Enum):
    """How the pipeline finished for a question."""

    ANSWERED = "answered"
    DUPLICATE_QUESTION = "duplicate_question"
    EMPTY_KNOWLEDGE_BASE = "empty_knowledge_base"
    LOW_CONFIDENCE = "low_confidence"


class QARequest(BaseModel):
    """Request for the Q&A endpoint."""

    question: str = Field(..., min_length=1, description="The question to answer")
    session_id: str | None = Field(
        None,
        description="Conversation to continue; a new one is started if omitted",
    )


class QAResponse(BaseModel):
    """Response from the Q&A endpoint."""

    answer: str = Field(..., description="Model answer or advisory message")
    session_id: str = Field(..., description="Conversation the answer belongs to")
    outcome: AnswerOutcome = Field(..., description="Which pipeline stage produced the answer")
    model: str | None = Field(None, description="Chat model used, if it was invoked")
    confidence: float | None = Field(
        None,
        description="Best question/document similarity, when retrieval ran",
    )
