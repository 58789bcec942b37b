"""Q&A API endpoints."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from aposbot.api.deps import (
    get_in_flight,
    get_qa_service,
    get_session_store,
    get_slack_logger,
)
from aposbot.constants.qa import BUSY_SESSION_MESSAGE, QUERY_FAILED_MESSAGE
from aposbot.embeddings.provider import EmbeddingProviderError
from aposbot.notifications.slack import SlackConversationLogger
from aposbot.qa.answerer import AnswerGenerationFailed
from aposbot.qa.schemas import QARequest, QAResponse
from aposbot.qa.service import QAService
from aposbot.qa.session import InFlightRequests, SessionHistoryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/qa", tags=["qa"])


@router.post("/ask", response_model=QAResponse)
async def ask_question(
    request: QARequest,
    service: QAService = Depends(get_qa_service),
    in_flight: InFlightRequests = Depends(get_in_flight),
    slack: SlackConversationLogger = Depends(get_slack_logger),
) -> QAResponse:
    """Ask a question about ApostropheCMS.

    Starts a new session when no session ID is given. Only one question per
    session is processed at a time; a second one gets 429 until the first
    is answered.
    """
    session_id = request.session_id or str(uuid.uuid4())
    if not in_flight.try_acquire(session_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=BUSY_SESSION_MESSAGE,
        )

    logger.info(f"Message: {request.question}, Session ID: {session_id}")
    try:
        response = await service.ask(request.model_copy(update={"session_id": session_id}))
    except (AnswerGenerationFailed, EmbeddingProviderError) as e:
        logger.error(f"Error processing query: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=QUERY_FAILED_MESSAGE,
        ) from e
    finally:
        in_flight.release(session_id)

    await slack.log_exchange(session_id, request.question, response.answer, response.model)
    return response


@router.post("/sessions/{session_id}/clear")
async def clear_session(
    session_id: str,
    sessions: SessionHistoryStore = Depends(get_session_store),
) -> dict[str, bool]:
    """Forget a session's conversation history."""
    cleared = sessions.clear(session_id)
    logger.info(f"Session {session_id} cleared")
    return {"cleared": cleared}
