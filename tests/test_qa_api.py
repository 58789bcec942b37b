"""Q&A API endpoint tests."""

import threading
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from aposbot.api import deps
from aposbot.api.deps import (
    get_in_flight,
    get_qa_service,
    get_session_store,
    get_slack_logger,
)
from aposbot.constants.qa import BUSY_SESSION_MESSAGE, QUERY_FAILED_MESSAGE
from aposbot.main import app
from aposbot.notifications import SlackConversationLogger
from aposbot.qa.answerer import AnswerGenerationFailed
from aposbot.qa.schemas import AnswerOutcome, QAResponse
from aposbot.qa.session import InFlightRequests, SessionHistoryStore
from aposbot.vectorstore import VectorStore


@pytest.fixture
def in_flight():
    return InFlightRequests()


@pytest.fixture
def sessions():
    return SessionHistoryStore()


@pytest.fixture
def slack():
    logger = MagicMock(spec=SlackConversationLogger)
    logger.log_exchange = AsyncMock(return_value=False)
    return logger


@pytest.fixture
def mock_qa_service():
    """Mock QAService that echoes the session ID it was given."""

    async def ask(request):
        return QAResponse(
            answer="A widget is a reusable content block.",
            session_id=request.session_id,
            outcome=AnswerOutcome.ANSWERED,
            model="gpt-4o",
            confidence=0.9,
        )

    service = MagicMock()
    service.ask = AsyncMock(side_effect=ask)
    return service


@pytest.fixture
async def client(mock_qa_service, in_flight, sessions, slack):
    """Create async test client with the Q&A dependencies overridden."""
    app.dependency_overrides[get_qa_service] = lambda: mock_qa_service
    app.dependency_overrides[get_in_flight] = lambda: in_flight
    app.dependency_overrides[get_session_store] = lambda: sessions
    app.dependency_overrides[get_slack_logger] = lambda: slack
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        deps._reset_instances()


class TestAskEndpoint:
    """Tests for POST /api/qa/ask endpoint."""

    async def test_ask_returns_answer(self, client, mock_qa_service, slack):
        response = await client.post(
            "/api/qa/ask",
            json={"question": "What is a widget?", "session_id": "abc"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "A widget is a reusable content block."
        assert data["session_id"] == "abc"
        assert data["outcome"] == "answered"
        assert data["model"] == "gpt-4o"
        slack.log_exchange.assert_awaited_once_with(
            "abc", "What is a widget?", "A widget is a reusable content block.", "gpt-4o"
        )

    async def test_ask_assigns_session_id(self, client, mock_qa_service):
        response = await client.post("/api/qa/ask", json={"question": "What is a widget?"})

        assert response.status_code == 200
        session_id = response.json()["session_id"]
        assert session_id
        assert mock_qa_service.ask.call_args.args[0].session_id == session_id

    async def test_ask_rejects_empty_question(self, client):
        response = await client.post("/api/qa/ask", json={"question": ""})

        assert response.status_code == 422

    async def test_busy_session_gets_429(self, client, in_flight, mock_qa_service):
        in_flight.try_acquire("abc")

        response = await client.post(
            "/api/qa/ask",
            json={"question": "What is a widget?", "session_id": "abc"},
        )

        assert response.status_code == 429
        assert response.json()["detail"] == BUSY_SESSION_MESSAGE
        mock_qa_service.ask.assert_not_called()

    async def test_session_is_released_after_answer(self, client, in_flight):
        await client.post(
            "/api/qa/ask",
            json={"question": "What is a widget?", "session_id": "abc"},
        )

        assert in_flight.try_acquire("abc")

    async def test_failure_gets_502_and_releases_session(
        self, client, mock_qa_service, in_flight, slack
    ):
        mock_qa_service.ask.side_effect = AnswerGenerationFailed("Rate limit exceeded")

        response = await client.post(
            "/api/qa/ask",
            json={"question": "What is a widget?", "session_id": "abc"},
        )

        assert response.status_code == 502
        assert response.json()["detail"] == QUERY_FAILED_MESSAGE
        assert in_flight.try_acquire("abc")
        slack.log_exchange.assert_not_called()


class TestClearSessionEndpoint:
    async def test_clear_existing_session(self, client, sessions):
        sessions.append_exchange("abc", "q", "a")

        response = await client.post("/api/qa/sessions/abc/clear")

        assert response.status_code == 200
        assert response.json() == {"cleared": True}
        assert "abc" not in sessions

    async def test_clear_unknown_session(self, client):
        response = await client.post("/api/qa/sessions/nope/clear")

        assert response.json() == {"cleared": False}


class TestHealthEndpoints:
    async def test_root_returns_ok(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.text == "OK"

    async def test_health_without_vectorstore(self, client):
        deps.set_vectorstore(None)

        response = await client.get("/health")

        assert response.json()["status"] == "degraded"

    async def test_health_with_vectorstore(self, client):
        store = MagicMock(spec=VectorStore)
        store.health_check.return_value = (
            True,
            "ChromaDB is healthy. Collection contains 12 documents.",
        )
        deps.set_vectorstore(store)

        response = await client.get("/health")

        assert response.json() == {
            "status": "healthy",
            "vectorstore": "ChromaDB is healthy. Collection contains 12 documents.",
        }

    async def test_health_check_runs_in_worker_thread(self, client):
        calls = []

        def health_check():
            calls.append(threading.get_ident())
            return False, "ChromaDB is unhealthy: gone"

        store = MagicMock(spec=VectorStore)
        store.health_check.side_effect = health_check
        deps.set_vectorstore(store)

        response = await client.get("/health")

        assert response.json()["status"] == "degraded"
        assert calls and calls[0] != threading.get_ident()
