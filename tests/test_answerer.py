"""Conversational answerer tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import InternalServerError

from aposbot.llm import LLMClient, ModelInvocationError, ModelRateLimitError
from aposbot.qa.answerer import AnswerGenerationFailed, ConversationalAnswerer
from aposbot.qa.prompts import CONTEXTUALIZE_SYSTEM_PROMPT
from aposbot.qa.schemas import Document, MessageRole
from aposbot.qa.session import SessionHistoryStore
from aposbot.vectorstore import VectorStore


@pytest.fixture
def llm():
    client = MagicMock(spec=LLMClient)
    client.model_name = "gpt-4o"
    client.complete = AsyncMock(return_value="Widgets are reusable content blocks.")
    return client


@pytest.fixture
def vectorstore():
    store = MagicMock(spec=VectorStore)
    store.search = AsyncMock(
        return_value=[
            Document(
                page_content="Widgets are content blocks.",
                metadata={"url": "https://docs.apostrophecms.org/widgets"},
                score=0.9,
            ),
            Document(
                page_content="Areas hold widgets.\nReference URL: https://docs.apostrophecms.org/areas",
                score=0.8,
            ),
        ]
    )
    return store


@pytest.fixture
def sessions():
    return SessionHistoryStore()


async def test_first_question_is_not_rewritten(llm, vectorstore, sessions):
    answerer = ConversationalAnswerer(llm, vectorstore, sessions, top_k=6)

    answer = await answerer.answer("What is a widget?", "s1")

    assert answer == "Widgets are reusable content blocks."
    llm.complete.assert_awaited_once()
    vectorstore.search.assert_awaited_once_with("What is a widget?", 6)


async def test_answer_prompt_carries_context_with_urls(llm, vectorstore, sessions):
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    await answerer.answer("What is a widget?", "s1")

    system_prompt, history, user_input = llm.complete.call_args.args
    assert "Widgets are content blocks.\nURL: https://docs.apostrophecms.org/widgets" in system_prompt
    assert "Areas hold widgets.\nURL: https://docs.apostrophecms.org/areas" in system_prompt
    assert "Reference URL:" not in system_prompt
    assert history == []
    assert user_input == "What is a widget?"


async def test_success_appends_exchange(llm, vectorstore, sessions):
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    await answerer.answer("What is a widget?", "s1")

    messages = sessions.get_messages("s1")
    assert [(m.role, m.content) for m in messages] == [
        (MessageRole.HUMAN, "What is a widget?"),
        (MessageRole.AI, "Widgets are reusable content blocks."),
    ]


async def test_follow_up_is_rewritten_with_history(llm, vectorstore, sessions):
    sessions.append_exchange("s1", "What is a widget?", "A content block.")
    llm.complete = AsyncMock(side_effect=["How do I add a widget to a page?", "Use an area."])
    answerer = ConversationalAnswerer(llm, vectorstore, sessions, top_k=4)

    answer = await answerer.answer("How do I add one?", "s1")

    assert answer == "Use an area."
    rewrite_call, answer_call = llm.complete.call_args_list
    assert rewrite_call.args[0] == CONTEXTUALIZE_SYSTEM_PROMPT
    assert len(rewrite_call.args[1]) == 2
    assert rewrite_call.args[2] == "How do I add one?"
    vectorstore.search.assert_awaited_once_with("How do I add a widget to a page?", 4)
    # The question as asked goes to the answer call
    assert answer_call.args[2] == "How do I add one?"
    assert len(sessions.get_messages("s1")) == 4


async def test_blank_rewrite_falls_back_to_question(llm, vectorstore, sessions):
    sessions.append_exchange("s1", "What is a widget?", "A content block.")
    llm.complete = AsyncMock(side_effect=["   ", "Use an area."])
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    await answerer.answer("How do I add one?", "s1")

    vectorstore.search.assert_awaited_once_with("How do I add one?", 6)


async def test_model_failure_leaves_history_untouched(llm, vectorstore, sessions):
    sessions.append_exchange("s1", "What is a widget?", "A content block.")
    llm.complete = AsyncMock(side_effect=ModelRateLimitError("Rate limit exceeded"))
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    with pytest.raises(AnswerGenerationFailed) as exc_info:
        await answerer.answer("How do I add one?", "s1")

    assert isinstance(exc_info.value.__cause__, ModelRateLimitError)
    assert len(sessions.get_messages("s1")) == 2


async def test_failure_on_answer_call_appends_nothing(llm, vectorstore, sessions):
    llm.complete = AsyncMock(side_effect=ModelRateLimitError("Rate limit exceeded"))
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    with pytest.raises(AnswerGenerationFailed):
        await answerer.answer("What is a widget?", "s1")

    assert sessions.get_messages("s1") == []


async def test_retrieve_fills_default_url(llm, vectorstore, sessions):
    vectorstore.search = AsyncMock(return_value=[Document(page_content="No link")])
    answerer = ConversationalAnswerer(
        llm, vectorstore, sessions, default_url="https://docs.apostrophecms.org/"
    )

    docs = await answerer.retrieve("anything")

    assert docs[0].url == "https://docs.apostrophecms.org/"


async def test_provider_server_error_becomes_answer_failure(vectorstore, sessions):
    llm = LLMClient(provider="openai", model="gpt-4o")
    answerer = ConversationalAnswerer(llm, vectorstore, sessions)

    with patch("aposbot.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = InternalServerError(
            message="boom",
            llm_provider="openai",
            model="gpt-4o",
        )
        with pytest.raises(AnswerGenerationFailed) as exc_info:
            await answerer.answer("What is a widget?", "s1")

    assert isinstance(exc_info.value.__cause__, ModelInvocationError)
    assert sessions.get_messages("s1") == []
