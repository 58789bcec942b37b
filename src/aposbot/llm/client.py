# src/aposbot/llm/client.py
"""LiteLLM-based chat completion client."""

import json
import time
from datetime import datetime, timezone
from pathlib import Path

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
    Timeout,
)

from aposbot.constants.llm import MAX_TOKENS, TEMPERATURE
from aposbot.qa.schemas import Message, MessageRole


class ModelInvocationError(Exception):
    """Base exception for chat model failures."""

    pass


class ModelConnectionError(ModelInvocationError):
    """Raised when unable to connect to the LLM provider."""

    pass


class ModelAuthenticationError(ModelInvocationError):
    """Raised when authentication with the LLM provider fails."""

    pass


class ModelRateLimitError(ModelInvocationError):
    """Raised when rate limited by the LLM provider."""

    pass


class ModelTimeoutError(ModelInvocationError):
    """Raised when the LLM provider does not answer in time."""

    pass


_ROLE_MAP = {
    MessageRole.HUMAN: "user",
    MessageRole.AI: "assistant",
}

_RELEVANT_HEADERS = (
    "x-ratelimit-limit-requests",
    "x-ratelimit-limit-tokens",
    "x-ratelimit-remaining-requests",
    "x-ratelimit-remaining-tokens",
    "x-ratelimit-reset-requests",
    "x-ratelimit-reset-tokens",
    "retry-after",
    "x-request-id",
    "request-id",
    "openai-processing-ms",
    "cf-ray",
)


def get_model_string(provider: str, model: str) -> str:
    """Get the LiteLLM model string for a provider/model pair.

    Returns:
        Model string in provider/model format (bare for OpenAI).
    """
    if provider == "openai":
        return model
    return f"{provider}/{model}"


def extract_error_details(e: Exception) -> dict | None:
    """Extract HTTP details from LiteLLM exceptions.

    Args:
        e: The exception to extract details from.

    Returns:
        Dict with status_code, headers, and message if available.
    """
    details: dict = {}

    if hasattr(e, "status_code"):
        details["status_code"] = e.status_code

    response = getattr(e, "response", None)
    if response is not None:
        if hasattr(response, "status_code"):
            details["status_code"] = response.status_code
        if hasattr(response, "headers"):
            try:
                headers = {
                    k: v
                    for k, v in dict(response.headers).items()
                    if k.lower() in _RELEVANT_HEADERS
                }
                if headers:
                    details["response_headers"] = headers
            except (TypeError, ValueError):
                pass

    if hasattr(e, "llm_provider"):
        details["llm_provider"] = e.llm_provider

    if hasattr(e, "message"):
        details["message"] = str(e.message)

    return details if details else None


class LLMClient:
    """Chat completion client supporting multiple providers via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
        temperature: float = TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
    ):
        """Initialize LLM client.

        Args:
            provider: LLM provider (openai, anthropic, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom endpoint (for Ollama).
            log_path: Optional path to JSONL log file for query logging.
            temperature: Default sampling temperature.
            max_tokens: Default maximum response tokens.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def model_name(self) -> str:
        """Name of the model answers are generated with."""
        return self.model

    def _log_query(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
        error_details: dict | None = None,
    ) -> None:
        """Append a query record to the JSONL log file, if configured."""
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }

        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError:
            # Don't let logging failures break the application
            pass

    def build_messages(
        self,
        system_prompt: str,
        history: list[Message],
        user_input: str,
    ) -> list[dict[str, str]]:
        """Build the chat message list sent to the provider."""
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(
            {"role": _ROLE_MAP[message.role], "content": message.content} for message in history
        )
        messages.append({"role": "user", "content": user_input})
        return messages

    async def complete(
        self,
        system_prompt: str,
        history: list[Message],
        user_input: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a chat completion.

        Args:
            system_prompt: System instruction, including any context block.
            history: Prior conversation turns, oldest first.
            user_input: The latest user message.
            temperature: Sampling temperature override.
            max_tokens: Maximum response tokens override.

        Returns:
            Generated text response.

        Raises:
            ModelInvocationError: If the provider call fails or returns
                something that is not a completion.
        """
        if temperature is None:
            temperature = self.temperature
        if max_tokens is None:
            max_tokens = self.max_tokens

        messages = self.build_messages(system_prompt, history, user_input)

        kwargs = {
            "model": get_model_string(self.provider, self.model),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if self.api_key:
            kwargs["api_key"] = self.api_key

        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint

        start_time = time.perf_counter()
        error: ModelInvocationError | None = None
        cause: Exception | None = None
        try:
            response = await acompletion(**kwargs)
        except AuthenticationError as e:
            cause, error = e, ModelAuthenticationError(f"Authentication failed: {e}")
        except RateLimitError as e:
            cause, error = e, ModelRateLimitError(f"Rate limit exceeded: {e}")
        except Timeout as e:
            cause, error = e, ModelTimeoutError(f"Request timed out: {e}")
        except APIConnectionError as e:
            cause, error = e, ModelConnectionError(f"Connection failed: {e}")
        except APIError as e:
            cause, error = e, ModelInvocationError(f"LLM API error: {e}")
        except Exception as e:
            # Bad requests, provider 5xx, unknown models, and the like
            cause, error = e, ModelInvocationError(f"LLM request failed: {e}")
        else:
            try:
                content = response.choices[0].message.content
            except (AttributeError, IndexError, TypeError) as e:
                cause, error = e, ModelInvocationError(f"Malformed completion response: {e}")
            else:
                if content is None:
                    error = ModelInvocationError("Completion response has no content")

        duration_ms = int((time.perf_counter() - start_time) * 1000)

        if error is not None:
            self._log_query(
                messages,
                temperature,
                max_tokens,
                response=None,
                duration_ms=duration_ms,
                error=str(error),
                error_details=extract_error_details(cause) if cause else None,
            )
            raise error from cause

        result = str(content)
        self._log_query(
            messages,
            temperature,
            max_tokens,
            response=result,
            duration_ms=duration_ms,
            error=None,
        )
        return result
