# src/aposbot/llm/__init__.py
"""LLM client abstraction."""

from aposbot.llm.client import (
    LLMClient,
    ModelAuthenticationError,
    ModelConnectionError,
    ModelInvocationError,
    ModelRateLimitError,
    ModelTimeoutError,
)

__all__ = [
    "LLMClient",
    "ModelAuthenticationError",
    "ModelConnectionError",
    "ModelInvocationError",
    "ModelRateLimitError",
    "ModelTimeoutError",
]
