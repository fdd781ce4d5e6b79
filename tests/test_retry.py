"""Tests for retry classification."""

import anthropic
import httpx
import openai
import pytest

from orchestration.retry import is_retriable
from schemas.errors import (
    GenerationError,
    GuardrailViolation,
    RetrievalError,
    ScriptFormatError,
)


class TestIsRetriable:
    def test_guardrail_violation_never_retried(self):
        # The message matches a transient pattern, but policy wins.
        assert not is_retriable(GuardrailViolation("Request timeout mentioned in instruction"))

    def test_retrieval_error_follows_transient_flag(self):
        assert is_retriable(RetrievalError("Content search is temporarily unavailable", transient=True))
        assert not is_retriable(RetrievalError("No relevant content found", transient=False))

    def test_generation_errors_are_retried(self):
        assert is_retriable(GenerationError("Failed to generate takeaway plan: bad JSON"))
        assert is_retriable(ScriptFormatError("Slides script is not valid JSON"))

    @pytest.mark.parametrize("error", [TimeoutError("read"), ConnectionError("reset")])
    def test_builtin_network_errors(self, error):
        assert is_retriable(error)

    @pytest.mark.parametrize(
        "message",
        [
            "Request timeout after 30s",
            "socket hang up: ECONNRESET",
            "connect ECONNREFUSED 127.0.0.1:443",
            "Rate limit exceeded",
            "429 Too Many Requests",
            "Upstream returned 502 Bad Gateway",
            "Service temporarily unavailable",
            "network error",
        ],
    )
    def test_transient_message_patterns(self, message):
        assert is_retriable(RuntimeError(message))

    @pytest.mark.parametrize(
        "message",
        ["Invalid API key", "No embedding in OpenAI response", "model not found: 404"],
    )
    def test_other_errors_are_terminal(self, message):
        assert not is_retriable(RuntimeError(message))

    @pytest.mark.parametrize(
        "error_type,status",
        [
            (anthropic.AuthenticationError, 401),
            (anthropic.BadRequestError, 400),
            (openai.AuthenticationError, 401),
            (openai.PermissionDeniedError, 403),
        ],
    )
    def test_permanent_provider_errors_are_terminal(self, error_type, status):
        request = httpx.Request("POST", "https://api.example.com/v1/messages")
        response = httpx.Response(status, request=request)
        error = error_type(f"Error code: {status}", response=response, body=None)

        assert not is_retriable(error)

    def test_provider_rate_limit_is_retried(self):
        request = httpx.Request("POST", "https://api.example.com/v1/messages")
        response = httpx.Response(429, request=request)

        assert is_retriable(anthropic.RateLimitError("Error code: 429", response=response, body=None))
