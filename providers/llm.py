"""LLM completion client for the generation pipeline.

One ``complete()`` call shape for both supported providers:

  - Anthropic (default): Messages API; JSON mode is emulated with an explicit
    instruction plus fence stripping on the way out.
  - OpenAI: Chat Completions; JSON mode maps to ``response_format``.

Transient provider failures (timeouts, dropped connections, rate limits, 5xx)
are retried a few times here with exponential backoff. Anything still failing
propagates to the caller untouched.
"""

import logging
import os
import re
from typing import Optional

import anthropic
import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from schemas.errors import GenerationError

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-6",
    "openai": "gpt-4o",
}

JSON_MODE_INSTRUCTION = (
    "\n\nRespond with a single valid JSON value only. "
    "No markdown fences, no commentary before or after it."
)

TRANSIENT_PROVIDER_ERRORS = (
    anthropic.APIConnectionError,  # includes APITimeoutError
    anthropic.RateLimitError,
    anthropic.InternalServerError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)

# Completion failures another attempt could get past.
TRANSIENT_ERRORS = (TimeoutError, ConnectionError) + TRANSIENT_PROVIDER_ERRORS


def extract_json(text: str) -> str:
    """Pull the JSON payload out of a model response."""
    match = re.search(r"```(?:json)?\s*\n([\s\S]*?)\n```", text)
    if match:
        return match.group(1)
    match = re.search(r"[\[\{][\s\S]*[\]\}]", text)
    if match:
        return match.group(0)
    return text


class LLMClient:
    """Blocking completion client with a per-call network timeout."""

    def __init__(
        self,
        provider: str = "anthropic",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
    ):
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported provider: {provider}")

        self.provider = provider
        self.model = model or DEFAULT_MODELS[provider]

        if provider == "anthropic":
            self.client = anthropic.Anthropic(
                api_key=api_key or os.getenv("ANTHROPIC_API_KEY"),
                timeout=timeout,
                max_retries=0,
            )
        else:
            self.client = openai.OpenAI(
                api_key=api_key or os.getenv("OPENAI_API_KEY"),
                timeout=timeout,
                max_retries=0,
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(TRANSIENT_PROVIDER_ERRORS),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "LLM call retry %d after error: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        ),
    )
    def complete(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Run one completion and return its text.

        Args:
            system: System prompt.
            user: User prompt.
            temperature: Sampling temperature.
            max_tokens: Output token cap.
            json_mode: Ask for a bare JSON value.

        Returns:
            The response text (JSON payload only when ``json_mode`` is set).

        Raises:
            GenerationError: If the provider returned no text.
        """
        if self.provider == "anthropic":
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system + JSON_MODE_INSTRUCTION if json_mode else system,
                messages=[{"role": "user", "content": user}],
            )
            text = "".join(
                block.text for block in response.content
                if getattr(block, "type", None) == "text"
            )
        else:
            kwargs = {}
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                **kwargs,
            )
            text = response.choices[0].message.content if response.choices else ""

        if not text:
            raise GenerationError(f"No content in {self.provider} response")

        return extract_json(text) if json_mode else text
