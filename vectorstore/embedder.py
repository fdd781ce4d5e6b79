"""OpenAI query embedder with token truncation and retry.

The transcript index is built elsewhere with the same model; this side only
embeds retrieval queries, so dimensionality has to match the deployment's
index (``text-embedding-3-large`` by default).
"""

import logging
import os
from typing import Optional

import tiktoken
from openai import BadRequestError, OpenAI
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-large"
MAX_TOKENS_PER_TEXT = 8000  # model limit is 8191


class Embedder:
    """Embed query text using an OpenAI embedding model."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.model = model
        self.client = OpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            timeout=timeout,
            max_retries=0,
        )
        try:
            self._encoder = tiktoken.encoding_for_model(model)
        except KeyError:
            self._encoder = tiktoken.get_encoding("cl100k_base")

    def _truncate_text(self, text: str) -> str:
        tokens = self._encoder.encode(text)
        if len(tokens) <= MAX_TOKENS_PER_TEXT:
            return text
        logger.warning(
            "Truncating query from %d to %d tokens (first 60 chars: '%.60s')",
            len(tokens), MAX_TOKENS_PER_TEXT, text,
        )
        return self._encoder.decode(tokens[:MAX_TOKENS_PER_TEXT])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_not_exception_type(BadRequestError),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "Embedding API retry %d after error: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        ),
    )
    def embed(self, text: str) -> list[float]:
        """Embed a single query string.

        Raises:
            ValueError: If the API returned no embedding.
        """
        response = self.client.embeddings.create(
            model=self.model,
            input=self._truncate_text(text),
            encoding_format="float",
        )
        if not response.data:
            raise ValueError("No embedding in OpenAI response")
        vector = response.data[0].embedding
        logger.debug("Embedded query (%d dimensions)", len(vector))
        return vector
