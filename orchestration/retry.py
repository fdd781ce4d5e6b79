"""Retriable vs terminal classification for failed generation attempts."""

import re

from providers.llm import TRANSIENT_ERRORS
from schemas.errors import GenerationError, GuardrailViolation, RetrievalError

RETRIABLE_ERROR_TYPES = TRANSIENT_ERRORS

RETRIABLE_MESSAGE_PATTERN = re.compile(
    r"timeout|timed out|ECONNRESET|ECONNREFUSED|rate limit|too many requests"
    r"|\b50[023]\b|network|temporarily unavailable",
    re.IGNORECASE,
)


def is_retriable(exc: BaseException) -> bool:
    """Whether another attempt at the run could plausibly succeed.

    Guardrail violations are policy decisions and never retried, whatever
    their message says.
    """
    if isinstance(exc, GuardrailViolation):
        return False
    if isinstance(exc, RetrievalError):
        return exc.transient
    if isinstance(exc, GenerationError):
        return True
    if isinstance(exc, RETRIABLE_ERROR_TYPES):
        return True
    return bool(RETRIABLE_MESSAGE_PATTERN.search(str(exc)))
