"""Typed errors raised by the generation pipeline.

Lower components raise these without deciding what happens next; the
orchestrator alone classifies them as retriable or terminal.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class. ``str(exc)`` is the short, user-facing message."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RetrievalError(PipelineError):
    """No relevant transcript content, or the similarity search is unavailable.

    ``transient`` distinguishes an unavailable search back end (worth another
    attempt) from a query that genuinely matched nothing.
    """

    def __init__(self, message: str, transient: bool = False, details: Optional[dict] = None):
        super().__init__(message, details)
        self.transient = transient


class GuardrailViolation(PipelineError):
    """Deterministic content-policy rejection. Never retried."""

    def __init__(self, reason: str, details: Optional[dict] = None):
        super().__init__(reason, details)
        self.reason = reason


class GenerationError(PipelineError):
    """Malformed or empty model output from a generator."""


class ScriptFormatError(GenerationError):
    """A script failed format-specific parsing at the render hand-off."""


class RetryScheduled(PipelineError):
    """The run failed transiently and was put back in the queue."""

    def __init__(self, run_id: str, retry_count: int, cause: Optional[BaseException] = None):
        super().__init__(
            "Generation failed, retrying...",
            {"generation_id": run_id, "retry_count": retry_count},
        )
        self.run_id = run_id
        self.retry_count = retry_count
        self.cause = cause


class RunStateError(PipelineError):
    """A lifecycle transition was requested from the wrong status."""


class RunNotFoundError(PipelineError):
    def __init__(self, run_id: str):
        super().__init__(f"Generation not found: {run_id}", {"generation_id": run_id})
        self.run_id = run_id
